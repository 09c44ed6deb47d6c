"""
Каталог: категории, товары, вкусы, остатки, пункты выдачи.
"""

from duckshop.core.catalog.keys import ensure_unique_key, make_slug
from duckshop.core.catalog.repository import (
    CategoryRepository,
    PickupPointRepository,
    ProductRepository,
)
from duckshop.core.catalog.service import CatalogService

__all__ = [
    "ensure_unique_key",
    "make_slug",
    "CategoryRepository",
    "PickupPointRepository",
    "ProductRepository",
    "CatalogService",
]
