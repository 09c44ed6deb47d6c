"""
Публичные маршруты витрины: категории, товары, пункты выдачи.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from duckshop.core.catalog import CatalogService
from duckshop.services.shop_api.dependencies import get_catalog_service

router = APIRouter(tags=["Catalog"])


@router.get("/categories")
async def list_categories(
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    categories = await service.list_categories()
    return {"ok": True, "categories": [c.to_api() for c in categories]}


@router.get("/products")
async def list_products(
    category_key: Optional[str] = Query(None, alias="categoryKey"),
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """Активные товары, опционально только одной категории."""
    products = await service.list_products(category_key)
    return {"ok": True, "products": [p.to_api() for p in products]}


@router.get("/products/{product_key}")
async def get_product(
    product_key: str,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    product = await service.get_product(product_key)
    return {"ok": True, "product": product.to_api()}


@router.get("/pickup-points")
async def list_pickup_points(
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    points = await service.list_pickup_points()
    return {"ok": True, "pickupPoints": [p.to_api() for p in points]}
