"""
Админские маршруты каталога.
Все методы требуют заголовок x-admin-token.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from duckshop.core.catalog import CatalogService
from duckshop.core.catalog.models import (
    CategoryCreateDTO,
    CategoryUpdateDTO,
    FlavorCreateDTO,
    FlavorUpdateDTO,
    PickupPointCreateDTO,
    PickupPointUpdateDTO,
    ProductCreateDTO,
    ProductUpdateDTO,
    StockUpdateDTO,
)
from duckshop.services.shop_api.dependencies import get_catalog_service, require_admin

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


# =============================================================================
# КАТЕГОРИИ
# =============================================================================

@router.get("/categories")
async def admin_list_categories(
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    categories = await service.list_categories(only_active=False)
    return {"ok": True, "categories": [c.to_api() for c in categories]}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def admin_create_category(
    request: CategoryCreateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    category = await service.create_category(request)
    return {"ok": True, "category": category.to_api()}


@router.patch("/categories/{category_id}")
async def admin_update_category(
    category_id: int,
    request: CategoryUpdateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    category = await service.update_category(category_id, request)
    return {"ok": True, "category": category.to_api()}


@router.delete("/categories/{category_id}")
async def admin_delete_category(
    category_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    await service.delete_category(category_id)
    return {"ok": True}


# =============================================================================
# ТОВАРЫ
# =============================================================================

@router.get("/products")
async def admin_list_products(
    category_key: str | None = Query(None, alias="categoryKey"),
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """Все товары, включая выключенные вкусы и товары."""
    products = await service.list_products(category_key, only_active=False)
    return {"ok": True, "products": [p.to_api() for p in products]}


@router.get("/products/{product_id}")
async def admin_get_product(
    product_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    product = await service.get_product_by_id(product_id)
    return {"ok": True, "product": product.to_api()}


@router.post("/products", status_code=status.HTTP_201_CREATED)
async def admin_create_product(
    request: ProductCreateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    product = await service.create_product(request)
    return {"ok": True, "product": product.to_api()}


@router.patch("/products/{product_id}")
async def admin_update_product(
    product_id: int,
    request: ProductUpdateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """Частичное обновление; expectedVersion в теле включает проверку версии (409)."""
    product = await service.update_product(product_id, request)
    return {"ok": True, "product": product.to_api()}


@router.delete("/products/{product_id}")
async def admin_delete_product(
    product_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    await service.delete_product(product_id)
    return {"ok": True}


# =============================================================================
# ВКУСЫ И ОСТАТКИ
# =============================================================================

@router.post("/products/{product_id}/flavors", status_code=status.HTTP_201_CREATED)
async def admin_add_flavor(
    product_id: int,
    request: FlavorCreateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    product = await service.add_flavor(product_id, request)
    return {"ok": True, "product": product.to_api()}


@router.patch("/products/{product_id}/flavors/{flavor_id}")
async def admin_update_flavor(
    product_id: int,
    flavor_id: int,
    request: FlavorUpdateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    product = await service.update_flavor(product_id, flavor_id, request)
    return {"ok": True, "product": product.to_api()}


@router.delete("/products/{product_id}/flavors/{flavor_id}")
async def admin_delete_flavor(
    product_id: int,
    flavor_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    product = await service.delete_flavor(product_id, flavor_id)
    return {"ok": True, "product": product.to_api()}


@router.patch("/products/{product_id}/flavors/{flavor_id}/stock")
async def admin_set_stock(
    product_id: int,
    flavor_id: int,
    request: StockUpdateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    """Остаток вкуса в точке (pickupPointId или managerTelegramId; qty = totalQty)."""
    product = await service.update_stock(product_id, flavor_id, request)
    return {"ok": True, "product": product.to_api()}


# =============================================================================
# ПУНКТЫ ВЫДАЧИ
# =============================================================================

@router.get("/pickup-points")
async def admin_list_pickup_points(
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    points = await service.list_pickup_points(only_active=False)
    return {"ok": True, "pickupPoints": [p.to_api() for p in points]}


@router.post("/pickup-points", status_code=status.HTTP_201_CREATED)
async def admin_create_pickup_point(
    request: PickupPointCreateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    point = await service.create_pickup_point(request)
    return {"ok": True, "pickupPoint": point.to_api()}


@router.patch("/pickup-points/{point_id}")
async def admin_update_pickup_point(
    point_id: int,
    request: PickupPointUpdateDTO,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    point = await service.update_pickup_point(point_id, request)
    return {"ok": True, "pickupPoint": point.to_api()}


@router.delete("/pickup-points/{point_id}")
async def admin_delete_pickup_point(
    point_id: int,
    service: CatalogService = Depends(get_catalog_service),
) -> dict[str, Any]:
    await service.delete_pickup_point(point_id)
    return {"ok": True}
