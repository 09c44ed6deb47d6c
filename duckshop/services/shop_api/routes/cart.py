"""
Маршруты корзины.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from duckshop.core.cart import CartReplaceDTO, CartService
from duckshop.services.shop_api.dependencies import get_cart_service

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("")
async def get_cart(
    telegram_id: Optional[str] = Query(None, alias="telegramId"),
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    cart = await service.get_cart(telegram_id)
    return {"ok": True, "cart": cart.to_api()}


@router.put("")
async def replace_cart(
    request: CartReplaceDTO,
    service: CartService = Depends(get_cart_service),
) -> dict[str, Any]:
    """Полная замена корзины."""
    cart = await service.replace_cart(request)
    return {"ok": True, "cart": cart.to_api()}
