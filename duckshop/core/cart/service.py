"""
Сервис корзины.
"""

from __future__ import annotations

from typing import Optional

from duckshop.common.constants import DeliveryType, TypeMsg
from duckshop.common.exceptions import NotFoundError, ValidationError
from duckshop.common.logger import log_info
from duckshop.core.cart.models import Cart, CartItem, CartReplaceDTO
from duckshop.core.cart.repository import CartRepository
from duckshop.core.catalog.repository import PickupPointRepository


def merge_duplicate_items(items: list[CartItem]) -> list[CartItem]:
    """
    Схлопывает строки с одинаковыми (productKey, flavorKey), суммируя qty.
    Цена и подпись берутся из первой строки, порядок сохраняется.
    """
    merged: dict[tuple[str, str], CartItem] = {}
    for item in items:
        key = (item.product_key, item.flavor_key)
        if key in merged:
            existing = merged[key]
            merged[key] = existing.model_copy(update={"qty": existing.qty + item.qty})
        else:
            merged[key] = item
    return list(merged.values())


class CartService:
    """Сервис корзины: чтение и полная замена."""

    def __init__(self, carts: CartRepository, pickup_points: PickupPointRepository) -> None:
        self._carts = carts
        self._pickup_points = pickup_points

    async def get_cart(self, telegram_id: Optional[str]) -> Cart:
        """
        Возвращает корзину пользователя или пустую, если её ещё нет.

        Raises:
            ValidationError: telegram_id не передан
        """
        if not telegram_id:
            raise ValidationError("telegramId is required")

        cart = await self._carts.get(telegram_id)
        return cart or Cart(telegram_id=telegram_id)

    async def replace_cart(self, dto: CartReplaceDTO) -> Cart:
        """
        Полностью заменяет корзину.

        Для самовывоза проверяется точка выдачи, способ доставки сбрасывается;
        для доставки сбрасывается точка выдачи.

        Raises:
            ValidationError: telegram_id не передан
            NotFoundError: точка выдачи не существует или выключена
        """
        if not dto.telegram_id:
            raise ValidationError("telegramId is required")

        pickup_point_id = dto.checkout_pickup_point_id
        method = dto.checkout_delivery_method
        if dto.checkout_delivery_type == DeliveryType.PICKUP:
            method = None
            if pickup_point_id is not None:
                point = await self._pickup_points.get_by_id(pickup_point_id)
                if point is None or not point.is_active:
                    raise NotFoundError("Pickup point not found")
        else:
            pickup_point_id = None

        cart = Cart(
            telegram_id=dto.telegram_id,
            items=merge_duplicate_items(dto.items),
            checkout_delivery_type=dto.checkout_delivery_type,
            checkout_delivery_method=method,
            checkout_pickup_point_id=pickup_point_id,
        )
        await self._carts.replace(cart)
        await log_info(
            f"Корзина {cart.telegram_id} сохранена: {len(cart.items)} позиций, {cart.total_qty} шт.",
            type_msg=TypeMsg.DEBUG,
        )
        return await self.get_cart(cart.telegram_id)
