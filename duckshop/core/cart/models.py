"""
Модели корзины.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from duckshop.common.constants import DeliveryMethod, DeliveryType
from duckshop.shared.models.common import ShopModel, TelegramId


class CartItem(ShopModel):
    """Строка корзины (цена зафиксирована на момент добавления)."""

    product_key: str = Field(..., min_length=1)
    flavor_key: str = Field(..., min_length=1)
    qty: int = Field(1, ge=1)
    unit_price: float = Field(0, ge=0)
    flavor_label: str = ""
    gradient: list[str] = Field(default_factory=list)


class Cart(ShopModel):
    """Корзина пользователя."""

    telegram_id: str
    items: list[CartItem] = Field(default_factory=list)
    checkout_delivery_type: DeliveryType = DeliveryType.PICKUP
    checkout_delivery_method: Optional[DeliveryMethod] = None
    checkout_pickup_point_id: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def total_qty(self) -> int:
        return sum(item.qty for item in self.items)


class CartReplaceDTO(ShopModel):
    """DTO полной замены корзины (PUT /cart)."""

    telegram_id: Optional[TelegramId] = None
    items: list[CartItem] = Field(default_factory=list)
    checkout_delivery_type: DeliveryType = DeliveryType.PICKUP
    checkout_delivery_method: Optional[DeliveryMethod] = None
    checkout_pickup_point_id: Optional[int] = None
