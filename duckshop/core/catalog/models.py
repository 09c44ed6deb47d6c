"""
Модели каталога: категории, товары, вкусы, остатки, пункты выдачи.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field, computed_field, field_validator

from duckshop.common.constants import BadgeSide
from duckshop.shared.models.common import ShopModel, TelegramId


def _check_gradient(value: Optional[list[str]]) -> Optional[list[str]]:
    """Градиент либо пустой, либо ровно из двух цветов."""
    if value is None:
        return value
    colors = [color.strip() for color in value if color and color.strip()]
    if len(colors) not in (0, 2):
        raise ValueError("gradient must contain exactly 2 colors")
    return colors


# =============================================================================
# КАТЕГОРИИ
# =============================================================================

class Category(ShopModel):
    """Категория витрины."""

    id: int
    key: str
    title: str
    is_active: bool = True
    card_bg_url: str = ""
    card_duck_url: str = ""
    class_card_duck: str = ""
    title_class: str = "cardTitle"
    show_overlay: bool = False
    badge_text: str = ""
    badge_side: BadgeSide = BadgeSide.LEFT
    sort_order: int = 0


class CategoryCreateDTO(ShopModel):
    """DTO создания категории. Ключ генерируется из title, если не передан."""

    key: Optional[str] = None
    title: str = Field(..., min_length=1)
    is_active: bool = True
    card_bg_url: str = ""
    card_duck_url: str = ""
    class_card_duck: str = ""
    title_class: str = "cardTitle"
    show_overlay: bool = False
    badge_text: str = ""
    badge_side: BadgeSide = BadgeSide.LEFT
    sort_order: int = 0


class CategoryUpdateDTO(ShopModel):
    """DTO частичного обновления категории."""

    title: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    card_bg_url: Optional[str] = None
    card_duck_url: Optional[str] = None
    class_card_duck: Optional[str] = None
    title_class: Optional[str] = None
    show_overlay: Optional[bool] = None
    badge_text: Optional[str] = None
    badge_side: Optional[BadgeSide] = None
    sort_order: Optional[int] = None


# =============================================================================
# ПУНКТЫ ВЫДАЧИ
# =============================================================================

class PickupPoint(ShopModel):
    """Пункт самовывоза."""

    id: int
    key: str
    title: str
    address: str = ""
    sort_order: int = 0
    is_active: bool = True
    allowed_admin_telegram_ids: list[str] = Field(default_factory=list)


class PickupPointCreateDTO(ShopModel):
    """DTO создания пункта выдачи."""

    key: Optional[str] = None
    title: str = Field(..., min_length=1)
    address: str = ""
    sort_order: int = 0
    is_active: bool = True
    allowed_admin_telegram_ids: list[TelegramId] = Field(default_factory=list)


class PickupPointUpdateDTO(ShopModel):
    """DTO частичного обновления пункта выдачи."""

    title: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    allowed_admin_telegram_ids: Optional[list[TelegramId]] = None


# =============================================================================
# ТОВАРЫ, ВКУСЫ, ОСТАТКИ
# =============================================================================

class StockEntry(ShopModel):
    """Остаток вкуса в конкретном пункте выдачи."""

    pickup_point_id: int
    pickup_point_key: Optional[str] = None
    total_qty: int = Field(0, ge=0)
    reserved_qty: int = Field(0, ge=0)
    updated_by_telegram_id: Optional[str] = None
    updated_at: Optional[datetime] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def available_qty(self) -> int:
        return max(self.total_qty - self.reserved_qty, 0)


class Flavor(ShopModel):
    """Вкус (вариант) товара."""

    id: int
    flavor_key: str
    label: str
    is_active: bool = True
    gradient: list[str] = Field(default_factory=list)
    sort_order: int = 0
    stock: list[StockEntry] = Field(default_factory=list)


class Product(ShopModel):
    """Товар витрины со вкусами и остатками."""

    id: int
    product_key: str
    category_key: str
    is_active: bool = True
    title1: str = ""
    title2: str = ""
    title_modal: str = ""
    price: float = Field(0, ge=0)
    card_bg_url: str = ""
    card_duck_url: str = ""
    order_img_url: str = ""
    class_card_duck: str = ""
    class_actions: str = ""
    class_new_badge: str = ""
    new_badge: str = ""
    accent_color: str = ""
    version: int = 1
    flavors: list[Flavor] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def find_flavor(self, flavor_id: int) -> Optional[Flavor]:
        return next((f for f in self.flavors if f.id == flavor_id), None)


class FlavorCreateDTO(ShopModel):
    """DTO создания вкуса. Ключ генерируется из label, если не передан."""

    flavor_key: Optional[str] = None
    label: str = Field(..., min_length=1)
    is_active: bool = True
    gradient: list[str] = Field(default_factory=list)
    sort_order: int = 0

    check_gradient = field_validator("gradient")(_check_gradient)


class FlavorUpdateDTO(ShopModel):
    """DTO частичного обновления вкуса."""

    flavor_key: Optional[str] = None
    label: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    gradient: Optional[list[str]] = None
    sort_order: Optional[int] = None

    check_gradient = field_validator("gradient")(_check_gradient)


class ProductCreateDTO(ShopModel):
    """DTO создания товара вместе со вкусами."""

    product_key: Optional[str] = None
    category_key: str = Field(..., min_length=1)
    is_active: bool = True
    title1: str = Field(..., min_length=1)
    title2: str = ""
    title_modal: str = ""
    price: float = Field(0, ge=0)
    card_bg_url: str = ""
    card_duck_url: str = ""
    order_img_url: str = ""
    class_card_duck: str = ""
    class_actions: str = ""
    class_new_badge: str = ""
    new_badge: str = ""
    accent_color: str = ""
    flavors: list[FlavorCreateDTO] = Field(default_factory=list)


class ProductUpdateDTO(ShopModel):
    """
    DTO частичного обновления товара.
    expected_version включает оптимистичную блокировку.
    """

    category_key: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None
    title1: Optional[str] = None
    title2: Optional[str] = None
    title_modal: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    card_bg_url: Optional[str] = None
    card_duck_url: Optional[str] = None
    order_img_url: Optional[str] = None
    class_card_duck: Optional[str] = None
    class_actions: Optional[str] = None
    class_new_badge: Optional[str] = None
    new_badge: Optional[str] = None
    accent_color: Optional[str] = None
    expected_version: Optional[int] = None


class StockUpdateDTO(ShopModel):
    """
    DTO изменения остатка.
    Точку можно указать напрямую или через Telegram ID менеджера;
    qty принимается как синоним totalQty.
    """

    pickup_point_id: Optional[int] = None
    manager_telegram_id: Optional[TelegramId] = None
    total_qty: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("totalQty", "total_qty", "qty"),
    )
    reserved_qty: Optional[int] = None
    updated_by_telegram_id: Optional[TelegramId] = None
