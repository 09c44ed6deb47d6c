"""
Сервис каталога.
Категории, товары, вкусы, пункты выдачи и складские остатки.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from pydantic import BaseModel

from duckshop.common.constants import TypeMsg
from duckshop.common.exceptions import ConflictError, NotFoundError, ValidationError
from duckshop.common.logger import log_info
from duckshop.core.catalog.keys import ensure_unique_key, make_slug
from duckshop.core.catalog.models import (
    Category,
    CategoryCreateDTO,
    CategoryUpdateDTO,
    FlavorCreateDTO,
    FlavorUpdateDTO,
    PickupPoint,
    PickupPointCreateDTO,
    PickupPointUpdateDTO,
    Product,
    ProductCreateDTO,
    ProductUpdateDTO,
    StockUpdateDTO,
)
from duckshop.core.catalog.repository import (
    CategoryRepository,
    PickupPointRepository,
    ProductRepository,
)


def _changes(dto: BaseModel, exclude: Optional[set[str]] = None) -> dict[str, Any]:
    """
    Поля частичного обновления.
    Явный null означает "не менять": все колонки каталога NOT NULL.
    """
    return dto.model_dump(exclude_unset=True, exclude_none=True, exclude=exclude)


class CatalogService:
    """Сервис каталога магазина."""

    def __init__(
        self,
        categories: CategoryRepository,
        products: ProductRepository,
        pickup_points: PickupPointRepository,
        key_max_length: int = 48,
        key_attempts: int = 50,
    ) -> None:
        """
        Инициализация сервиса.

        Args:
            categories: Репозиторий категорий
            products: Репозиторий товаров (вкусы и остатки внутри)
            pickup_points: Репозиторий пунктов выдачи
            key_max_length: Максимальная длина генерируемых ключей
            key_attempts: Сколько числовых суффиксов перебирать
        """
        self._categories = categories
        self._products = products
        self._pickup_points = pickup_points
        self._key_max_length = key_max_length
        self._key_attempts = key_attempts

    # =========================================================================
    # КЛЮЧИ
    # =========================================================================

    def _slug(self, title: Optional[str]) -> str:
        return make_slug(title, self._key_max_length)

    async def ensure_unique_category_key(self, title: str) -> str:
        return await ensure_unique_key(
            self._slug(title), self._categories.key_exists, self._key_attempts, self._key_max_length
        )

    async def ensure_unique_product_key(self, title: str) -> str:
        return await ensure_unique_key(
            self._slug(title), self._products.key_exists, self._key_attempts, self._key_max_length
        )

    async def ensure_unique_pickup_point_key(self, title: str) -> str:
        return await ensure_unique_key(
            self._slug(title), self._pickup_points.key_exists, self._key_attempts, self._key_max_length
        )

    async def _explicit_key(
        self,
        raw_key: str,
        exists: Callable[[str], Awaitable[bool]],
        field: str,
    ) -> str:
        """Нормализует явно переданный ключ; занятый ключ не переименовывается."""
        key = self._slug(raw_key)
        if await exists(key):
            raise ConflictError(f"{field} already exists: {key}")
        return key

    async def ensure_unique_flavor_key(self, product_id: int, label: str) -> str:
        async def exists(key: str) -> bool:
            return await self._products.flavor_key_exists(product_id, key)

        return await ensure_unique_key(
            self._slug(label), exists, self._key_attempts, self._key_max_length
        )

    # =========================================================================
    # КАТЕГОРИИ
    # =========================================================================

    async def list_categories(self, only_active: bool = True) -> list[Category]:
        return await self._categories.list(only_active)

    async def create_category(self, dto: CategoryCreateDTO) -> Category:
        if dto.key:
            key = await self._explicit_key(dto.key, self._categories.key_exists, "key")
        else:
            key = await self.ensure_unique_category_key(dto.title)
        category = await self._categories.create(key, dto)
        await log_info(f"Создана категория {category.key}", type_msg=TypeMsg.INFO)
        return category

    async def update_category(self, category_id: int, dto: CategoryUpdateDTO) -> Category:
        category = await self._categories.update(category_id, _changes(dto))
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def delete_category(self, category_id: int) -> None:
        if not await self._categories.delete(category_id):
            raise NotFoundError("Category not found")
        await log_info(f"Удалена категория {category_id}", type_msg=TypeMsg.INFO)

    # =========================================================================
    # ТОВАРЫ
    # =========================================================================

    async def list_products(
        self,
        category_key: Optional[str] = None,
        only_active: bool = True,
    ) -> list[Product]:
        return await self._products.list(category_key or None, only_active)

    async def get_product(self, product_key: str) -> Product:
        """Активный товар по ключу (для витрины)."""
        product = await self._products.get_by_key(product_key, only_active=True)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def get_product_by_id(self, product_id: int) -> Product:
        """Товар по внутреннему ID, включая неактивные (для админки)."""
        product = await self._products.get_by_id(product_id)
        if product is None:
            raise NotFoundError("Product not found")
        return product

    async def create_product(self, dto: ProductCreateDTO) -> Product:
        """
        Создаёт товар вместе со вкусами.

        Явно переданные ключи товара и вкусов не переименовываются: занятый
        ключ даёт ConflictError. Ключи, сгенерированные из title1 и label,
        получают числовой суффикс.
        """
        if dto.product_key:
            product_key = await self._explicit_key(
                dto.product_key, self._products.key_exists, "productKey"
            )
        else:
            product_key = await self.ensure_unique_product_key(dto.title1)

        used: set[str] = set()
        flavor_keys: list[str] = []

        async def taken(candidate: str) -> bool:
            return candidate.lower() in used

        for flavor in dto.flavors:
            if flavor.flavor_key:
                key = self._slug(flavor.flavor_key)
                if key.lower() in used:
                    raise ConflictError(f"Duplicate flavorKey: {key}")
            else:
                key = await ensure_unique_key(
                    self._slug(flavor.label), taken, self._key_attempts, self._key_max_length
                )
            used.add(key.lower())
            flavor_keys.append(key)

        product_id = await self._products.create(product_key, dto, flavor_keys)
        await log_info(
            f"Создан товар {product_key} ({len(flavor_keys)} вкусов)",
            type_msg=TypeMsg.INFO,
        )
        return await self.get_product_by_id(product_id)

    async def update_product(self, product_id: int, dto: ProductUpdateDTO) -> Product:
        """
        Частично обновляет товар.

        Raises:
            NotFoundError: товара нет
            ConflictError: expected_version не совпала с текущей
        """
        current = await self._products.get_by_id(product_id)
        if current is None:
            raise NotFoundError("Product not found")

        updates = _changes(dto, exclude={"expected_version"})
        version = await self._products.update(product_id, updates, dto.expected_version)
        if version is None:
            raise ConflictError(
                f"Product version mismatch: expected {dto.expected_version}, current {current.version}"
            )
        return await self.get_product_by_id(product_id)

    async def delete_product(self, product_id: int) -> None:
        if not await self._products.delete(product_id):
            raise NotFoundError("Product not found")
        await log_info(f"Удалён товар {product_id}", type_msg=TypeMsg.INFO)

    # =========================================================================
    # ВКУСЫ
    # =========================================================================

    async def add_flavor(self, product_id: int, dto: FlavorCreateDTO) -> Product:
        await self.get_product_by_id(product_id)

        if dto.flavor_key:
            key = self._slug(dto.flavor_key)
            if await self._products.flavor_key_exists(product_id, key):
                raise ConflictError(f"flavorKey already exists: {key}")
        else:
            key = await self.ensure_unique_flavor_key(product_id, dto.label)

        await self._products.add_flavor(product_id, key, dto)
        return await self.get_product_by_id(product_id)

    async def update_flavor(self, product_id: int, flavor_id: int, dto: FlavorUpdateDTO) -> Product:
        updates = _changes(dto)
        if updates.get("flavor_key"):
            updates["flavor_key"] = self._slug(updates["flavor_key"])
        else:
            updates.pop("flavor_key", None)

        if not await self._products.update_flavor(product_id, flavor_id, updates):
            raise NotFoundError("Flavor not found")
        return await self.get_product_by_id(product_id)

    async def delete_flavor(self, product_id: int, flavor_id: int) -> Product:
        if not await self._products.delete_flavor(product_id, flavor_id):
            raise NotFoundError("Flavor not found")
        return await self.get_product_by_id(product_id)

    # =========================================================================
    # ОСТАТКИ
    # =========================================================================

    async def resolve_pickup_point_id(self, dto: StockUpdateDTO) -> int:
        """
        Определяет точку для остатка: напрямую или по Telegram ID менеджера.
        """
        if dto.pickup_point_id is not None:
            return dto.pickup_point_id

        if dto.manager_telegram_id:
            point = await self._pickup_points.find_for_manager(dto.manager_telegram_id)
            if point is None:
                raise NotFoundError("Pickup point not found for manager")
            return point.id

        raise ValidationError("pickupPointId or managerTelegramId is required")

    async def set_stock(
        self,
        product_id: int,
        flavor_id: int,
        pickup_point_id: int,
        qty: Optional[int],
        actor: Optional[str] = None,
        reserved_qty: Optional[int] = None,
    ) -> Product:
        """
        Устанавливает остаток вкуса в точке выдачи.

        Отрицательные количества приводятся к нулю. Для пары (вкус, точка)
        всегда остаётся ровно одна запись.

        Args:
            product_id: ID товара
            flavor_id: ID вкуса внутри товара
            pickup_point_id: ID точки выдачи
            qty: Новое общее количество
            actor: Telegram ID администратора
            reserved_qty: Новый резерв (None не меняет текущий)

        Returns:
            Товар с обновлёнными остатками
        """
        if qty is None:
            raise ValidationError("totalQty is required")

        total = max(int(qty), 0)
        reserved = max(int(reserved_qty), 0) if reserved_qty is not None else None

        await self.get_product_by_id(product_id)
        if not await self._products.flavor_exists(product_id, flavor_id):
            raise NotFoundError("Flavor not found")
        if await self._pickup_points.get_by_id(pickup_point_id) is None:
            raise NotFoundError("Pickup point not found")

        await self._products.upsert_stock(flavor_id, pickup_point_id, total, reserved, actor)
        await log_info(
            f"Остаток: товар {product_id}, вкус {flavor_id}, точка {pickup_point_id} -> {total}"
            f" (by {actor or 'unknown'})",
            type_msg=TypeMsg.INFO,
        )
        return await self.get_product_by_id(product_id)

    async def update_stock(self, product_id: int, flavor_id: int, dto: StockUpdateDTO) -> Product:
        """Точка входа для PATCH .../stock."""
        pickup_point_id = await self.resolve_pickup_point_id(dto)
        return await self.set_stock(
            product_id,
            flavor_id,
            pickup_point_id,
            dto.total_qty,
            actor=dto.updated_by_telegram_id,
            reserved_qty=dto.reserved_qty,
        )

    # =========================================================================
    # ПУНКТЫ ВЫДАЧИ
    # =========================================================================

    async def list_pickup_points(self, only_active: bool = True) -> list[PickupPoint]:
        return await self._pickup_points.list(only_active)

    async def get_pickup_point(self, point_id: int) -> PickupPoint:
        point = await self._pickup_points.get_by_id(point_id)
        if point is None:
            raise NotFoundError("Pickup point not found")
        return point

    async def create_pickup_point(self, dto: PickupPointCreateDTO) -> PickupPoint:
        if dto.key:
            key = await self._explicit_key(dto.key, self._pickup_points.key_exists, "key")
        else:
            key = await self.ensure_unique_pickup_point_key(dto.title)
        point = await self._pickup_points.create(key, dto)
        await log_info(f"Создан пункт выдачи {point.key}", type_msg=TypeMsg.INFO)
        return point

    async def update_pickup_point(self, point_id: int, dto: PickupPointUpdateDTO) -> PickupPoint:
        point = await self._pickup_points.update(point_id, _changes(dto))
        if point is None:
            raise NotFoundError("Pickup point not found")
        return point

    async def delete_pickup_point(self, point_id: int) -> None:
        if not await self._pickup_points.delete(point_id):
            raise NotFoundError("Pickup point not found")
        await log_info(f"Удалён пункт выдачи {point_id}", type_msg=TypeMsg.INFO)
