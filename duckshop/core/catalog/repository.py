"""
Репозитории каталога: категории, пункты выдачи, товары со вкусами и остатками.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

import asyncpg

from duckshop.common.exceptions import ConflictError
from duckshop.core.catalog.models import (
    Category,
    CategoryCreateDTO,
    Flavor,
    FlavorCreateDTO,
    PickupPoint,
    PickupPointCreateDTO,
    Product,
    ProductCreateDTO,
    StockEntry,
)
from duckshop.infra.database import DatabaseManager

CATEGORY_FIELDS = (
    "title", "is_active", "card_bg_url", "card_duck_url", "class_card_duck",
    "title_class", "show_overlay", "badge_text", "badge_side", "sort_order",
)

PICKUP_POINT_FIELDS = (
    "title", "address", "sort_order", "is_active", "allowed_admin_telegram_ids",
)

PRODUCT_FIELDS = (
    "category_key", "is_active", "title1", "title2", "title_modal", "price",
    "card_bg_url", "card_duck_url", "order_img_url", "class_card_duck",
    "class_actions", "class_new_badge", "new_badge", "accent_color",
)

FLAVOR_FIELDS = ("flavor_key", "label", "is_active", "gradient", "sort_order")


def to_db_value(value: Any) -> Any:
    """Приводит значение модели к типу, который ждёт asyncpg."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _build_set_clause(
    updates: dict[str, Any],
    allowed: Iterable[str],
    start_idx: int = 1,
) -> tuple[list[str], list[Any]]:
    """
    Формирует SET-часть UPDATE из разрешённых полей.

    Returns:
        (список "col = $n", значения параметров)
    """
    allowed_set = set(allowed)
    set_parts: list[str] = []
    values: list[Any] = []
    idx = start_idx

    for key, value in updates.items():
        if key in allowed_set:
            set_parts.append(f"{key} = ${idx}")
            values.append(to_db_value(value))
            idx += 1

    return set_parts, values


def _row_to_category(row: Any) -> Category:
    return Category(**{key: row[key] for key in ("id", "key", *CATEGORY_FIELDS)})


def _row_to_pickup_point(row: Any) -> PickupPoint:
    data = {key: row[key] for key in ("id", "key", *PICKUP_POINT_FIELDS)}
    data["allowed_admin_telegram_ids"] = list(data["allowed_admin_telegram_ids"] or [])
    return PickupPoint(**data)


# =============================================================================
# КАТЕГОРИИ
# =============================================================================

class CategoryRepository:
    """Репозиторий категорий."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def list(self, only_active: bool = True) -> list[Category]:
        rows = await self._db.fetch(
            """
            SELECT * FROM categories
            WHERE ($1 = FALSE OR is_active)
            ORDER BY sort_order, id
            """,
            only_active,
        )
        return [_row_to_category(row) for row in rows]

    async def get_by_id(self, category_id: int) -> Optional[Category]:
        row = await self._db.fetchrow("SELECT * FROM categories WHERE id = $1", category_id)
        return _row_to_category(row) if row else None

    async def key_exists(self, key: str) -> bool:
        return bool(
            await self._db.fetchval("SELECT EXISTS (SELECT 1 FROM categories WHERE key = $1)", key)
        )

    async def create(self, key: str, dto: CategoryCreateDTO) -> Category:
        """Создаёт категорию с уже подобранным уникальным ключом."""
        try:
            row = await self._db.fetchrow(
                """
                INSERT INTO categories (key, title, is_active, card_bg_url, card_duck_url,
                                        class_card_duck, title_class, show_overlay,
                                        badge_text, badge_side, sort_order)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                RETURNING *
                """,
                key,
                dto.title,
                dto.is_active,
                dto.card_bg_url,
                dto.card_duck_url,
                dto.class_card_duck,
                dto.title_class,
                dto.show_overlay,
                dto.badge_text,
                dto.badge_side.value,
                dto.sort_order,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError(f"Category key already exists: {key}")
        return _row_to_category(row)

    async def update(self, category_id: int, updates: dict[str, Any]) -> Optional[Category]:
        set_parts, values = _build_set_clause(updates, CATEGORY_FIELDS)
        if not set_parts:
            return await self.get_by_id(category_id)

        set_parts.append("updated_at = NOW()")
        values.append(category_id)
        row = await self._db.fetchrow(
            f"UPDATE categories SET {', '.join(set_parts)} WHERE id = ${len(values)} RETURNING *",
            *values,
        )
        return _row_to_category(row) if row else None

    async def delete(self, category_id: int) -> bool:
        deleted = await self._db.fetchval(
            "DELETE FROM categories WHERE id = $1 RETURNING id",
            category_id,
        )
        return deleted is not None


# =============================================================================
# ПУНКТЫ ВЫДАЧИ
# =============================================================================

class PickupPointRepository:
    """Репозиторий пунктов выдачи."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def list(self, only_active: bool = True) -> list[PickupPoint]:
        rows = await self._db.fetch(
            """
            SELECT * FROM pickup_points
            WHERE ($1 = FALSE OR is_active)
            ORDER BY sort_order, id
            """,
            only_active,
        )
        return [_row_to_pickup_point(row) for row in rows]

    async def get_by_id(self, point_id: int) -> Optional[PickupPoint]:
        row = await self._db.fetchrow("SELECT * FROM pickup_points WHERE id = $1", point_id)
        return _row_to_pickup_point(row) if row else None

    async def find_for_manager(self, telegram_id: str) -> Optional[PickupPoint]:
        """Первая активная точка, где менеджер указан среди администраторов."""
        row = await self._db.fetchrow(
            """
            SELECT * FROM pickup_points
            WHERE is_active AND $1 = ANY(allowed_admin_telegram_ids)
            ORDER BY sort_order, id
            LIMIT 1
            """,
            telegram_id,
        )
        return _row_to_pickup_point(row) if row else None

    async def key_exists(self, key: str) -> bool:
        return bool(
            await self._db.fetchval("SELECT EXISTS (SELECT 1 FROM pickup_points WHERE key = $1)", key)
        )

    async def create(self, key: str, dto: PickupPointCreateDTO) -> PickupPoint:
        try:
            row = await self._db.fetchrow(
                """
                INSERT INTO pickup_points (key, title, address, sort_order, is_active,
                                           allowed_admin_telegram_ids)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING *
                """,
                key,
                dto.title,
                dto.address,
                dto.sort_order,
                dto.is_active,
                list(dto.allowed_admin_telegram_ids),
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError(f"Pickup point key already exists: {key}")
        return _row_to_pickup_point(row)

    async def update(self, point_id: int, updates: dict[str, Any]) -> Optional[PickupPoint]:
        set_parts, values = _build_set_clause(updates, PICKUP_POINT_FIELDS)
        if not set_parts:
            return await self.get_by_id(point_id)

        set_parts.append("updated_at = NOW()")
        values.append(point_id)
        row = await self._db.fetchrow(
            f"UPDATE pickup_points SET {', '.join(set_parts)} WHERE id = ${len(values)} RETURNING *",
            *values,
        )
        return _row_to_pickup_point(row) if row else None

    async def delete(self, point_id: int) -> bool:
        deleted = await self._db.fetchval(
            "DELETE FROM pickup_points WHERE id = $1 RETURNING id",
            point_id,
        )
        return deleted is not None


# =============================================================================
# ТОВАРЫ
# =============================================================================

class ProductRepository:
    """
    Репозиторий товаров.
    Вкусы и остатки лежат в отдельных таблицах и собираются в Product при чтении.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    # ----- чтение -----

    async def _assemble(self, rows: list[Any], only_active: bool) -> list[Product]:
        """Достраивает товары вкусами и остатками двумя запросами."""
        if not rows:
            return []

        product_ids = [row["id"] for row in rows]
        flavor_rows = await self._db.fetch(
            """
            SELECT id, product_id, flavor_key, label, is_active, gradient, sort_order
            FROM flavors
            WHERE product_id = ANY($1::bigint[]) AND ($2 = FALSE OR is_active)
            ORDER BY sort_order, id
            """,
            product_ids,
            only_active,
        )

        stock_by_flavor: dict[int, list[StockEntry]] = {}
        if flavor_rows:
            stock_rows = await self._db.fetch(
                """
                SELECT s.flavor_id, s.pickup_point_id, p.key AS pickup_point_key,
                       s.total_qty, s.reserved_qty, s.updated_by_telegram_id, s.updated_at
                FROM stock_entries s
                JOIN pickup_points p ON p.id = s.pickup_point_id
                WHERE s.flavor_id = ANY($1::bigint[])
                ORDER BY p.sort_order, p.id
                """,
                [row["id"] for row in flavor_rows],
            )
            for srow in stock_rows:
                stock_by_flavor.setdefault(srow["flavor_id"], []).append(
                    StockEntry(
                        pickup_point_id=srow["pickup_point_id"],
                        pickup_point_key=srow["pickup_point_key"],
                        total_qty=srow["total_qty"],
                        reserved_qty=srow["reserved_qty"],
                        updated_by_telegram_id=srow["updated_by_telegram_id"],
                        updated_at=srow["updated_at"],
                    )
                )

        flavors_by_product: dict[int, list[Flavor]] = {}
        for frow in flavor_rows:
            flavors_by_product.setdefault(frow["product_id"], []).append(
                Flavor(
                    id=frow["id"],
                    flavor_key=frow["flavor_key"],
                    label=frow["label"],
                    is_active=frow["is_active"],
                    gradient=list(frow["gradient"] or []),
                    sort_order=frow["sort_order"],
                    stock=stock_by_flavor.get(frow["id"], []),
                )
            )

        products = []
        for row in rows:
            data = {key: row[key] for key in ("id", "product_key", "version", "created_at", "updated_at", *PRODUCT_FIELDS)}
            data["flavors"] = flavors_by_product.get(row["id"], [])
            products.append(Product(**data))
        return products

    async def list(self, category_key: Optional[str] = None, only_active: bool = True) -> list[Product]:
        rows = await self._db.fetch(
            """
            SELECT * FROM products
            WHERE ($1::text IS NULL OR category_key = $1)
              AND ($2 = FALSE OR is_active)
            ORDER BY id
            """,
            category_key,
            only_active,
        )
        return await self._assemble(rows, only_active)

    async def get_by_id(self, product_id: int, only_active: bool = False) -> Optional[Product]:
        row = await self._db.fetchrow("SELECT * FROM products WHERE id = $1", product_id)
        if row is None or (only_active and not row["is_active"]):
            return None
        products = await self._assemble([row], only_active)
        return products[0]

    async def get_by_key(self, product_key: str, only_active: bool = True) -> Optional[Product]:
        row = await self._db.fetchrow("SELECT * FROM products WHERE product_key = $1", product_key)
        if row is None or (only_active and not row["is_active"]):
            return None
        products = await self._assemble([row], only_active)
        return products[0]

    async def key_exists(self, product_key: str) -> bool:
        return bool(
            await self._db.fetchval(
                "SELECT EXISTS (SELECT 1 FROM products WHERE product_key = $1)",
                product_key,
            )
        )

    # ----- запись товара -----

    async def create(
        self,
        product_key: str,
        dto: ProductCreateDTO,
        flavor_keys: list[str],
    ) -> int:
        """
        Создаёт товар вместе со вкусами одной транзакцией.

        Args:
            product_key: Уникальный ключ товара
            dto: Данные товара
            flavor_keys: Ключи вкусов в порядке dto.flavors

        Returns:
            ID созданного товара
        """
        try:
            async with self._db.transaction() as conn:
                product_id = await conn.fetchval(
                    """
                    INSERT INTO products (product_key, category_key, is_active, title1, title2,
                                          title_modal, price, card_bg_url, card_duck_url,
                                          order_img_url, class_card_duck, class_actions,
                                          class_new_badge, new_badge, accent_color)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15)
                    RETURNING id
                    """,
                    product_key,
                    dto.category_key,
                    dto.is_active,
                    dto.title1,
                    dto.title2,
                    dto.title_modal,
                    to_db_value(dto.price),
                    dto.card_bg_url,
                    dto.card_duck_url,
                    dto.order_img_url,
                    dto.class_card_duck,
                    dto.class_actions,
                    dto.class_new_badge,
                    dto.new_badge,
                    dto.accent_color,
                )
                for flavor, flavor_key in zip(dto.flavors, flavor_keys):
                    await conn.execute(
                        """
                        INSERT INTO flavors (product_id, flavor_key, label, is_active, gradient, sort_order)
                        VALUES ($1, $2, $3, $4, $5, $6)
                        """,
                        product_id,
                        flavor_key,
                        flavor.label,
                        flavor.is_active,
                        flavor.gradient,
                        flavor.sort_order,
                    )
        except asyncpg.UniqueViolationError as e:
            raise ConflictError(f"Duplicate key: {getattr(e, 'detail', None) or product_key}")
        return product_id

    async def update(
        self,
        product_id: int,
        updates: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Optional[int]:
        """
        Обновляет поля товара и увеличивает version.

        Returns:
            Новая версия или None, если товар не найден
            либо версия не совпала
        """
        set_parts, values = _build_set_clause(updates, PRODUCT_FIELDS)
        set_parts.extend(["version = version + 1", "updated_at = NOW()"])
        values.append(product_id)
        where = f"id = ${len(values)}"
        if expected_version is not None:
            values.append(expected_version)
            where += f" AND version = ${len(values)}"

        return await self._db.fetchval(
            f"UPDATE products SET {', '.join(set_parts)} WHERE {where} RETURNING version",
            *values,
        )

    async def delete(self, product_id: int) -> bool:
        deleted = await self._db.fetchval(
            "DELETE FROM products WHERE id = $1 RETURNING id",
            product_id,
        )
        return deleted is not None

    # ----- вкусы -----

    async def flavor_key_exists(self, product_id: int, flavor_key: str) -> bool:
        return bool(
            await self._db.fetchval(
                """
                SELECT EXISTS (
                    SELECT 1 FROM flavors
                    WHERE product_id = $1 AND lower(flavor_key) = lower($2)
                )
                """,
                product_id,
                flavor_key,
            )
        )

    async def add_flavor(self, product_id: int, flavor_key: str, dto: FlavorCreateDTO) -> int:
        try:
            return await self._db.fetchval(
                """
                INSERT INTO flavors (product_id, flavor_key, label, is_active, gradient, sort_order)
                VALUES ($1, $2, $3, $4, $5, $6)
                RETURNING id
                """,
                product_id,
                flavor_key,
                dto.label,
                dto.is_active,
                dto.gradient,
                dto.sort_order,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError(f"Flavor key already exists: {flavor_key}")

    async def update_flavor(self, product_id: int, flavor_id: int, updates: dict[str, Any]) -> bool:
        set_parts, values = _build_set_clause(updates, FLAVOR_FIELDS)
        if not set_parts:
            return await self.flavor_exists(product_id, flavor_id)

        values.extend([flavor_id, product_id])
        try:
            updated = await self._db.fetchval(
                f"""
                UPDATE flavors SET {', '.join(set_parts)}
                WHERE id = ${len(values) - 1} AND product_id = ${len(values)}
                RETURNING id
                """,
                *values,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError(f"Flavor key already exists: {updates.get('flavor_key')}")
        return updated is not None

    async def delete_flavor(self, product_id: int, flavor_id: int) -> bool:
        deleted = await self._db.fetchval(
            "DELETE FROM flavors WHERE id = $1 AND product_id = $2 RETURNING id",
            flavor_id,
            product_id,
        )
        return deleted is not None

    async def flavor_exists(self, product_id: int, flavor_id: int) -> bool:
        return bool(
            await self._db.fetchval(
                "SELECT EXISTS (SELECT 1 FROM flavors WHERE id = $1 AND product_id = $2)",
                flavor_id,
                product_id,
            )
        )

    # ----- остатки -----

    async def upsert_stock(
        self,
        flavor_id: int,
        pickup_point_id: int,
        total_qty: int,
        reserved_qty: Optional[int],
        updated_by: Optional[str],
    ) -> None:
        """
        Атомарно создаёт или перезаписывает остаток для пары (вкус, точка).
        reserved_qty=None оставляет текущий резерв без изменений.
        """
        await self._db.execute(
            """
            INSERT INTO stock_entries (flavor_id, pickup_point_id, total_qty, reserved_qty,
                                       updated_by_telegram_id, updated_at)
            VALUES ($1, $2, $3, COALESCE($4::int, 0), $5, NOW())
            ON CONFLICT (flavor_id, pickup_point_id) DO UPDATE SET
                total_qty = EXCLUDED.total_qty,
                reserved_qty = COALESCE($4::int, stock_entries.reserved_qty),
                updated_by_telegram_id = EXCLUDED.updated_by_telegram_id,
                updated_at = NOW()
            """,
            flavor_id,
            pickup_point_id,
            total_qty,
            reserved_qty,
            updated_by,
        )
