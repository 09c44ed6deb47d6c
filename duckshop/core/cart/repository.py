"""
Репозиторий корзин.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from duckshop.core.cart.models import Cart, CartItem
from duckshop.infra.database import DatabaseManager


class CartRepository:
    """Репозиторий корзин. Корзина хранится шапкой и строками в cart_items."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Args:
            db: Менеджер базы данных
        """
        self._db = db

    async def get(self, telegram_id: str) -> Optional[Cart]:
        """Корзина пользователя или None, если он ещё ничего не сохранял."""
        row = await self._db.fetchrow(
            """
            SELECT id, telegram_id, checkout_delivery_type, checkout_delivery_method,
                   checkout_pickup_point_id, updated_at
            FROM carts
            WHERE telegram_id = $1
            """,
            telegram_id,
        )
        if row is None:
            return None

        item_rows = await self._db.fetch(
            """
            SELECT product_key, flavor_key, qty, unit_price, flavor_label, gradient
            FROM cart_items
            WHERE cart_id = $1
            ORDER BY position
            """,
            row["id"],
        )
        return Cart(
            telegram_id=row["telegram_id"],
            checkout_delivery_type=row["checkout_delivery_type"],
            checkout_delivery_method=row["checkout_delivery_method"],
            checkout_pickup_point_id=row["checkout_pickup_point_id"],
            updated_at=row["updated_at"],
            items=[
                CartItem(
                    product_key=item["product_key"],
                    flavor_key=item["flavor_key"],
                    qty=item["qty"],
                    unit_price=item["unit_price"],
                    flavor_label=item["flavor_label"],
                    gradient=list(item["gradient"] or []),
                )
                for item in item_rows
            ],
        )

    async def replace(self, cart: Cart) -> None:
        """
        Полностью заменяет корзину одной транзакцией.
        """
        method = cart.checkout_delivery_method.value if cart.checkout_delivery_method else None

        async with self._db.transaction() as conn:
            cart_id = await conn.fetchval(
                """
                INSERT INTO carts (telegram_id, checkout_delivery_type, checkout_delivery_method,
                                   checkout_pickup_point_id)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (telegram_id) DO UPDATE SET
                    checkout_delivery_type = EXCLUDED.checkout_delivery_type,
                    checkout_delivery_method = EXCLUDED.checkout_delivery_method,
                    checkout_pickup_point_id = EXCLUDED.checkout_pickup_point_id,
                    updated_at = NOW()
                RETURNING id
                """,
                cart.telegram_id,
                cart.checkout_delivery_type.value,
                method,
                cart.checkout_pickup_point_id,
            )
            await conn.execute("DELETE FROM cart_items WHERE cart_id = $1", cart_id)
            if cart.items:
                await conn.executemany(
                    """
                    INSERT INTO cart_items (cart_id, position, product_key, flavor_key, qty,
                                            unit_price, flavor_label, gradient)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                    """,
                    [
                        (
                            cart_id,
                            position,
                            item.product_key,
                            item.flavor_key,
                            item.qty,
                            Decimal(str(item.unit_price)),
                            item.flavor_label,
                            item.gradient,
                        )
                        for position, item in enumerate(cart.items)
                    ],
                )
