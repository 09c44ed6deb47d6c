# tests/core/test_catalog_repository.py
"""
Тесты репозиториев каталога (SQL поверх мока БД).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import asyncpg
import pytest

from duckshop.common.constants import BadgeSide
from duckshop.common.exceptions import ConflictError
from duckshop.core.catalog.models import PickupPointCreateDTO, ProductCreateDTO
from duckshop.core.catalog.repository import (
    CATEGORY_FIELDS,
    PickupPointRepository,
    ProductRepository,
    _build_set_clause,
    to_db_value,
)


class TestHelpers:
    """Тесты вспомогательных функций."""

    def test_to_db_value(self) -> None:
        assert to_db_value(BadgeSide.RIGHT) == "right"
        assert to_db_value(12.5) == Decimal("12.5")
        assert to_db_value("x") == "x"

    def test_build_set_clause_skips_unknown(self) -> None:
        set_parts, values = _build_set_clause(
            {"title": "Новое", "id": 99, "badge_side": BadgeSide.LEFT},
            CATEGORY_FIELDS,
        )

        assert set_parts == ["title = $1", "badge_side = $2"]
        assert values == ["Новое", "left"]


class TestPickupPointRepository:
    """Тесты PickupPointRepository."""

    @pytest.mark.asyncio
    async def test_find_for_manager(self, mock_db: AsyncMock, sample_pickup_point_row: dict[str, Any]) -> None:
        mock_db.fetchrow.return_value = sample_pickup_point_row

        point = await PickupPointRepository(mock_db).find_for_manager("777")

        assert point is not None
        assert point.key == "center"
        assert point.allowed_admin_telegram_ids == ["777"]
        query, telegram_id = mock_db.fetchrow.await_args.args
        assert "is_active" in query
        assert "ANY(allowed_admin_telegram_ids)" in query
        assert telegram_id == "777"

    @pytest.mark.asyncio
    async def test_find_for_manager_none(self, mock_db: AsyncMock) -> None:
        assert await PickupPointRepository(mock_db).find_for_manager("1") is None

    @pytest.mark.asyncio
    async def test_create_conflict(self, mock_db: AsyncMock) -> None:
        mock_db.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(ConflictError):
            await PickupPointRepository(mock_db).create("center", PickupPointCreateDTO(title="Центр"))


class TestProductRepository:
    """Тесты ProductRepository."""

    @pytest.mark.asyncio
    async def test_upsert_stock_single_statement(self, mock_db: AsyncMock) -> None:
        """Остаток пишется одним INSERT ... ON CONFLICT по паре (вкус, точка)."""
        await ProductRepository(mock_db).upsert_stock(10, 5, 7, None, "42")

        query, *args = mock_db.execute.await_args.args
        assert "ON CONFLICT (flavor_id, pickup_point_id) DO UPDATE" in query
        assert "COALESCE($4::int, stock_entries.reserved_qty)" in query
        assert args == [10, 5, 7, None, "42"]

    @pytest.mark.asyncio
    async def test_update_with_expected_version(self, mock_db: AsyncMock) -> None:
        mock_db.fetchval.return_value = 4

        version = await ProductRepository(mock_db).update(
            1, {"price": 9.5, "title1": "X", "unknown": 1}, expected_version=3
        )

        assert version == 4
        query, *args = mock_db.fetchval.await_args.args
        assert "version = version + 1" in query
        assert "WHERE id = $3 AND version = $4" in query
        assert args == [Decimal("9.5"), "X", 1, 3]

    @pytest.mark.asyncio
    async def test_update_without_version(self, mock_db: AsyncMock) -> None:
        await ProductRepository(mock_db).update(1, {"is_active": False})

        query, *args = mock_db.fetchval.await_args.args
        assert query.rstrip().endswith("WHERE id = $2 RETURNING version")
        assert args == [False, 1]

    @pytest.mark.asyncio
    async def test_get_by_key_hides_inactive(
        self, mock_db: AsyncMock, sample_product_row: dict[str, Any]
    ) -> None:
        mock_db.fetchrow.return_value = {**sample_product_row, "is_active": False}

        assert await ProductRepository(mock_db).get_by_key("elf-duck") is None
        mock_db.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_by_id_assembles_flavors_and_stock(
        self, mock_db: AsyncMock, sample_product_row: dict[str, Any]
    ) -> None:
        mock_db.fetchrow.return_value = sample_product_row
        mock_db.fetch.side_effect = [
            [
                {
                    "id": 10,
                    "product_id": 1,
                    "flavor_key": "mango",
                    "label": "Mango",
                    "is_active": True,
                    "gradient": ["#ff0", "#f80"],
                    "sort_order": 0,
                },
            ],
            [
                {
                    "flavor_id": 10,
                    "pickup_point_id": 5,
                    "pickup_point_key": "center",
                    "total_qty": 9,
                    "reserved_qty": 2,
                    "updated_by_telegram_id": "42",
                    "updated_at": None,
                },
            ],
        ]

        product = await ProductRepository(mock_db).get_by_id(1)

        assert product is not None
        assert product.version == 3
        flavor = product.find_flavor(10)
        assert flavor is not None
        assert flavor.gradient == ["#ff0", "#f80"]
        assert flavor.stock[0].available_qty == 7
        assert product.to_api()["flavors"][0]["stock"][0]["pickupPointKey"] == "center"

    @pytest.mark.asyncio
    async def test_create_in_transaction(self, mock_db: AsyncMock, mock_conn: AsyncMock) -> None:
        mock_conn.fetchval.return_value = 1
        dto = ProductCreateDTO.model_validate(
            {
                "categoryKey": "liquids",
                "title1": "Elf Duck",
                "price": 12.5,
                "flavors": [{"label": "Mango"}, {"label": "Ice", "gradient": ["#fff", "#0ff"]}],
            }
        )

        product_id = await ProductRepository(mock_db).create("elf-duck", dto, ["mango", "ice"])

        assert product_id == 1
        mock_db.transaction.assert_called_once()
        assert mock_conn.execute.await_count == 2
        assert mock_conn.execute.await_args.args[1:] == (1, "ice", "Ice", True, ["#fff", "#0ff"], 0)

    @pytest.mark.asyncio
    async def test_create_duplicate_key(self, mock_db: AsyncMock, mock_conn: AsyncMock) -> None:
        mock_conn.fetchval.side_effect = asyncpg.UniqueViolationError("duplicate key")

        with pytest.raises(ConflictError):
            await ProductRepository(mock_db).create(
                "elf-duck", ProductCreateDTO(category_key="liquids", title1="Elf Duck"), []
            )

    @pytest.mark.asyncio
    async def test_flavor_key_check_is_case_insensitive(self, mock_db: AsyncMock) -> None:
        mock_db.fetchval.return_value = True

        assert await ProductRepository(mock_db).flavor_key_exists(1, "MANGO") is True
        assert "lower(flavor_key) = lower($2)" in mock_db.fetchval.await_args.args[0]
