# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("BOT_TOKEN", "123456:test_bot_token")
os.environ.setdefault("DB_PASSWORD", "test_password")

from duckshop.core.catalog.models import Flavor, Product, StockEntry  # noqa: E402
from duckshop.core.users.models import ReferralEntry, RegisterUserDTO, User  # noqa: E402


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture(scope="session")
def lang_dict_path(project_root: Path) -> Path:
    """Путь к файлу локализации."""
    return project_root / "config" / "lang_dict.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Комментарий должен быть отброшен",
        "PROJECT_NAME": "duck_shop_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "WEBAPP_URL": "https://shop.example.com/app",
        "WEBHOOK_HOST": "https://bot.example.com",
        "WEBHOOK_PATH": "/tg",
        "DB_NAME": "duck_shop_test",
        "DB_MIN_POOL_SIZE": 1,
        "DB_MAX_POOL_SIZE": 3,
        "DB_APPLY_SCHEMA": False,
        "CORS_ORIGINS": ["https://shop.example.com"],
        "SHOP_NAME": "TEST DUCK",
        "REFERRAL_CODE_LENGTH": 8,
        "REFERRAL_CODE_ATTEMPTS": 3,
        "KEY_MAX_LENGTH": 32,
        "KEY_SUFFIX_ATTEMPTS": 10,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_conn() -> AsyncMock:
    """Мок соединения внутри транзакции."""
    conn = AsyncMock()
    conn.fetchval = AsyncMock(return_value=None)
    conn.fetchrow = AsyncMock(return_value=None)
    conn.execute = AsyncMock(return_value="UPDATE 1")
    conn.executemany = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> AsyncMock:
    """Мок менеджера базы данных; transaction() отдаёт mock_conn."""
    db = AsyncMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)
    db.health_check = AsyncMock(return_value=True)

    @asynccontextmanager
    async def transaction() -> AsyncGenerator[AsyncMock, None]:
        yield mock_conn

    db.transaction = MagicMock(side_effect=transaction)
    return db


# =============================================================================
# IN-MEMORY РЕПОЗИТОРИЙ ПОЛЬЗОВАТЕЛЕЙ
# =============================================================================

class InMemoryUserRepository:
    """
    Репозиторий пользователей в памяти с той же семантикой, что и SQL-версия:
    код пишется только в пустое поле, атрибуция только один раз.
    """

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.referrals: list[tuple[int, str]] = []
        # Коды, занятые "чужими" пользователями
        self.taken_codes: set[str] = set()
        self._next_id = 1

    def _by_id(self, user_id: int) -> User:
        return next(u for u in self.users.values() if u.id == user_id)

    async def get_by_telegram_id(self, telegram_id: str) -> Optional[User]:
        user = self.users.get(telegram_id)
        return user.model_copy(deep=True) if user else None

    async def get_by_referral_code(self, code: str) -> Optional[User]:
        for user in self.users.values():
            if user.referral.code == code:
                return user.model_copy(deep=True)
        return None

    async def create(self, dto: RegisterUserDTO) -> tuple[User, bool]:
        existing = self.users.get(dto.telegram_id)
        if existing is not None:
            return existing.model_copy(deep=True), False

        user = User(
            id=self._next_id,
            telegram_id=dto.telegram_id,
            username=dto.username,
            first_name=dto.first_name,
            last_name=dto.last_name,
            photo_url=dto.photo_url,
            created_at=datetime.now(timezone.utc),
        )
        self._next_id += 1
        self.users[user.telegram_id] = user
        return user.model_copy(deep=True), True

    async def update_profile(self, telegram_id: str, updates: dict[str, Any]) -> Optional[User]:
        user = self.users.get(telegram_id)
        if user is None:
            return None
        for key, value in updates.items():
            setattr(user, key, value)
        return user.model_copy(deep=True)

    async def referral_code_exists(self, code: str) -> bool:
        return code in self.taken_codes or any(
            u.referral.code == code for u in self.users.values()
        )

    async def assign_referral_code(self, user_id: int, code: str) -> Optional[str]:
        user = self._by_id(user_id)
        if user.referral.code:
            return user.referral.code
        if await self.referral_code_exists(code):
            return None
        user.referral.code = code
        return code

    async def apply_referral(self, invitee_id: int, inviter: User, ref_code: str) -> bool:
        invitee = self._by_id(invitee_id)
        if invitee.referral.referred_by:
            return False
        if any(t == invitee.telegram_id for _, t in self.referrals):
            return False

        invitee.referral.referred_by = inviter.telegram_id
        invitee.referral.referred_by_code = ref_code
        invitee.referral.referred_at = datetime.now(timezone.utc)
        self.referrals.append((inviter.id, invitee.telegram_id))
        self._by_id(inviter.id).referral.referrals_count += 1
        return True

    async def list_referrals(self, inviter_id: int) -> list[ReferralEntry]:
        return [
            ReferralEntry(invitee_telegram_id=telegram_id)
            for user_id, telegram_id in self.referrals
            if user_id == inviter_id
        ]


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    """Пустой репозиторий пользователей в памяти."""
    return InMemoryUserRepository()


# =============================================================================
# IN-MEMORY РЕПОЗИТОРИЙ ТОВАРОВ
# =============================================================================

class InMemoryProductRepository:
    """
    Товары со вкусами и остатками в памяти.
    upsert_stock повторяет ON CONFLICT (flavor_id, pickup_point_id) из SQL-версии.
    """

    def __init__(self, products: list[Product]) -> None:
        self.products: dict[int, Product] = {p.id: p.model_copy(deep=True) for p in products}

    def _flavor(self, flavor_id: int) -> Optional[Flavor]:
        for product in self.products.values():
            flavor = product.find_flavor(flavor_id)
            if flavor is not None:
                return flavor
        return None

    async def get_by_id(self, product_id: int, only_active: bool = False) -> Optional[Product]:
        product = self.products.get(product_id)
        if product is None or (only_active and not product.is_active):
            return None
        return product.model_copy(deep=True)

    async def flavor_exists(self, product_id: int, flavor_id: int) -> bool:
        product = self.products.get(product_id)
        return product is not None and product.find_flavor(flavor_id) is not None

    async def upsert_stock(
        self,
        flavor_id: int,
        pickup_point_id: int,
        total_qty: int,
        reserved_qty: Optional[int],
        updated_by: Optional[str],
    ) -> None:
        flavor = self._flavor(flavor_id)
        if flavor is None:
            raise KeyError(flavor_id)
        entry = next((e for e in flavor.stock if e.pickup_point_id == pickup_point_id), None)
        if entry is None:
            flavor.stock.append(
                StockEntry(
                    pickup_point_id=pickup_point_id,
                    total_qty=total_qty,
                    reserved_qty=reserved_qty or 0,
                    updated_by_telegram_id=updated_by,
                    updated_at=datetime.now(timezone.utc),
                )
            )
            return

        entry.total_qty = total_qty
        if reserved_qty is not None:
            entry.reserved_qty = reserved_qty
        entry.updated_by_telegram_id = updated_by
        entry.updated_at = datetime.now(timezone.utc)


@pytest.fixture
def product_repo() -> InMemoryProductRepository:
    """Один товар с двумя вкусами и без остатков."""
    return InMemoryProductRepository(
        [
            Product(
                id=1,
                product_key="elf-duck",
                category_key="liquids",
                title1="Elf Duck",
                flavors=[
                    Flavor(id=10, flavor_key="mango", label="Mango"),
                    Flavor(id=11, flavor_key="ice", label="Ice"),
                ],
            )
        ]
    )


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_user_row() -> dict[str, Any]:
    """Строка таблицы users."""
    return {
        "id": 1,
        "telegram_id": "100500",
        "username": "duck_lover",
        "first_name": "Иван",
        "last_name": "Петров",
        "photo_url": None,
        "referral_code": "ab12cd",
        "referred_by": None,
        "referred_by_code": None,
        "referred_at": None,
        "referrals_count": 2,
        "created_at": datetime.now(timezone.utc),
        "updated_at": datetime.now(timezone.utc),
    }


@pytest.fixture
def sample_pickup_point_row() -> dict[str, Any]:
    """Строка таблицы pickup_points."""
    return {
        "id": 5,
        "key": "center",
        "title": "Центр",
        "address": "ул. Пушкина, 1",
        "sort_order": 0,
        "is_active": True,
        "allowed_admin_telegram_ids": ["777"],
    }


@pytest.fixture
def sample_product_row() -> dict[str, Any]:
    """Строка таблицы products."""
    return {
        "id": 1,
        "product_key": "elf-duck",
        "category_key": "liquids",
        "is_active": True,
        "title1": "Elf Duck",
        "title2": "30 ml",
        "title_modal": "Elf Duck 30 ml",
        "price": 12.5,
        "card_bg_url": "",
        "card_duck_url": "",
        "order_img_url": "",
        "class_card_duck": "",
        "class_actions": "",
        "class_new_badge": "",
        "new_badge": "",
        "accent_color": "#ffcc00",
        "version": 3,
        "created_at": datetime.now(timezone.utc),
        "updated_at": datetime.now(timezone.utc),
    }
