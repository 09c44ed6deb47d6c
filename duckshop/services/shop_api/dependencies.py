"""
Зависимости Shop API.
Контейнер создаётся в lifespan приложения и хранится в app.state.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request

from duckshop.common.constants import ADMIN_TOKEN_HEADER, TypeMsg
from duckshop.common.exceptions import ConfigurationError, UnauthorizedError
from duckshop.common.logger import log_error, log_info
from duckshop.config.loader import Settings
from duckshop.core.cart import CartRepository, CartService
from duckshop.core.catalog import (
    CatalogService,
    CategoryRepository,
    PickupPointRepository,
    ProductRepository,
)
from duckshop.core.users import ReferralService, UserRepository, UserService
from duckshop.infra.database import DatabaseManager


@dataclass
class ShopContainer:
    """Все долгоживущие объекты API: пул БД и сервисы поверх него."""

    db: DatabaseManager
    users: UserService
    referrals: ReferralService
    catalog: CatalogService
    cart: CartService
    admin_token: str = ""

    async def startup(self, apply_schema: bool = True) -> None:
        """Подключается к БД и при необходимости применяет схему."""
        await self.db.connect()
        if apply_schema:
            await self.db.init_schema()
        await log_info("Shop API: зависимости инициализированы", type_msg=TypeMsg.INFO)

    async def shutdown(self) -> None:
        """Закрывает пул соединений."""
        await self.db.disconnect()
        await log_info("Shop API: зависимости освобождены", type_msg=TypeMsg.DEBUG)


def build_services(db: DatabaseManager, settings: Settings) -> ShopContainer:
    """
    Собирает репозитории и сервисы поверх переданного менеджера БД.

    Args:
        db: Менеджер БД (ещё может быть не подключён)
        settings: Настройки приложения
    """
    user_repo = UserRepository(db)
    pickup_repo = PickupPointRepository(db)

    referrals = ReferralService(
        user_repo,
        code_length=settings.shop.REFERRAL_CODE_LENGTH,
        max_attempts=settings.shop.REFERRAL_CODE_ATTEMPTS,
    )
    catalog = CatalogService(
        CategoryRepository(db),
        ProductRepository(db),
        pickup_repo,
        key_max_length=settings.shop.KEY_MAX_LENGTH,
        key_attempts=settings.shop.KEY_SUFFIX_ATTEMPTS,
    )

    return ShopContainer(
        db=db,
        users=UserService(user_repo, referrals),
        referrals=referrals,
        catalog=catalog,
        cart=CartService(CartRepository(db), pickup_repo),
        admin_token=settings.shop.ADMIN_TOKEN,
    )


def build_container(settings: Settings) -> ShopContainer:
    """Создаёт контейнер с новым DatabaseManager из настроек."""
    return build_services(DatabaseManager.from_settings(settings.database), settings)


# =============================================================================
# FASTAPI DEPENDS
# =============================================================================

def get_container(request: Request) -> ShopContainer:
    container: Optional[ShopContainer] = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("ShopContainer не инициализирован")
    return container


def get_user_service(request: Request) -> UserService:
    return get_container(request).users


def get_referral_service(request: Request) -> ReferralService:
    return get_container(request).referrals


def get_catalog_service(request: Request) -> CatalogService:
    return get_container(request).catalog


def get_cart_service(request: Request) -> CartService:
    return get_container(request).cart


async def require_admin(
    request: Request,
    x_admin_token: Optional[str] = Header(default=None, alias=ADMIN_TOKEN_HEADER),
) -> None:
    """
    Проверяет заголовок x-admin-token.

    Raises:
        ConfigurationError: ADMIN_TOKEN на сервере не задан (500)
        UnauthorizedError: токен отсутствует или не совпадает (401)
    """
    expected = get_container(request).admin_token
    if not expected:
        await log_error("ADMIN_TOKEN не задан, админские методы недоступны")
        raise ConfigurationError("ADMIN_TOKEN is not configured")

    if not x_admin_token or not hmac.compare_digest(x_admin_token.encode(), expected.encode()):
        raise UnauthorizedError("Unauthorized")
