"""
Сервис пользователей.
Регистрация из Mini App и бота, чтение профиля.
"""

from __future__ import annotations

from typing import Optional

from duckshop.common.constants import TypeMsg
from duckshop.common.exceptions import NotFoundError, ValidationError
from duckshop.common.logger import log_info
from duckshop.core.users.models import RegisterUserDTO, User
from duckshop.core.users.referral import ReferralService
from duckshop.core.users.repository import UserRepository


class UserService:
    """Сервис пользователей."""

    def __init__(self, users: UserRepository, referrals: ReferralService) -> None:
        """
        Инициализация сервиса.

        Args:
            users: Репозиторий пользователей
            referrals: Сервис реферальной программы
        """
        self._users = users
        self._referrals = referrals

    async def register_user(self, dto: RegisterUserDTO) -> User:
        """
        Регистрирует нового пользователя или обновляет существующего.

        Новый пользователь сразу получает реферальный код и, если передан ref,
        привязывается к пригласившему. У существующего обновляются только
        непустые поля профиля.

        Args:
            dto: Данные пользователя

        Returns:
            Актуальное состояние пользователя
        """
        if not dto.telegram_id:
            raise ValidationError("telegramId is required")

        user = await self._users.get_by_telegram_id(dto.telegram_id)
        created = False

        if user is None:
            user, created = await self._users.create(dto)

        if created:
            await self._referrals.ensure_code(user)
            if dto.ref:
                await self._referrals.attribute(user, dto.ref)
            await log_info(
                f"Пользователь зарегистрирован: {user.telegram_id} ({user.display_name})",
                type_msg=TypeMsg.INFO,
            )
        else:
            updated = await self._users.update_profile(user.telegram_id, dto.profile_fields())
            if updated is None:
                raise NotFoundError("User not found")
            user = updated
            await self._referrals.ensure_code(user)

        return await self.get_user(user.telegram_id)

    async def get_user(self, telegram_id: Optional[str]) -> User:
        """
        Получает пользователя по Telegram ID вместе с историей приглашений.

        Raises:
            ValidationError: telegram_id не передан
            NotFoundError: пользователь не найден
        """
        if not telegram_id:
            raise ValidationError("telegramId is required")

        user = await self._users.get_by_telegram_id(telegram_id)
        if user is None:
            raise NotFoundError("User not found")
        user.referral.referrals = await self._users.list_referrals(user.id)
        return user
