"""
Реферальная программа: выдача кодов и атрибуция приглашений.
"""

from __future__ import annotations

import secrets
import string
from typing import Optional

from duckshop.common.constants import REF_PAYLOAD_PREFIX, TypeMsg
from duckshop.common.exceptions import NotFoundError
from duckshop.common.logger import log_error, log_info, log_warning
from duckshop.core.users.models import ReferralStats, User
from duckshop.core.users.repository import UserRepository

CODE_ALPHABET = string.digits + string.ascii_lowercase

# На сколько символов удлиняется код, если все короткие кандидаты заняты
FALLBACK_EXTRA_LENGTH = 4


class ReferralService:
    """
    Сервис реферальных кодов.

    Код выдаётся лениво и больше не меняется; пользователь
    может быть атрибутирован только один раз.
    """

    def __init__(
        self,
        users: UserRepository,
        code_length: int = 6,
        max_attempts: int = 5,
    ) -> None:
        self._users = users
        self._code_length = code_length
        self._max_attempts = max_attempts

    def generate_code(self, length: Optional[int] = None) -> str:
        """Генерирует случайный код из [0-9a-z]."""
        size = length or self._code_length
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(size))

    async def ensure_code(self, user: User) -> Optional[str]:
        """
        Возвращает реферальный код пользователя, создавая его при необходимости.

        Args:
            user: Пользователь (его referral.code обновляется на месте)

        Returns:
            Сохранённый код или None, если не удалось выдать даже
            удлинённый код (выдача повторится при следующем обращении)
        """
        if user.referral.code:
            return user.referral.code

        for attempt in range(1, self._max_attempts + 1):
            candidate = self.generate_code()
            if await self._users.referral_code_exists(candidate):
                await log_info(
                    f"Коллизия реферального кода {candidate} (попытка {attempt}/{self._max_attempts})",
                    type_msg=TypeMsg.DEBUG,
                )
                continue

            stored = await self._users.assign_referral_code(user.id, candidate)
            if stored is not None:
                user.referral.code = stored
                return stored

        await log_warning(
            f"Все {self._max_attempts} попыток выдать код пользователю {user.telegram_id} "
            f"дали коллизию, выдаём удлинённый код"
        )
        stored = await self._users.assign_referral_code(
            user.id,
            self.generate_code(self._code_length + FALLBACK_EXTRA_LENGTH),
        )
        if stored is None:
            await log_error(f"Не удалось выдать реферальный код пользователю {user.telegram_id}")
            return None

        user.referral.code = stored
        return stored

    async def resolve_inviter(self, raw_ref: Optional[str]) -> Optional[User]:
        """
        Находит пригласившего по коду, а затем по числовому Telegram ID.

        Args:
            raw_ref: Значение ref или start-payload (префикс ref_ допускается)
        """
        ref = (raw_ref or "").strip()
        if ref.startswith(REF_PAYLOAD_PREFIX):
            ref = ref[len(REF_PAYLOAD_PREFIX):]
        if not ref:
            return None

        inviter = await self._users.get_by_referral_code(ref)
        if inviter is None and ref.isdigit():
            inviter = await self._users.get_by_telegram_id(ref)
        return inviter

    async def attribute(self, new_user: User, raw_ref: Optional[str]) -> bool:
        """
        Засчитывает приглашение нового пользователя.

        Ничего не делает, если ref пустой, пригласивший не найден,
        это сам пользователь или пользователь уже атрибутирован.

        Returns:
            True если приглашение засчитано этим вызовом
        """
        inviter = await self.resolve_inviter(raw_ref)
        if inviter is None:
            return False

        if inviter.telegram_id == new_user.telegram_id:
            await log_info(
                f"Пользователь {new_user.telegram_id} пытался пригласить сам себя",
                type_msg=TypeMsg.DEBUG,
            )
            return False

        if new_user.referral.referred_by:
            return False

        ref_code = inviter.referral.code or (raw_ref or "").strip()
        applied = await self._users.apply_referral(new_user.id, inviter, ref_code)
        if not applied:
            await log_warning(
                f"Повторная атрибуция {new_user.telegram_id} -> {inviter.telegram_id} пропущена"
            )
            return False

        new_user.referral.referred_by = inviter.telegram_id
        new_user.referral.referred_by_code = ref_code
        await log_info(
            f"Пользователь {new_user.telegram_id} приглашён {inviter.telegram_id} (код {ref_code})",
            type_msg=TypeMsg.INFO,
        )
        return True

    async def get_stats(self, telegram_id: str) -> ReferralStats:
        """Код, число приглашённых и история для пользователя."""
        user = await self._users.get_by_telegram_id(telegram_id)
        if user is None:
            raise NotFoundError("User not found")

        code = await self.ensure_code(user)
        history = await self._users.list_referrals(user.id)
        return ReferralStats(
            telegram_id=user.telegram_id,
            code=code,
            referrals_count=user.referral.referrals_count,
            referrals=history,
        )
