"""
Репозиторий пользователей и истории приглашений.
"""

from __future__ import annotations

from typing import Any, Optional

import asyncpg

from duckshop.common.constants import TypeMsg
from duckshop.common.logger import log_info
from duckshop.core.users.models import ReferralEntry, ReferralInfo, RegisterUserDTO, User
from duckshop.infra.database import DatabaseManager

USER_COLUMNS = """
    id, telegram_id, username, first_name, last_name, photo_url,
    referral_code, referred_by, referred_by_code, referred_at, referrals_count,
    created_at, updated_at
"""

# Поля профиля, которые можно обновлять через register-user
PROFILE_FIELDS = {"username", "first_name", "last_name", "photo_url"}


def row_to_user(row: Any) -> User:
    """Собирает модель User из строки таблицы users."""
    return User(
        id=row["id"],
        telegram_id=row["telegram_id"],
        username=row["username"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        photo_url=row["photo_url"],
        referral=ReferralInfo(
            code=row["referral_code"],
            referred_by=row["referred_by"],
            referred_by_code=row["referred_by_code"],
            referred_at=row["referred_at"],
            referrals_count=row["referrals_count"],
        ),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class UserRepository:
    """Репозиторий пользователей."""

    def __init__(self, db: DatabaseManager) -> None:
        """
        Инициализация репозитория.

        Args:
            db: Менеджер базы данных (Dependency Injection)
        """
        self._db = db

    async def get_by_telegram_id(self, telegram_id: str) -> Optional[User]:
        """
        Получает пользователя по Telegram ID.

        Args:
            telegram_id: Telegram ID (строкой)

        Returns:
            Пользователь или None
        """
        row = await self._db.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE telegram_id = $1",
            telegram_id,
        )
        return row_to_user(row) if row else None

    async def get_by_referral_code(self, code: str) -> Optional[User]:
        """Находит владельца реферального кода."""
        row = await self._db.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE referral_code = $1",
            code,
        )
        return row_to_user(row) if row else None

    async def create(self, dto: RegisterUserDTO) -> tuple[User, bool]:
        """
        Создаёт пользователя, если его ещё нет.

        Returns:
            (пользователь, создан ли он этим вызовом)
        """
        row = await self._db.fetchrow(
            f"""
            INSERT INTO users (telegram_id, username, first_name, last_name, photo_url)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (telegram_id) DO NOTHING
            RETURNING {USER_COLUMNS}
            """,
            dto.telegram_id,
            dto.username,
            dto.first_name,
            dto.last_name,
            dto.photo_url,
        )
        if row is not None:
            await log_info(f"Пользователь {dto.telegram_id} создан", type_msg=TypeMsg.DEBUG)
            return row_to_user(row), True

        # Параллельный запрос успел создать пользователя
        existing = await self.get_by_telegram_id(dto.telegram_id)
        if existing is None:
            raise RuntimeError(f"Пользователь {dto.telegram_id} пропал сразу после вставки")
        return existing, False

    async def update_profile(self, telegram_id: str, updates: dict[str, Any]) -> Optional[User]:
        """
        Обновляет поля профиля.
        Неизвестные поля игнорируются.
        """
        set_parts = []
        values: list[Any] = []
        idx = 1

        for key, value in updates.items():
            if key in PROFILE_FIELDS:
                set_parts.append(f"{key} = ${idx}")
                values.append(value)
                idx += 1

        if not set_parts:
            return await self.get_by_telegram_id(telegram_id)

        set_parts.append("updated_at = NOW()")
        values.append(telegram_id)

        row = await self._db.fetchrow(
            f"""
            UPDATE users
            SET {", ".join(set_parts)}
            WHERE telegram_id = ${idx}
            RETURNING {USER_COLUMNS}
            """,
            *values,
        )
        return row_to_user(row) if row else None

    # =========================================================================
    # РЕФЕРАЛЬНЫЙ КОД
    # =========================================================================

    async def referral_code_exists(self, code: str) -> bool:
        """Проверяет, занят ли код."""
        return bool(
            await self._db.fetchval(
                "SELECT EXISTS (SELECT 1 FROM users WHERE referral_code = $1)",
                code,
            )
        )

    async def assign_referral_code(self, user_id: int, code: str) -> Optional[str]:
        """
        Записывает код, только если у пользователя его ещё нет.

        Returns:
            Код, который в итоге сохранён у пользователя,
            или None, если кандидат уже занят другим пользователем.
        """
        try:
            stored = await self._db.fetchval(
                """
                UPDATE users
                SET referral_code = $2, updated_at = NOW()
                WHERE id = $1 AND referral_code IS NULL
                RETURNING referral_code
                """,
                user_id,
                code,
            )
        except asyncpg.UniqueViolationError:
            return None

        if stored is not None:
            return stored

        # Код уже был назначен параллельным запросом
        return await self._db.fetchval(
            "SELECT referral_code FROM users WHERE id = $1",
            user_id,
        )

    # =========================================================================
    # АТРИБУЦИЯ
    # =========================================================================

    async def apply_referral(
        self,
        invitee_id: int,
        inviter: User,
        ref_code: str,
    ) -> bool:
        """
        Привязывает приглашённого к пригласившему одной транзакцией.

        Счётчик и история пригласившего меняются, только если у приглашённого
        поле referred_by было пустым.

        Returns:
            True если атрибуция применена этим вызовом
        """
        async with self._db.transaction() as conn:
            invitee_telegram_id = await conn.fetchval(
                """
                UPDATE users
                SET referred_by = $2, referred_by_code = $3,
                    referred_at = NOW(), updated_at = NOW()
                WHERE id = $1 AND referred_by IS NULL
                RETURNING telegram_id
                """,
                invitee_id,
                inviter.telegram_id,
                ref_code,
            )
            if invitee_telegram_id is None:
                return False

            inserted = await conn.fetchval(
                """
                INSERT INTO referrals (inviter_id, invitee_telegram_id)
                VALUES ($1, $2)
                ON CONFLICT (invitee_telegram_id) DO NOTHING
                RETURNING id
                """,
                inviter.id,
                invitee_telegram_id,
            )
            if inserted is None:
                return False

            await conn.execute(
                """
                UPDATE users
                SET referrals_count = referrals_count + 1, updated_at = NOW()
                WHERE id = $1
                """,
                inviter.id,
            )
        return True

    async def list_referrals(self, inviter_id: int) -> list[ReferralEntry]:
        """История приглашений пользователя (старые первыми)."""
        rows = await self._db.fetch(
            """
            SELECT invitee_telegram_id, created_at
            FROM referrals
            WHERE inviter_id = $1
            ORDER BY created_at, id
            """,
            inviter_id,
        )
        return [
            ReferralEntry(
                invitee_telegram_id=row["invitee_telegram_id"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
