"""
Модели данных пользователей и реферальной программы.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from duckshop.shared.models.common import ShopModel, TelegramId


class ReferralEntry(ShopModel):
    """Запись истории приглашений."""

    invitee_telegram_id: str = Field(..., description="Telegram ID приглашённого")
    created_at: Optional[datetime] = Field(None, description="Когда засчитано приглашение")


class ReferralInfo(ShopModel):
    """Реферальный блок пользователя."""

    code: Optional[str] = Field(None, description="Собственный реферальный код")
    referred_by: Optional[str] = Field(None, description="Telegram ID пригласившего")
    referred_by_code: Optional[str] = Field(None, description="Код, по которому пришёл пользователь")
    referred_at: Optional[datetime] = Field(None, description="Момент атрибуции")
    referrals_count: int = Field(0, ge=0, description="Количество приглашённых")
    referrals: list[ReferralEntry] = Field(default_factory=list, description="История приглашений")


class User(ShopModel):
    """Модель пользователя."""

    id: int = Field(..., description="Внутренний ID")
    telegram_id: str = Field(..., description="Telegram ID пользователя")
    username: Optional[str] = Field(None, description="Username в Telegram")
    first_name: Optional[str] = Field(None, description="Имя")
    last_name: Optional[str] = Field(None, description="Фамилия")
    photo_url: Optional[str] = Field(None, description="Аватар")
    referral: ReferralInfo = Field(default_factory=ReferralInfo)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        """Отображаемое имя (username или имя)."""
        if self.username:
            return f"@{self.username}"
        return self.first_name or self.telegram_id


class RegisterUserDTO(ShopModel):
    """DTO регистрации пользователя из Mini App или бота."""

    telegram_id: Optional[TelegramId] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    photo_url: Optional[str] = None
    ref: Optional[str] = None

    def profile_fields(self) -> dict[str, str]:
        """Непустые поля профиля для обновления существующего пользователя."""
        fields = {
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "photo_url": self.photo_url,
        }
        return {key: value for key, value in fields.items() if value}


class ReferralStats(ShopModel):
    """Сводка по реферальной программе пользователя."""

    telegram_id: str
    code: Optional[str] = None
    referrals_count: int = 0
    referrals: list[ReferralEntry] = Field(default_factory=list)
