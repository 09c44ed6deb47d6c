"""
Общие модели для API и доменного слоя.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _coerce_telegram_id(value: Any) -> Any:
    """Telegram ID приходит и числом, и строкой; храним строкой."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


TelegramId = Annotated[str, BeforeValidator(_coerce_telegram_id)]


class ShopModel(BaseModel):
    """
    Базовая модель магазина.
    Наружу отдаётся camelCase, принимаются оба варианта имён.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_api(self) -> dict[str, Any]:
        """Сериализует модель для JSON-ответа."""
        return self.model_dump(by_alias=True, mode="json")


class ErrorResponse(ShopModel):
    """Стандартный ответ с ошибкой."""

    ok: bool = False
    error: str


class HealthStatus(BaseModel):
    """Статус здоровья сервиса."""

    service: str
    status: str = "healthy"  # healthy, degraded, unhealthy
    version: str | None = None
    uptime_seconds: float | None = None
    dependencies: dict[str, str] = Field(default_factory=dict)
