"""
Общие Pydantic-модели.
"""

from duckshop.shared.models.common import (
    ErrorResponse,
    HealthStatus,
    ShopModel,
    TelegramId,
)

__all__ = ["ErrorResponse", "HealthStatus", "ShopModel", "TelegramId"]
