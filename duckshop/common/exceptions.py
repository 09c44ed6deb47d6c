"""
Доменные исключения.
Каждое исключение знает свой HTTP-статус, API превращает их в {"ok": false, "error": ...}.
"""

from __future__ import annotations


class ShopError(Exception):
    """Базовая ошибка магазина."""

    status_code: int = 500

    def __init__(self, message: str = "Server error") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ShopError):
    """Не хватает обязательного поля или значение некорректно."""

    status_code = 400


class UnauthorizedError(ShopError):
    """Неверный или отсутствующий админский токен."""

    status_code = 401


class NotFoundError(ShopError):
    """Сущность не найдена."""

    status_code = 404


class ConflictError(ShopError):
    """Нарушение уникальности или устаревшая версия документа."""

    status_code = 409


class ConfigurationError(ShopError):
    """Сервер не сконфигурирован (например, не задан ADMIN_TOKEN)."""

    status_code = 500
