"""
Загрузчик конфигурации проекта.
Единственный источник истины: config/config.json.
Секретные данные переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации (CONFIG_PATH переопределяет)."""
    override = os.getenv("CONFIG_PATH")
    if override:
        return Path(override)
    return get_project_root() / "config" / "config.json"


def load_config_json(path: Path | None = None) -> dict[str, Any]:
    """Загружает config.json и возвращает словарь без ключей-комментариев."""
    config_path = path or get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


def _env_bool(name: str, fallback: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return fallback
    return value.strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "duck_shop"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    COMPONENT_MODE: str = "all"


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_FORMAT: str = "colored"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_MAX_BYTES: int = 10485760
    LOG_BACKUP_COUNT: int = 5


class TelegramSettings(BaseModel):
    """Настройки Telegram бота и Mini App."""
    BOT_TOKEN: str = ""
    WEBAPP_URL: str = ""
    START_BANNER_URL: str = ""
    USE_WEBHOOK: bool = False
    WEBHOOK_HOST: str = "https://example.com"
    WEBHOOK_PATH: str = "/webhook"
    WEBHOOK_URL_MAIN: str | None = None
    WEBHOOK_SECRET: str | None = None
    WEBHOOK_LISTEN_HOST: str = "0.0.0.0"
    WEBHOOK_LISTEN_PORT: int = 8000

    @field_validator("BOT_TOKEN", mode="before")
    @classmethod
    def get_from_env(cls, v: str | None) -> str:
        """Берёт токен из окружения (BOT_TOKEN или TELEGRAM_BOT_TOKEN), если он не задан."""
        if not v:
            return os.getenv("BOT_TOKEN") or os.getenv("TELEGRAM_BOT_TOKEN", "")
        return v

    @model_validator(mode="after")
    def compute_webhook_url(self) -> "TelegramSettings":
        """Вычисляет URL вебхука, если он не задан явно."""
        if not self.WEBHOOK_URL_MAIN and self.BOT_TOKEN and self.WEBHOOK_HOST:
            self.WEBHOOK_URL_MAIN = f"{self.WEBHOOK_HOST}{self.WEBHOOK_PATH}/{self.BOT_TOKEN}"
        return self


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "duck_shop"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 2
    DB_MAX_POOL_SIZE: int = 10
    DB_COMMAND_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0
    DB_APPLY_SCHEMA: bool = True

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str | None) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class ApiSettings(BaseModel):
    """Настройки HTTP API."""
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8080
    CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["*"])


class ShopSettings(BaseModel):
    """Бизнес-настройки магазина."""
    SHOP_NAME: str = "ELF DUCK SHOP"
    ADMIN_TOKEN: str = ""
    REFERRAL_CODE_LENGTH: int = Field(6, ge=4, le=32)
    REFERRAL_CODE_ATTEMPTS: int = Field(5, ge=1)
    KEY_MAX_LENGTH: int = Field(48, ge=8)
    KEY_SUFFIX_ATTEMPTS: int = Field(50, ge=1)

    @field_validator("ADMIN_TOKEN", mode="before")
    @classmethod
    def get_from_env(cls, v: str | None) -> str:
        """Получает админский токен из переменных окружения."""
        if not v:
            return os.getenv("ADMIN_TOKEN", "")
        return v


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    system: SystemSettings = Field(default_factory=SystemSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    shop: ShopSettings = Field(default_factory=ShopSettings)

    @classmethod
    def from_config_json(cls, path: Path | None = None) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и адреса переопределяются из переменных окружения.
        """
        data = load_config_json(path)

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "duck_shop"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=_env_bool("DEBUG", data.get("DEBUG", False)),
                ENVIRONMENT=os.getenv("ENVIRONMENT", data.get("ENVIRONMENT", "development")),
                COMPONENT_MODE=os.getenv("COMPONENT_MODE", data.get("COMPONENT_MODE", "all")),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=os.getenv("LOG_LEVEL", data.get("LOG_LEVEL", "DEBUG")),
                LOG_FORMAT=data.get("LOG_FORMAT", "colored"),
                LOG_TO_FILE=_env_bool("LOG_TO_FILE", data.get("LOG_TO_FILE", False)),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
                LOG_BACKUP_COUNT=data.get("LOG_BACKUP_COUNT", 5),
            ),
            telegram=TelegramSettings(
                BOT_TOKEN=os.getenv("BOT_TOKEN") or os.getenv("TELEGRAM_BOT_TOKEN") or data.get("BOT_TOKEN", ""),
                WEBAPP_URL=os.getenv("WEBAPP_URL", data.get("WEBAPP_URL", "")),
                START_BANNER_URL=os.getenv("START_BANNER_URL", data.get("START_BANNER_URL", "")),
                USE_WEBHOOK=_env_bool("USE_WEBHOOK", data.get("USE_WEBHOOK", False)),
                WEBHOOK_HOST=os.getenv("WEBHOOK_HOST", data.get("WEBHOOK_HOST", "https://example.com")),
                WEBHOOK_PATH=data.get("WEBHOOK_PATH", "/webhook"),
                WEBHOOK_URL_MAIN=data.get("WEBHOOK_URL_MAIN"),
                WEBHOOK_SECRET=os.getenv("WEBHOOK_SECRET", data.get("WEBHOOK_SECRET")),
                WEBHOOK_LISTEN_HOST=data.get("WEBHOOK_LISTEN_HOST", "0.0.0.0"),
                WEBHOOK_LISTEN_PORT=int(os.getenv("WEBHOOK_LISTEN_PORT", data.get("WEBHOOK_LISTEN_PORT", 8000))),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "duck_shop")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 2),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 10),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 60),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 1.0),
                DB_APPLY_SCHEMA=data.get("DB_APPLY_SCHEMA", True),
            ),
            api=ApiSettings(
                API_HOST=os.getenv("API_HOST", data.get("API_HOST", "0.0.0.0")),
                API_PORT=int(os.getenv("PORT", data.get("API_PORT", 8080))),
                CORS_ORIGINS=data.get("CORS_ORIGINS", ["*"]),
            ),
            shop=ShopSettings(
                SHOP_NAME=data.get("SHOP_NAME", "ELF DUCK SHOP"),
                ADMIN_TOKEN=os.getenv("ADMIN_TOKEN", data.get("ADMIN_TOKEN", "")),
                REFERRAL_CODE_LENGTH=data.get("REFERRAL_CODE_LENGTH", 6),
                REFERRAL_CODE_ATTEMPTS=data.get("REFERRAL_CODE_ATTEMPTS", 5),
                KEY_MAX_LENGTH=data.get("KEY_MAX_LENGTH", 48),
                KEY_SUFFIX_ATTEMPTS=data.get("KEY_SUFFIX_ATTEMPTS", 50),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Перед чтением config.json подгружает .env из корня проекта.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


settings = get_settings()
