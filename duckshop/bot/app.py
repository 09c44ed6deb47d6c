"""
Инициализация Telegram бота.
Создание Bot и Dispatcher, настройка webhook/polling.
"""

from __future__ import annotations

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.webhook.aiohttp_server import SimpleRequestHandler, setup_application
from aiohttp import web

from duckshop.common.constants import TypeMsg
from duckshop.common.logger import log_info
from duckshop.core.users import ReferralService, UserService


def create_bot(token: str | None = None) -> Bot:
    """
    Создаёт экземпляр бота.

    Args:
        token: Токен бота (если None, берётся из конфига)
    """
    if token is None:
        from duckshop.config import settings
        token = settings.telegram.BOT_TOKEN

    if not token:
        raise ValueError("BOT_TOKEN не задан")

    return Bot(
        token=token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_dispatcher(user_service: UserService, referral_service: ReferralService) -> Dispatcher:
    """
    Создаёт диспетчер.
    Сервисы передаются хендлерам через workflow data диспетчера.

    Args:
        user_service: Сервис пользователей
        referral_service: Сервис реферальной программы
    """
    dp = Dispatcher(
        storage=MemoryStorage(),
        user_service=user_service,
        referral_service=referral_service,
    )

    from duckshop.bot.handlers import register_routers
    register_routers(dp)

    from duckshop.bot.middleware import register_middleware
    register_middleware(dp)

    return dp


async def setup_webhook(bot: Bot, webhook_url: str, secret: str = "") -> None:
    """Регистрирует webhook в Telegram."""
    await log_info(f"Настройка webhook: {webhook_url}", type_msg=TypeMsg.INFO)
    await bot.set_webhook(
        url=webhook_url,
        secret_token=secret or None,
        drop_pending_updates=True,
    )


async def remove_webhook(bot: Bot) -> None:
    """Удаляет webhook."""
    await bot.delete_webhook(drop_pending_updates=True)
    await log_info("Webhook удалён", type_msg=TypeMsg.INFO)


def create_webhook_app(bot: Bot, dp: Dispatcher, path: str, secret: str = "") -> web.Application:
    """
    Собирает aiohttp-приложение, принимающее апдейты на указанном пути.

    Args:
        bot: Экземпляр бота
        dp: Диспетчер
        path: Путь, на который Telegram шлёт апдейты
        secret: Значение X-Telegram-Bot-Api-Secret-Token
    """
    app = web.Application()
    SimpleRequestHandler(
        dispatcher=dp,
        bot=bot,
        secret_token=secret or None,
    ).register(app, path=path)
    setup_application(app, dp, bot=bot)
    return app
