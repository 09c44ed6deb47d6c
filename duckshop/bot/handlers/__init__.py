"""
Хендлеры Telegram бота.
"""

from aiogram import Dispatcher

from duckshop.bot.handlers.start import router as start_router


def register_routers(dp: Dispatcher) -> None:
    """
    Регистрирует все роутеры в диспетчере.

    Args:
        dp: Диспетчер
    """
    dp.include_router(start_router)


__all__ = ["register_routers", "start_router"]
