#!/usr/bin/env python3
# main.py
"""
Главная точка входа Duck Shop.
Запускает HTTP API, Telegram бота или оба компонента в одном процессе.

Использование:
    python main.py [api|bot|all]
"""

from __future__ import annotations

import asyncio
import signal
import sys

from duckshop.common.constants import TypeMsg
from duckshop.common.logger import log_error, log_info, setup_logging
from duckshop.config import settings
from duckshop.services.shop_api.dependencies import ShopContainer, build_container

VALID_MODES = ("api", "bot", "all")

# Флаг graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики SIGINT/SIGTERM для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def _wait_for_shutdown() -> None:
    if _shutdown_event is not None:
        await _shutdown_event.wait()
    else:
        await asyncio.Event().wait()


async def run_api(container: ShopContainer) -> None:
    """Запускает HTTP API под uvicorn."""
    import uvicorn

    from duckshop.services.shop_api.app import create_app

    config = uvicorn.Config(
        create_app(container),
        host=settings.api.API_HOST,
        port=settings.api.API_PORT,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )
    server = uvicorn.Server(config)

    await log_info(
        f"Shop API слушает {settings.api.API_HOST}:{settings.api.API_PORT}",
        type_msg=TypeMsg.INFO,
    )
    await server.serve()


async def run_bot(container: ShopContainer) -> None:
    """Запускает Telegram бота: webhook, если он включён, иначе polling."""
    from aiohttp import web

    from duckshop.bot.app import (
        create_bot,
        create_dispatcher,
        create_webhook_app,
        remove_webhook,
        setup_webhook,
    )

    await log_info("Запуск Telegram Bot...", type_msg=TypeMsg.INFO)

    bot = create_bot()
    dp = create_dispatcher(container.users, container.referrals)
    tg = settings.telegram

    try:
        if tg.USE_WEBHOOK and tg.WEBHOOK_URL_MAIN:
            await setup_webhook(bot, tg.WEBHOOK_URL_MAIN, tg.WEBHOOK_SECRET or "")

            app = create_webhook_app(
                bot,
                dp,
                path=f"{tg.WEBHOOK_PATH}/{tg.BOT_TOKEN}",
                secret=tg.WEBHOOK_SECRET or "",
            )
            runner = web.AppRunner(app)
            await runner.setup()
            site = web.TCPSite(runner, host=tg.WEBHOOK_LISTEN_HOST, port=tg.WEBHOOK_LISTEN_PORT)
            await site.start()

            await log_info(
                f"Bot запущен в режиме webhook на {tg.WEBHOOK_LISTEN_HOST}:{tg.WEBHOOK_LISTEN_PORT}",
                type_msg=TypeMsg.INFO,
            )
            try:
                await _wait_for_shutdown()
            finally:
                await log_info("Bot (webhook): остановка сервера...", type_msg=TypeMsg.DEBUG)
                await runner.cleanup()
        else:
            await log_info(
                f"Webhook отключен (USE_WEBHOOK={tg.USE_WEBHOOK}). Запуск в режиме polling",
                type_msg=TypeMsg.INFO,
            )
            await remove_webhook(bot)
            await dp.start_polling(bot, handle_signals=False)
    except asyncio.CancelledError:
        await log_info("Bot: завершение работы...", type_msg=TypeMsg.INFO)
        raise
    finally:
        await bot.session.close()
        await log_info("Bot остановлен", type_msg=TypeMsg.INFO)


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: api, bot или all. Если None, берётся из COMPONENT_MODE.
    """
    setup_logging()
    setup_signal_handlers()

    mode = mode or settings.system.COMPONENT_MODE
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим запуска '{mode}', допустимы: {', '.join(VALID_MODES)}")
        sys.exit(2)

    await log_info(
        f"Duck Shop v{settings.system.VERSION}: запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    container = build_container(settings)
    await container.startup(apply_schema=settings.database.DB_APPLY_SCHEMA)

    try:
        if mode in ("api", "all"):
            _running_tasks.append(asyncio.create_task(run_api(container), name="api"))
        if mode in ("bot", "all"):
            _running_tasks.append(asyncio.create_task(run_bot(container), name="bot"))

        results = await asyncio.gather(*_running_tasks, return_exceptions=True)
        for task, result in zip(_running_tasks, results):
            if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                await log_error(f"Компонент {task.get_name()} упал: {result!r}")
    finally:
        await container.shutdown()
        await log_info("Все компоненты остановлены", type_msg=TypeMsg.INFO)


if __name__ == "__main__":
    cli_mode = sys.argv[1] if len(sys.argv) > 1 else None
    try:
        asyncio.run(main(cli_mode))
    except KeyboardInterrupt:
        print("\nОстановлено пользователем")
