"""
Middleware для логирования входящих событий.
"""

from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Dict

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message, TelegramObject

from duckshop.common.constants import TypeMsg
from duckshop.common.logger import log_error, log_info


class LoggingMiddleware(BaseMiddleware):
    """
    Пишет в лог каждое сообщение или callback и время его обработки.
    Ошибка хендлера логируется и пробрасывается дальше.
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user_id = None
        text = ""
        if isinstance(event, Message):
            user_id = event.from_user.id if event.from_user else None
            text = (event.text or "[no text]")[:50]
        elif isinstance(event, CallbackQuery):
            user_id = event.from_user.id if event.from_user else None
            text = event.data or "[no data]"

        started = time.perf_counter()
        try:
            result = await handler(event, data)
        except Exception as e:
            await log_error(
                f"Ошибка обработки события от {user_id}: {e}",
                extra={"user_id": user_id, "event_type": type(event).__name__},
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        await log_info(
            f"[{type(event).__name__}] user={user_id} text={text} ({elapsed_ms:.0f} ms)",
            type_msg=TypeMsg.DEBUG,
        )
        return result
