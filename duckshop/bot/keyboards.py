"""
Клавиатуры для Telegram бота.
"""

from __future__ import annotations

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, WebAppInfo
from aiogram.utils.keyboard import InlineKeyboardBuilder

from duckshop.common.localization import get_text


def get_shop_keyboard(webapp_url: str, lang: str = "ru") -> InlineKeyboardMarkup | None:
    """
    Одна кнопка запуска Mini App.

    Returns:
        Клавиатура или None, если адрес Mini App не настроен
    """
    if not webapp_url:
        return None

    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text=get_text("OPEN_SHOP_BUTTON", lang),
            web_app=WebAppInfo(url=webapp_url),
        ),
    )
    return builder.as_markup()
