"""
Модуль локализации текстов бота.
Переводы лежат в config/lang_dict.json: {"KEY": {"ru": "...", "en": "..."}}.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

DEFAULT_LANGUAGE = "ru"


def get_lang_dict_path() -> Path:
    """Возвращает путь к файлу локализации."""
    return Path(__file__).parent.parent.parent / "config" / "lang_dict.json"


@lru_cache()
def load_lang_dict() -> dict[str, dict[str, str]]:
    """
    Загружает словарь локализации из JSON файла (кэшируется).

    Returns:
        Словарь с переводами
    """
    lang_path = get_lang_dict_path()
    if not lang_path.exists():
        raise FileNotFoundError(f"Файл локализации не найден: {lang_path}")

    with open(lang_path, "r", encoding="utf-8") as f:
        return json.load(f)


def resolve_language(language_code: str | None) -> str:
    """Сводит language_code из Telegram (en-US, ru) к поддерживаемому языку."""
    if not language_code:
        return DEFAULT_LANGUAGE
    short = language_code.split("-")[0].lower()
    return short if short in ("ru", "en") else DEFAULT_LANGUAGE


def get_text(
    key: str,
    lang: str = DEFAULT_LANGUAGE,
    default: str | None = None,
    **kwargs: Any,
) -> str:
    """
    Получает локализованный текст по ключу.

    Args:
        key: Ключ перевода
        lang: Код языка (ru, en)
        default: Значение по умолчанию, если ключ не найден
        **kwargs: Параметры для форматирования строки

    Returns:
        Локализованный текст

    Example:
        >>> get_text("REFERRAL_INFO", "ru", code="ab12cd", count=3, link="https://t.me/bot?start=ref_ab12cd")
    """
    try:
        lang_dict = load_lang_dict()
    except FileNotFoundError:
        return default or f"[{key}]"

    translations = lang_dict.get(key)
    if not translations:
        return default or f"[{key}]"

    text = translations.get(lang) or translations.get(DEFAULT_LANGUAGE)
    if not text:
        text = next(iter(translations.values()), f"[{key}]")

    if kwargs:
        try:
            text = text.format(**kwargs)
        except KeyError:
            pass

    return text
