"""
Генерация человекочитаемых ключей (slug) для категорий, товаров,
вкусов и пунктов выдачи.
"""

from __future__ import annotations

import time
from typing import Awaitable, Callable

from slugify import slugify

DEFAULT_SLUG = "item"


def make_slug(title: str | None, max_length: int = 48) -> str:
    """
    Транслитерирует заголовок в ключ вида [a-z0-9-].

    Args:
        title: Человеческое название ("Утка Classic")
        max_length: Максимальная длина ключа

    Returns:
        Ключ ("utka-classic") или "item", если из названия ничего не осталось
    """
    slug = slugify(title or "", max_length=max_length, lowercase=True)
    return slug.strip("-") or DEFAULT_SLUG


def _with_suffix(base: str, suffix: str, max_length: int) -> str:
    room = max(max_length - len(suffix) - 1, 1)
    return f"{base[:room].rstrip('-')}-{suffix}"


async def ensure_unique_key(
    base: str,
    exists: Callable[[str], Awaitable[bool]],
    max_attempts: int = 50,
    max_length: int = 48,
) -> str:
    """
    Подбирает свободный ключ: base, base-2, base-3, ...

    Если все max_attempts вариантов заняты, добавляет
    метку времени в миллисекундах.

    Args:
        base: Уже нормализованный базовый ключ
        exists: Асинхронная проверка занятости ключа
        max_attempts: Сколько вариантов перебрать (включая сам base)
        max_length: Максимальная длина ключа
    """
    base = base or DEFAULT_SLUG
    if not await exists(base):
        return base

    for n in range(2, max_attempts + 1):
        candidate = _with_suffix(base, str(n), max_length)
        if not await exists(candidate):
            return candidate

    return _with_suffix(base, str(int(time.time() * 1000)), max_length)
