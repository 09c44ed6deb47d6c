"""
Ссылки бота: запуск Mini App и реферальное приглашение.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from duckshop.common.constants import REF_PAYLOAD_PREFIX


def build_webapp_link(base_url: str, payload: str | None = None, ref_code: str | None = None) -> str:
    """
    Добавляет к адресу Mini App параметры startapp и ref.

    Существующие параметры base_url сохраняются, одноимённые перезаписываются.

    Args:
        base_url: WEBAPP_URL из конфига
        payload: start-payload, с которым пришёл пользователь
        ref_code: Собственный реферальный код пользователя
    """
    if not base_url:
        return ""

    parts = urlsplit(base_url)
    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    if payload:
        params["startapp"] = payload
    if ref_code:
        params["ref"] = ref_code

    return urlunsplit(parts._replace(query=urlencode(params)))


def build_invite_link(bot_username: str, ref_code: str) -> str:
    """Ссылка-приглашение t.me/<bot>?start=ref_<code>."""
    return f"https://t.me/{bot_username}?start={REF_PAYLOAD_PREFIX}{ref_code}"
