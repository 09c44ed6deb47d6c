"""
Маршруты пользователей и реферальной программы.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query

from duckshop.common.exceptions import ValidationError
from duckshop.core.users import ReferralService, RegisterUserDTO, UserService
from duckshop.services.shop_api.dependencies import get_referral_service, get_user_service

router = APIRouter(tags=["Users"])


@router.post("/register-user")
async def register_user(
    request: RegisterUserDTO,
    service: UserService = Depends(get_user_service),
) -> dict[str, Any]:
    """Регистрация или обновление пользователя из Mini App (с ref при первом входе)."""
    user = await service.register_user(request)
    return {"ok": True, "user": user.to_api()}


@router.get("/get-user")
async def get_user(
    telegram_id: Optional[str] = Query(None, alias="telegramId"),
    service: UserService = Depends(get_user_service),
) -> dict[str, Any]:
    user = await service.get_user(telegram_id)
    return {"ok": True, "user": user.to_api()}


@router.get("/referral")
async def get_referral(
    telegram_id: Optional[str] = Query(None, alias="telegramId"),
    service: ReferralService = Depends(get_referral_service),
) -> dict[str, Any]:
    """Реферальный код и история приглашений пользователя."""
    if not telegram_id:
        raise ValidationError("telegramId is required")

    stats = await service.get_stats(telegram_id)
    return {"ok": True, "referral": stats.to_api()}
