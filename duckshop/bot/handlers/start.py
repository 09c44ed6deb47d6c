"""
Команды /start и /ref.
"""

from __future__ import annotations

from aiogram import Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import Message

from duckshop.bot.keyboards import get_shop_keyboard
from duckshop.bot.links import build_invite_link, build_webapp_link
from duckshop.common.constants import TypeMsg
from duckshop.common.localization import get_text, resolve_language
from duckshop.common.logger import log_error, log_info
from duckshop.config import settings
from duckshop.core.users import ReferralService, RegisterUserDTO, UserService

router = Router(name="start")


def _register_dto(message: Message, ref: str | None = None) -> RegisterUserDTO:
    tg_user = message.from_user
    return RegisterUserDTO(
        telegram_id=str(tg_user.id),
        username=tg_user.username,
        first_name=tg_user.first_name,
        last_name=tg_user.last_name,
        ref=ref,
    )


@router.message(CommandStart())
async def cmd_start(
    message: Message,
    command: CommandObject,
    user_service: UserService,
    referral_service: ReferralService,
) -> None:
    """
    Обработчик /start [payload].

    Создаёт пользователя (новому засчитывается приглашение из payload),
    выдаёт ему реферальный код и отвечает кнопкой запуска Mini App.
    """
    lang = resolve_language(message.from_user.language_code if message.from_user else None)
    try:
        payload = (command.args or "").strip()

        await log_info(
            f"Команда /start от пользователя {message.from_user.id} (payload={payload or '-'})",
            type_msg=TypeMsg.DEBUG,
        )

        user = await user_service.register_user(_register_dto(message, ref=payload or None))
        code = await referral_service.ensure_code(user)

        link = build_webapp_link(settings.telegram.WEBAPP_URL, payload, code)
        caption = get_text("WELCOME", lang, shop_name=settings.shop.SHOP_NAME)
        keyboard = get_shop_keyboard(link, lang)

        if settings.telegram.START_BANNER_URL:
            await message.answer_photo(
                photo=settings.telegram.START_BANNER_URL,
                caption=caption,
                reply_markup=keyboard,
            )
        else:
            await message.answer(caption, reply_markup=keyboard)
    except Exception as e:
        await log_error(f"Ошибка в cmd_start: {e}", exc_info=True)
        await message.answer(get_text("ERROR_GENERIC", lang))


@router.message(Command("ref"))
async def cmd_ref(
    message: Message,
    user_service: UserService,
    referral_service: ReferralService,
) -> None:
    """Показывает реферальный код, число приглашённых и ссылку-приглашение."""
    lang = resolve_language(message.from_user.language_code if message.from_user else None)
    try:
        user = await user_service.register_user(_register_dto(message))
        stats = await referral_service.get_stats(user.telegram_id)
        if not stats.code:
            await message.answer(get_text("ERROR_GENERIC", lang))
            return

        me = await message.bot.me()
        await message.answer(
            get_text(
                "REFERRAL_INFO",
                lang,
                code=stats.code,
                count=stats.referrals_count,
                link=build_invite_link(me.username, stats.code),
            )
        )
    except Exception as e:
        await log_error(f"Ошибка в cmd_ref: {e}", exc_info=True)
        await message.answer(get_text("ERROR_GENERIC", lang))
