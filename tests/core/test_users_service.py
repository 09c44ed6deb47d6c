# tests/core/test_users_service.py
"""
Тесты сервиса пользователей (регистрация с реферальной атрибуцией).
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from duckshop.common.exceptions import NotFoundError, ValidationError
from duckshop.core.users.models import RegisterUserDTO
from duckshop.core.users.referral import ReferralService
from duckshop.core.users.service import UserService


@pytest.fixture(autouse=True)
def quiet_logs():
    with (
        patch("duckshop.core.users.service.log_info", new=AsyncMock()),
        patch("duckshop.core.users.referral.log_info", new=AsyncMock()),
        patch("duckshop.core.users.referral.log_warning", new=AsyncMock()),
        patch("duckshop.core.users.referral.log_error", new=AsyncMock()),
    ):
        yield


@pytest.fixture
def user_service(user_repo) -> UserService:
    return UserService(user_repo, ReferralService(user_repo))


class TestRegisterUser:
    """Тесты register_user."""

    @pytest.mark.asyncio
    async def test_requires_telegram_id(self, user_service: UserService) -> None:
        with pytest.raises(ValidationError, match="telegramId is required"):
            await user_service.register_user(RegisterUserDTO(first_name="Anon"))

    @pytest.mark.asyncio
    async def test_new_user_gets_code(self, user_service: UserService) -> None:
        user = await user_service.register_user(RegisterUserDTO(telegram_id=100, username="duck"))

        assert user.telegram_id == "100"
        assert user.referral.code
        assert user.referral.referred_by is None

    @pytest.mark.asyncio
    async def test_invite_flow(self, user_service: UserService, user_repo) -> None:
        """A регистрируется, B приходит по коду A: у A один приглашённый, у B пригласивший A."""
        alice = await user_service.register_user(RegisterUserDTO(telegram_id="100", first_name="Alice"))

        bob = await user_service.register_user(
            RegisterUserDTO(telegram_id="200", first_name="Bob", ref=alice.referral.code)
        )

        assert bob.referral.referred_by == "100"
        assert bob.referral.referred_by_code == alice.referral.code
        assert bob.referral.referred_at is not None
        assert (await user_service.get_user("100")).referral.referrals_count == 1
        assert user_repo.referrals == [(alice.id, "200")]

    @pytest.mark.asyncio
    async def test_existing_user_is_not_attributed(self, user_service: UserService) -> None:
        """ref учитывается только при создании пользователя."""
        alice = await user_service.register_user(RegisterUserDTO(telegram_id="100"))
        await user_service.register_user(RegisterUserDTO(telegram_id="200"))

        bob = await user_service.register_user(
            RegisterUserDTO(telegram_id="200", ref=alice.referral.code)
        )

        assert bob.referral.referred_by is None
        assert (await user_service.get_user("100")).referral.referrals_count == 0

    @pytest.mark.asyncio
    async def test_self_ref_on_first_visit(self, user_service: UserService) -> None:
        user = await user_service.register_user(RegisterUserDTO(telegram_id="300", ref="300"))

        assert user.referral.referred_by is None
        assert user.referral.referrals_count == 0

    @pytest.mark.asyncio
    async def test_updates_only_filled_profile_fields(self, user_service: UserService) -> None:
        await user_service.register_user(
            RegisterUserDTO(telegram_id="100", username="old", first_name="Иван")
        )

        user = await user_service.register_user(RegisterUserDTO(telegram_id="100", username="new"))

        assert user.username == "new"
        assert user.first_name == "Иван"

    @pytest.mark.asyncio
    async def test_code_is_stable(self, user_service: UserService) -> None:
        first = await user_service.register_user(RegisterUserDTO(telegram_id="100"))
        second = await user_service.register_user(RegisterUserDTO(telegram_id="100"))

        assert first.referral.code == second.referral.code

    @pytest.mark.asyncio
    async def test_registration_survives_code_exhaustion(self, user_repo) -> None:
        """Все коды заняты: пользователь создаётся без кода, запрос не падает."""
        referrals = ReferralService(user_repo, max_attempts=1)
        service = UserService(user_repo, referrals)
        user_repo.taken_codes = {"aaaaaa"}

        with patch.object(referrals, "generate_code", return_value="aaaaaa"):
            user = await service.register_user(RegisterUserDTO(telegram_id="100"))

        assert user.telegram_id == "100"
        assert user.referral.code is None


class TestGetUser:
    """Тесты get_user."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("telegram_id", [None, ""])
    async def test_requires_telegram_id(self, user_service: UserService, telegram_id) -> None:
        with pytest.raises(ValidationError):
            await user_service.get_user(telegram_id)

    @pytest.mark.asyncio
    async def test_not_found(self, user_service: UserService) -> None:
        with pytest.raises(NotFoundError, match="User not found"):
            await user_service.get_user("404")

    @pytest.mark.asyncio
    async def test_includes_referral_history(self, user_service: UserService) -> None:
        """История приглашений приходит внутри user.referral."""
        alice = await user_service.register_user(RegisterUserDTO(telegram_id="100"))
        await user_service.register_user(RegisterUserDTO(telegram_id="200", ref=alice.referral.code))
        await user_service.register_user(RegisterUserDTO(telegram_id="300", ref=f"ref_{alice.referral.code}"))

        user = await user_service.get_user("100")

        assert [r.invitee_telegram_id for r in user.referral.referrals] == ["200", "300"]
        payload = user.to_api()["referral"]
        assert payload["referralsCount"] == 2
        assert [r["inviteeTelegramId"] for r in payload["referrals"]] == ["200", "300"]

    @pytest.mark.asyncio
    async def test_no_history_yet(self, user_service: UserService) -> None:
        await user_service.register_user(RegisterUserDTO(telegram_id="100"))

        assert (await user_service.get_user("100")).referral.referrals == []
