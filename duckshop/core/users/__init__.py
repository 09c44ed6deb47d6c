"""
Пользователи и реферальная программа.
"""

from duckshop.core.users.models import (
    ReferralEntry,
    ReferralInfo,
    ReferralStats,
    RegisterUserDTO,
    User,
)
from duckshop.core.users.referral import ReferralService
from duckshop.core.users.repository import UserRepository
from duckshop.core.users.service import UserService

__all__ = [
    "ReferralEntry",
    "ReferralInfo",
    "ReferralStats",
    "RegisterUserDTO",
    "User",
    "ReferralService",
    "UserRepository",
    "UserService",
]
