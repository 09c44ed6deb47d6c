"""
Общие утилиты, константы, исключения и логгер.
"""

from duckshop.common.logger import get_logger, log_info, log_error, log_warning, log_debug
from duckshop.common.constants import TypeMsg
from duckshop.common.exceptions import (
    ShopError,
    ValidationError,
    UnauthorizedError,
    NotFoundError,
    ConflictError,
    ConfigurationError,
)
from duckshop.common.localization import get_text, load_lang_dict

__all__ = [
    "get_logger",
    "log_info",
    "log_error",
    "log_warning",
    "log_debug",
    "TypeMsg",
    "ShopError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "ConfigurationError",
    "get_text",
    "load_lang_dict",
]
