"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class DeliveryType(str, Enum):
    """Способ получения заказа."""
    DELIVERY = "delivery"
    PICKUP = "pickup"


class DeliveryMethod(str, Enum):
    """Служба доставки (только для delivery)."""
    COURIER = "courier"
    INPOST = "inpost"


class BadgeSide(str, Enum):
    """Сторона бейджа на карточке категории."""
    LEFT = "left"
    RIGHT = "right"


# Префикс реферального payload в deep link (t.me/bot?start=ref_xxxxxx)
REF_PAYLOAD_PREFIX = "ref_"

# Заголовок с админским токеном
ADMIN_TOKEN_HEADER = "x-admin-token"
