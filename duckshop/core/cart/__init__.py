"""
Корзина пользователя.
"""

from duckshop.core.cart.models import Cart, CartItem, CartReplaceDTO
from duckshop.core.cart.repository import CartRepository
from duckshop.core.cart.service import CartService

__all__ = ["Cart", "CartItem", "CartReplaceDTO", "CartRepository", "CartService"]
