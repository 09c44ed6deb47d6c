"""
Duck Shop: бэкенд Telegram Mini App магазина и Telegram-бот.
"""

__version__ = "1.0.0"
