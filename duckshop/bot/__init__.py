"""
Telegram бот магазина (aiogram 3).
"""
