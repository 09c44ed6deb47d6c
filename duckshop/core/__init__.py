"""
Доменный слой: пользователи и рефералы, каталог, корзина.
"""
