"""
Маршруты Shop API.
"""

from fastapi import FastAPI

from duckshop.services.shop_api.routes import admin, cart, catalog, users


def register_routes(app: FastAPI) -> None:
    """Подключает все роутеры к приложению."""
    app.include_router(users.router)
    app.include_router(catalog.router)
    app.include_router(cart.router)
    app.include_router(admin.router)


__all__ = ["register_routes"]
