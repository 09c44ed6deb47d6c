"""
HTTP API магазина (FastAPI).
"""

from duckshop.services.shop_api.app import create_app

__all__ = ["create_app"]
