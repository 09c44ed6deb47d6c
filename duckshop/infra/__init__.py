"""
Инфраструктурный слой: подключение к PostgreSQL.
"""

from duckshop.infra.database import DatabaseManager, retry_on_connection_error

__all__ = ["DatabaseManager", "retry_on_connection_error"]
