"""
Redis integration for ebook page generation.
"""

from .connection import (
    StoreUnavailableError,
    check_redis_connection,
    close_redis_connection,
    create_redis_connection,
)

__all__ = [
    "StoreUnavailableError",
    "check_redis_connection",
    "close_redis_connection",
    "create_redis_connection",
]
