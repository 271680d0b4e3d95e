"""
Redis connection management for the page job queue.

The client is created explicitly by the process entry point and passed to
JobStore; nothing here holds module-level connection state.
"""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ebookgen.utils.logging import store_logger as logger


class StoreUnavailableError(Exception):
    """Raised when the key-value store is not configured or cannot be reached."""
    pass


def redact_url(redis_url: str) -> str:
    """Strip credentials from a Redis URL for logging."""
    return redis_url.split("@")[-1] if "@" in redis_url else redis_url


def create_redis_connection(redis_url: str | None) -> Redis:
    """
    Build an asyncio Redis client.

    Args:
        redis_url: redis:// or rediss:// URL (Upstash and Railway use rediss://)

    Returns:
        Redis client with string responses

    Raises:
        StoreUnavailableError: If no URL is configured
    """
    if not redis_url:
        raise StoreUnavailableError(
            "REDIS_URL environment variable is required for the job queue. "
            "Set REDIS_URL (or REDIS_PUBLIC_URL) to a local or hosted Redis."
        )

    return Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_timeout=10,
        socket_connect_timeout=10,
        retry_on_timeout=True,
        health_check_interval=30,
    )


async def check_redis_connection(client: Redis | None) -> bool:
    """Return True if the store answers a PING."""
    if client is None:
        logger.error("Redis client was not initialized")
        return False

    try:
        return bool(await client.ping())
    except (RedisError, OSError) as e:
        logger.error(f"Redis connection check failed: {e}")
        return False


async def close_redis_connection(client: Redis | None):
    """Close the Redis client (for cleanup)."""
    if client is not None:
        await client.aclose()
