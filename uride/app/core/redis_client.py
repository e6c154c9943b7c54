"""
Redis client initialization.

Redis holds revoked tokens. The client is created lazily by redis-py, so
importing this module never opens a connection.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError
from uride.app.core.config import settings

logger = logging.getLogger("uride.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency returning the shared Redis client."""
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection (used by /health).

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError) as e:
        logger.warning("Redis ping failed: %s", e)
        return False
