"""
Redis client initialization and connection management.

This module provides the Redis client used for cross-instance entity locks.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError
from backend.app.core.config import settings


# Create async Redis client (connects lazily on first command)
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def ping_redis() -> bool:
    """
    Test Redis connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except (RedisError, OSError):
        return False
