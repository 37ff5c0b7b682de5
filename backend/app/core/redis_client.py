"""
Redis client initialization and connection management.

Redis backs token revocation checks and the domain event channel.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError
from backend.app.core.config import settings

logger = logging.getLogger("livestock.redis")


# Create async Redis client
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency handing the shared client to the event publisher."""
    return redis_client


async def ping_redis() -> bool:
    """True when Redis answers; used by the health check."""
    try:
        return bool(await redis_client.ping())
    except (RedisError, OSError):
        logger.warning("Redis ping failed", exc_info=True)
        return False


async def close_redis():
    """Release the connection pool on application shutdown."""
    try:
        await redis_client.aclose()
    except (RedisError, OSError):
        logger.warning("Error closing Redis client", exc_info=True)
