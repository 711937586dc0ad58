"""
Redis connection for the pricing snapshot lock.

Redis is optional at runtime: when it is down, snapshot writes fall back to
the database unique constraint and /health reports it.
"""

import logging

import redis.asyncio as redis
from backend.app.core.config import settings

logger = logging.getLogger(__name__)

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
    socket_connect_timeout=settings.redis_connect_timeout_seconds,
)


async def get_redis():
    """FastAPI dependency (tests override it)."""
    return redis_client


async def ping_redis() -> bool:
    try:
        return await redis_client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False


async def close_redis():
    """Close pooled connections on shutdown."""
    try:
        await redis_client.aclose()
    except redis.RedisError as exc:
        logger.warning("Error closing Redis client: %s", exc)
