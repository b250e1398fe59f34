"""
Redis client configuration (RQ job queue + readiness probe)
"""

import logging
from typing import Optional
import redis
from app.infrastructure.settings import get_settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """
    Get the shared Redis client.

    Responses stay as bytes: RQ stores pickled job payloads and cannot use a
    decode_responses=True connection.
    """
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        pool = redis.ConnectionPool.from_url(settings.REDIS_URL)
        _redis_client = redis.Redis(connection_pool=pool)
    return _redis_client


def ping_redis() -> bool:
    """Ping Redis to check connectivity"""
    try:
        return bool(get_redis().ping())
    except redis.RedisError as e:
        logger.warning(f"Redis ping failed: {e}")
        return False
