"""
Redis connection factory for the shared cache backend.
Separated from business logic for clean architecture.
"""

from typing import Optional

import redis.asyncio as redis

from app.core.logging import get_logger

logger = get_logger(__name__)


async def connect_redis(url: str) -> Optional[redis.Redis]:
    """
    Open and ping a Redis connection.
    Returns None when Redis is unreachable so the caller can fall back to
    the in-process cache instead of failing startup.
    """
    client = redis.from_url(
        url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2.5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30,
    )
    try:
        await client.ping()
    except redis.RedisError as e:
        logger.error("redis_connection_failed", error=str(e))
        await client.aclose()
        return None

    logger.info("redis_connected")
    return client
