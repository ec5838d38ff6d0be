"""Shared Redis client for sessions and password reset tokens.

The client is created on first use, so the in-memory backend never opens a
connection. Connections are pooled and decode responses to `str`.
"""

from __future__ import annotations

import redis.asyncio as redis

from .config import settings
from .logging import get_logger

logger = get_logger(__name__)

MAX_CONNECTIONS = 50

_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    global _client
    if _client is None:
        pool = redis.ConnectionPool.from_url(
            settings.redis_url,
            decode_responses=True,
            max_connections=MAX_CONNECTIONS,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        _client = redis.Redis(connection_pool=pool)
        logger.info("Redis connection pool initialized", max_connections=MAX_CONNECTIONS)
    return _client


async def close_redis_pool() -> None:
    """Close the client and its pool at shutdown; a later call reconnects."""
    global _client
    if _client is None:
        return
    client, _client = _client, None
    await client.aclose(close_connection_pool=True)
    logger.info("Redis connection pool closed")
