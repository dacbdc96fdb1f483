"""
Centralized Redis connection configuration and shared client.

Preferences (search radius, cached fix, permission flag, saved and recent
locations) are persisted through this client when the Redis-backed store is
in use.
"""

from __future__ import annotations

import logging
import os
from typing import Final

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError

logger = logging.getLogger(__name__)

DEFAULT_REDIS_URL: Final[str] = "redis://redis:6379"
REDIS_URL_ENV_VAR: Final[str] = "REDIS_URL"


class _RedisState:
    client: aioredis.Redis | None = None


def get_redis_url() -> str:
    """Return the configured Redis URL (``REDIS_URL``) or the default."""
    redis_url = os.getenv(REDIS_URL_ENV_VAR, "").strip()
    if redis_url:
        return redis_url
    return DEFAULT_REDIS_URL


async def get_shared_redis() -> aioredis.Redis:
    """
    Return a process-wide shared async Redis client.

    The client is created lazily and verified with ``ping()``; a lost
    connection is re-established on the next call.
    """
    if _RedisState.client is not None:
        try:
            await _RedisState.client.ping()
        except (RedisConnectionError, AttributeError, OSError):
            logger.warning("Shared Redis connection lost, reconnecting...")
            _RedisState.client = None
        else:
            return _RedisState.client

    client = aioredis.from_url(
        get_redis_url(),
        decode_responses=True,
        socket_connect_timeout=2,
    )
    await client.ping()
    _RedisState.client = client
    logger.info("Shared Redis client connected")
    return client


async def close_shared_redis() -> None:
    client = _RedisState.client
    _RedisState.client = None
    if client is not None:
        await client.aclose()
