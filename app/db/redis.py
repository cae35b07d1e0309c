"""Redis connection management.

Mirrors engine.py: with REDIS_URL set there is one shared async client
(leaderboard cache, notification pub/sub); without it redis_pool is
None and both fall back to in-process implementations.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,
        max_connections=20,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis() -> AsyncIterator[None]:
    """Startup/shutdown hook for Redis, same shape as lifespan_db().

    An unreachable Redis at startup is logged, not fatal: the cache and
    the realtime feed degrade while the store keeps working.
    """
    if redis_pool is None:
        logger.info("No REDIS_URL configured — cache and realtime feed are in-process")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected")
    except RedisError:
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
