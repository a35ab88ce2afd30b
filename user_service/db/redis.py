"""Redis connection management.

Mirrors engine.py: when REDIS_URL is configured we create a real
connection pool; when it is None (local dev, tests) the event channel
falls back to its in-memory implementation and no Redis server is
needed.

Redis carries the outbound domain events.  Each (exchange, routing key)
pair maps to one Redis list that consumers drain with BRPOP, which gives
the same shape as a durable queue bound to a topic exchange.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

from user_service.core.config import SETTINGS

logger = logging.getLogger(__name__)

if SETTINGS.redis_url:
    redis_pool: aioredis.Redis | None = aioredis.from_url(  # type: ignore[type-arg]
        SETTINGS.redis_url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
        socket_timeout=5,
    )
else:
    redis_pool = None


@asynccontextmanager
async def lifespan_redis():
    """Startup/shutdown hook for Redis, mirrors lifespan_db()."""
    if redis_pool is None:
        logger.info("No REDIS_URL configured, events use the in-memory channel")
        yield
        return

    try:
        await redis_pool.ping()  # type: ignore[misc]  # redis stubs mistype async ping as bool
        logger.info("Redis connected: %s", SETTINGS.redis_url)
    except Exception:
        # Start anyway; publishes will fail with PublishFailure until
        # Redis comes back, and /health reports "degraded".
        logger.exception("Redis connection failed on startup")

    yield

    await redis_pool.aclose()
    logger.info("Redis connection pool closed")
