"""Redis connection management.

Redis holds the keyed cache (news feed and other fetched resources).  When
REDIS_URL is not configured the service falls back to the in-memory cache
and no Redis server is needed.

Unlike the document store, nothing in Redis is authoritative: losing it
costs one refetch per cached key.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


def create_redis(url: str | None) -> aioredis.Redis | None:  # type: ignore[type-arg]
    """Build a pooled client, or None when Redis is not configured."""
    if not url:
        return None
    return aioredis.from_url(
        url,
        decode_responses=True,  # return str instead of bytes
        max_connections=20,
    )


@asynccontextmanager
async def lifespan_redis(
    client: aioredis.Redis | None,  # type: ignore[type-arg]
) -> AsyncIterator[None]:
    """Verify connectivity on startup and release the pool on shutdown."""
    if client is None:
        logger.info("No REDIS_URL configured, keyed cache is in-memory")
        yield
        return

    try:
        await client.ping()  # type: ignore[misc]
        logger.info("Redis connected")
    except Exception:
        # The app still starts; cache calls will fail and be logged.
        logger.exception("Redis connection failed on startup")

    try:
        yield
    finally:
        await client.aclose()
        logger.info("Redis connection pool closed")
