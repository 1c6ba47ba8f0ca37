"""Keyed cache with expiry.

Two layers:

  CacheService   string key/value store with a TTL per entry.  Redis in
                 production, a dict with an injectable clock otherwise.

  KeyedCache     get-or-fetch on top of a CacheService.  Values are stored
                 as JSON; a miss awaits the caller's fetch coroutine,
                 stores the result and returns it.

The TTL is the only invalidation most entries ever get (the news feed is
refreshed every three days).  ``invalidate`` exists for admin "clear
cache" actions.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, runtime_checkable

from lms.core.metrics import CACHE_OPERATIONS

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on a miss or after expiry."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryCacheService:
    """Dict-backed cache that enforces TTLs lazily on read."""

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> str | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._store[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = (self._clock() + ttl_seconds, value)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)


class RedisCacheService:
    """Redis-backed cache, shared across API instances."""

    # Key prefix keeps cache entries apart from anything else in the db.
    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        return await self._redis.get(f"{self._PREFIX}{key}")

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(f"{self._PREFIX}{key}")


class KeyedCache:
    def __init__(self, backend: CacheService) -> None:
        self._backend = backend

    async def peek(self, key: str) -> Any | None:
        raw = await self._backend.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl_seconds: int,
    ) -> Any:
        cached = await self.peek(key)
        if cached is not None:
            CACHE_OPERATIONS.labels(operation="hit").inc()
            logger.debug("Cache hit  key=%s", key)
            return cached

        CACHE_OPERATIONS.labels(operation="miss").inc()
        logger.debug("Cache miss  key=%s", key)
        encoded = json.dumps(await fetch(), default=str)
        await self._backend.set(key, encoded, ttl_seconds)
        # Hits and misses hand back the same JSON-decoded shape.
        return json.loads(encoded)

    async def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self._backend.set(key, json.dumps(value, default=str), ttl_seconds)

    async def invalidate(self, key: str) -> None:
        await self._backend.delete(key)
