from __future__ import annotations

import asyncio

from lms.services.cache import InMemoryCacheService, KeyedCache


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_in_memory_cache_expires_entries() -> None:
    clock = _Clock()
    cache = InMemoryCacheService(clock=clock)

    asyncio.run(cache.set("k", "v", 10))
    assert asyncio.run(cache.get("k")) == "v"
    clock.now += 10
    assert asyncio.run(cache.get("k")) is None


def test_delete_missing_key_is_harmless() -> None:
    cache = InMemoryCacheService()
    asyncio.run(cache.delete("nothing"))


def test_get_or_fetch_calls_fetch_once_per_ttl() -> None:
    clock = _Clock()
    keyed = KeyedCache(InMemoryCacheService(clock=clock))
    calls = []

    async def fetch():
        calls.append(1)
        return {"articles": len(calls)}

    first = asyncio.run(keyed.get_or_fetch("news", fetch, 60))
    second = asyncio.run(keyed.get_or_fetch("news", fetch, 60))
    assert first == second == {"articles": 1}
    assert len(calls) == 1

    clock.now += 61
    third = asyncio.run(keyed.get_or_fetch("news", fetch, 60))
    assert third == {"articles": 2}


def test_failed_fetch_stores_nothing() -> None:
    keyed = KeyedCache(InMemoryCacheService())

    async def boom():
        raise RuntimeError("down")

    async def run():
        try:
            await keyed.get_or_fetch("news", boom, 60)
        except RuntimeError:
            pass
        return await keyed.peek("news")

    assert asyncio.run(run()) is None


def test_put_and_invalidate() -> None:
    keyed = KeyedCache(InMemoryCacheService())
    asyncio.run(keyed.put("k", [1, 2], 60))
    assert asyncio.run(keyed.peek("k")) == [1, 2]
    asyncio.run(keyed.invalidate("k"))
    assert asyncio.run(keyed.peek("k")) is None
