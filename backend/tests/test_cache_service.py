"""
Tests for the in-memory and Redis cache backends.
"""

from fnmatch import fnmatch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from app.services.cache_service import REDIS_COOLDOWN_SECONDS, MemoryCache, RedisCache


class FakeRedis:
    """Minimal async Redis double; set `down` to make every call fail."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.down = False
        self.calls = 0
        self.closed = False

    def _guard(self) -> None:
        self.calls += 1
        if self.down:
            raise RedisConnectionError("connection refused")

    async def get(self, key):
        self._guard()
        return self.data.get(key)

    async def setex(self, key, ttl, value):
        self._guard()
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        self._guard()
        for key in keys:
            self.data.pop(key, None)

    async def scan_iter(self, match=None, count=None):
        self._guard()
        for key in list(self.data):
            if match is None or fnmatch(key, match):
                yield key

    async def info(self, section=None):
        self._guard()
        return {"keyspace_hits": 3, "keyspace_misses": 1}

    async def aclose(self):
        self.closed = True


@pytest.mark.asyncio
async def test_memory_get_set_and_expiry(clock):
    cache = MemoryCache(clock=clock)
    await cache.set("event:a:with_count", {"id": "a"}, ttl_seconds=180)
    assert await cache.get("event:a:with_count") == {"id": "a"}

    clock.advance(180)
    assert await cache.get("event:a:with_count") == {"id": "a"}

    clock.advance(1)
    assert await cache.get("event:a:with_count") is None
    assert "event:a:with_count" not in cache


@pytest.mark.asyncio
async def test_memory_overwrite_and_delete(clock):
    cache = MemoryCache(clock=clock)
    await cache.set("k", 1, 60)
    await cache.set("k", 2, 60)
    assert await cache.get("k") == 2

    await cache.delete(["k", "missing"])
    assert await cache.get("k") is None


@pytest.mark.asyncio
async def test_memory_invalidate_pattern(clock):
    cache = MemoryCache(clock=clock)
    await cache.set("events:all_with_counts", [], 300)
    await cache.set("event:a:with_count", {}, 180)
    await cache.set("settings", {}, 180)

    assert await cache.invalidate_pattern("event") == 2
    assert "settings" in cache
    assert "event:a:with_count" not in cache


@pytest.mark.asyncio
async def test_memory_sweep(clock):
    cache = MemoryCache(clock=clock)
    await cache.set("short", 1, 10)
    await cache.set("long", 1, 100)

    clock.advance(11)
    assert await cache.sweep() == 1
    assert "short" not in cache
    assert "long" in cache


@pytest.mark.asyncio
async def test_get_or_set_loads_once(clock):
    cache = MemoryCache(clock=clock)
    loads = []

    async def loader():
        loads.append(1)
        return [{"id": "a", "registration_count": 0}]

    first, first_cached = await cache.get_or_set("events:all_with_counts", loader, 300)
    second, second_cached = await cache.get_or_set("events:all_with_counts", loader, 300)

    assert first == second
    assert (first_cached, second_cached) == (False, True)
    assert len(loads) == 1


@pytest.mark.asyncio
async def test_memory_stats(clock):
    cache = MemoryCache(clock=clock)
    await cache.set("k", 1, 60)
    await cache.get("k")
    await cache.get("missing")

    stats = await cache.stats()
    assert stats == {"status": "memory", "keys": 1, "hits": 1, "misses": 1, "hit_rate": 50.0}


@pytest.mark.asyncio
async def test_redis_roundtrip_with_prefix(clock):
    client = FakeRedis()
    cache = RedisCache(client, prefix="sway", clock=clock)

    await cache.set("event:a:with_count", {"id": "a", "registration_count": 2}, 180)
    assert client.ttls["sway:event:a:with_count"] == 180
    assert await cache.get("event:a:with_count") == {"id": "a", "registration_count": 2}

    await cache.delete(["event:a:with_count"])
    assert await cache.get("event:a:with_count") is None


@pytest.mark.asyncio
async def test_redis_invalidate_pattern(clock):
    client = FakeRedis()
    cache = RedisCache(client, clock=clock)
    await cache.set("events:all_with_counts", [], 300)
    await cache.set("event:a:with_count", {}, 180)
    await cache.set("other", {}, 180)

    assert await cache.invalidate_pattern("event") == 2
    assert list(client.data) == ["other"]


@pytest.mark.asyncio
async def test_redis_fails_soft_with_cooldown(clock):
    client = FakeRedis()
    cache = RedisCache(client, clock=clock)
    client.down = True

    assert await cache.get("k") is None
    calls = client.calls

    # Inside the cooldown Redis is not contacted at all
    await cache.set("k", 1, 60)
    assert await cache.get("k") is None
    assert client.calls == calls

    client.down = False
    clock.advance(REDIS_COOLDOWN_SECONDS)
    await cache.set("k", 1, 60)
    assert await cache.get("k") == 1


@pytest.mark.asyncio
async def test_redis_stats_and_close(clock):
    client = FakeRedis()
    cache = RedisCache(client, clock=clock)
    stats = await cache.stats()
    assert stats["status"] == "redis"
    assert stats["hit_rate"] == 75.0

    client.down = True
    assert (await cache.stats())["status"] == "error"

    await cache.close()
    assert client.closed
