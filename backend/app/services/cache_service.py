"""
Caching for the derived event read views.

CACHING STRATEGY
================

What we cache:
  - "All events with registration counts"    key: events:all_with_counts    TTL 5 min
  - "Single event with registration count"   key: event:{id}:with_count     TTL 3 min

Why:
  - Both views need a COUNT aggregation over registrations per event
  - Browsing traffic dwarfs registration traffic
  - The list view tolerates a staler aggregate than the detail view, hence the longer TTL

Invalidation strategy:
  - Registration and cancellation delete both affected keys right after the
    store commit, so the next read recomputes from the store
  - The operator clear-cache endpoint deletes specific keys or every key
    containing "event"
  - TTL expiry as safety net, plus a periodic sweep so expired entries are
    dropped even if never read again

The capacity check NEVER reads from here. Cached counts may lag; the
registration path always counts in the store.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import redis.asyncio as redis

from app.core.logging import get_logger
from app.core.metrics import record_cache_operation, record_cache_invalidation
from app.services.interfaces.cache import CacheBackend

logger = get_logger(__name__)

REDIS_COOLDOWN_SECONDS = 30.0


@dataclass
class _Entry:
    value: Any
    expires_at: float


class MemoryCache(CacheBackend):
    """Single-process cache. Values are stored as given; callers cache plain JSON-able data."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            record_cache_operation("get", hit=False)
            return None

        if self._clock() > entry.expires_at:
            del self._entries[key]
            self._misses += 1
            record_cache_operation("get", hit=False)
            logger.debug("cache_expired", key=key)
            return None

        self._hits += 1
        record_cache_operation("get", hit=True)
        return entry.value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)
        logger.debug("cache_set", key=key, ttl=ttl_seconds)

    async def delete(self, keys: list[str]) -> None:
        for key in keys:
            self._entries.pop(key, None)
        record_cache_invalidation()
        logger.info("cache_invalidated", keys=keys)

    async def invalidate_pattern(self, pattern: str) -> int:
        matching = [key for key in self._entries if pattern in key]
        for key in matching:
            del self._entries[key]
        record_cache_invalidation()
        logger.info("cache_pattern_invalidated", pattern=pattern, keys_deleted=len(matching))
        return len(matching)

    async def sweep(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("cache_sweep", evicted=len(expired))
        return len(expired)

    async def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "status": "memory",
            "keys": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / max(total, 1) * 100, 2),
        }

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class RedisCache(CacheBackend):
    """
    Redis-backed cache for deployments with several instances.

    Fail-soft: every Redis error is logged and treated as a miss / no-op, and
    after an error the backend stays quiet for REDIS_COOLDOWN_SECONDS instead
    of dialing a dead server on every request. Values are JSON-serialized.
    """

    def __init__(
        self,
        client: redis.Redis,
        prefix: str = "",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._prefix = prefix.strip()
        self._clock = clock
        self._disabled_until = 0.0

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}" if self._prefix else key

    def _available(self) -> bool:
        return self._clock() >= self._disabled_until

    def _trip(self, operation: str, error: Exception) -> None:
        self._disabled_until = self._clock() + REDIS_COOLDOWN_SECONDS
        logger.error("redis_cache_error", operation=operation, error=str(error),
                     disabled_for_s=REDIS_COOLDOWN_SECONDS)

    async def get(self, key: str) -> Optional[Any]:
        if not self._available():
            return None
        try:
            data = await self._client.get(self._key(key))
        except redis.RedisError as e:
            self._trip("get", e)
            return None
        record_cache_operation("get", hit=data is not None)
        return json.loads(data) if data is not None else None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if not self._available():
            return
        try:
            await self._client.setex(self._key(key), ttl_seconds, json.dumps(value, default=str))
        except redis.RedisError as e:
            self._trip("set", e)

    async def delete(self, keys: list[str]) -> None:
        if not keys:
            return
        try:
            await self._client.delete(*(self._key(k) for k in keys))
            record_cache_invalidation()
            logger.info("cache_invalidated", keys=keys)
        except redis.RedisError as e:
            self._trip("delete", e)

    async def invalidate_pattern(self, pattern: str) -> int:
        deleted = 0
        try:
            async for key in self._client.scan_iter(match=self._key(f"*{pattern}*"), count=100):
                await self._client.delete(key)
                deleted += 1
            record_cache_invalidation()
            logger.info("cache_pattern_invalidated", pattern=pattern, keys_deleted=deleted)
        except redis.RedisError as e:
            self._trip("invalidate_pattern", e)
        return deleted

    async def sweep(self) -> int:
        # Redis expires keys natively
        return 0

    async def stats(self) -> dict:
        try:
            info = await self._client.info("stats")
        except redis.RedisError as e:
            return {"status": "error", "error": str(e)}
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "redis",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }

    async def close(self) -> None:
        await self._client.aclose()
