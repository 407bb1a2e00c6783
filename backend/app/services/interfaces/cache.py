"""
Cache backend interface.
Lets the read views run on the in-process store or on Redis without
changing the services that use them.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional


class CacheBackend(ABC):
    """
    Interface for the read-through cache.

    Implementations:
    - MemoryCache: single-process dict with per-entry expiry (default)
    - RedisCache: shared cache for multi-instance deployments

    The cache is never authoritative. Writers must invalidate the keys they
    affect; nothing here keeps cached views coherent with the store.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss or expiry."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store value under key, overwriting unconditionally."""
        pass

    @abstractmethod
    async def delete(self, keys: list[str]) -> None:
        """Invalidate the given keys."""
        pass

    @abstractmethod
    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key containing pattern. Returns the number deleted."""
        pass

    @abstractmethod
    async def sweep(self) -> int:
        """Evict expired entries. Returns the number evicted."""
        pass

    @abstractmethod
    async def stats(self) -> dict:
        pass

    async def close(self) -> None:
        pass

    async def get_or_set(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl_seconds: int,
    ) -> tuple[Any, bool]:
        """
        Read-through helper: return (value, cached).
        On a miss the loader runs against the store and its result is cached.
        """
        value = await self.get(key)
        if value is not None:
            return value, True
        value = await loader()
        await self.set(key, value, ttl_seconds)
        return value, False
