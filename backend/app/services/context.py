"""
Process-scoped service context.

Holds the mutable, process-wide components (cache, rate-limit counters,
per-event locks, notification dispatcher) as one injectable object instead
of module-level singletons. The app builds one at startup; tests build
their own per test.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

from app.core.config import Settings
from app.core.logging import get_logger
from app.services.interfaces.cache import CacheBackend
from app.services.notification_service import NotificationDispatcher
from app.services.rate_limiter import RateLimiter

logger = get_logger(__name__)


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class EventLocks:
    """
    One asyncio.Lock per event id, alive only while a registration for that
    event is running or waiting. The entry is dropped when its last holder
    leaves, so the map never outgrows the number of in-flight registrations.
    """

    def __init__(self) -> None:
        self._entries: dict[str, _LockEntry] = {}

    @asynccontextmanager
    async def hold(self, event_id: str) -> AsyncIterator[None]:
        entry = self._entries.get(event_id)
        if entry is None:
            entry = self._entries[event_id] = _LockEntry()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[event_id]

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class ServiceContext:
    settings: Settings
    cache: CacheBackend
    rate_limiter: RateLimiter
    notifier: NotificationDispatcher
    locks: EventLocks = field(default_factory=EventLocks)
    _sweepers: list[asyncio.Task] = field(default_factory=list, init=False, repr=False)

    async def _sweep_rate_limits(self) -> int:
        return self.rate_limiter.sweep()

    async def _run_periodically(self, name: str, job: Callable[[], Awaitable[int]], interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                removed = await job()
            except Exception as e:
                # Keep sweeping; one failed pass must not stop memory reclamation
                logger.error("sweep_failed", sweeper=name, error=str(e))
                continue
            if removed:
                logger.debug("sweep_completed", sweeper=name, removed=removed)

    def start(self) -> None:
        """Launch the background sweeps. Requires a running event loop."""
        if self._sweepers:
            return
        self._sweepers = [
            asyncio.create_task(
                self._run_periodically("cache", self.cache.sweep, self.settings.CACHE_SWEEP_INTERVAL)
            ),
            asyncio.create_task(
                self._run_periodically(
                    "rate_limit", self._sweep_rate_limits, self.settings.RATE_LIMIT_SWEEP_INTERVAL
                )
            ),
        ]

    async def close(self) -> None:
        for task in self._sweepers:
            task.cancel()
        await asyncio.gather(*self._sweepers, return_exceptions=True)
        self._sweepers = []
        await self.notifier.close()
        await self.cache.close()
