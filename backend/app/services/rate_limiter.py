"""
Fixed-window rate limiting held in process memory.

ALGORITHM
=========
Each identifier owns a counter and a reset time. The first call in a window
sets count=1 and reset_at=now+window. Later calls inside the window are
admitted while count < limit and increment the counter; once count reaches
the limit every call is rejected until the window elapses, at which point
the next call starts a fresh window.

Trade-off: window edges allow a burst of up to 2x the limit (end of one
window + start of the next). Accepted in exchange for O(1) bookkeeping.

Counters are per process. Behind several instances each one enforces its
own limits. A periodic sweep drops expired counters to bound memory.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from app.core.config import Settings
from app.core.logging import get_logger, mask_email
from app.core.metrics import record_rate_limit

logger = get_logger(__name__)

HOUR = 3600.0
DAY = 86400.0


@dataclass
class _Counter:
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    reason: Optional[str] = None


class RateLimiter:
    """Fixed-window counters grouped by scope (ip, email, ...)."""

    def __init__(
        self,
        registration_per_ip: int = 5,
        registration_per_email: int = 3,
        cancellation_per_ip: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registration_per_ip = registration_per_ip
        self.registration_per_email = registration_per_email
        self.cancellation_per_ip = cancellation_per_ip
        self._clock = clock
        self._scopes: dict[str, dict[str, _Counter]] = {}

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], float] = time.monotonic) -> "RateLimiter":
        return cls(
            registration_per_ip=settings.scaled_limit(settings.REGISTRATION_PER_IP_PER_HOUR),
            registration_per_email=settings.scaled_limit(settings.REGISTRATION_PER_EMAIL_PER_DAY),
            cancellation_per_ip=settings.scaled_limit(settings.CANCELLATION_PER_IP_PER_HOUR),
            clock=clock,
        )

    def check(self, identifier: str, limit: int, window_seconds: float, scope: str = "default") -> bool:
        """Count one call for identifier. Returns False when the limit is already reached."""
        counters = self._scopes.setdefault(scope, {})
        now = self._clock()
        counter = counters.get(identifier)

        if counter is None or now > counter.reset_at:
            counters[identifier] = _Counter(count=1, reset_at=now + window_seconds)
            return True

        if counter.count >= limit:
            return False

        counter.count += 1
        return True

    def count(self, identifier: str, scope: str = "default") -> int:
        """Current count inside the live window, 0 if none."""
        counter = self._scopes.get(scope, {}).get(identifier)
        if counter is None or self._clock() > counter.reset_at:
            return 0
        return counter.count

    def check_registration(self, ip: str, email: str) -> RateLimitDecision:
        """Per-IP hourly policy first, then per-email daily policy."""
        ip_allowed = self.check(ip, self.registration_per_ip, HOUR, scope="registration_ip")
        record_rate_limit("registration_ip", ip_allowed)
        if not ip_allowed:
            logger.warning("rate_limit_exceeded", policy="registration_ip", ip=ip)
            return RateLimitDecision(
                allowed=False,
                reason="too many registrations from this ip. please try again later",
            )

        email_allowed = self.check(email, self.registration_per_email, DAY, scope="registration_email")
        record_rate_limit("registration_email", email_allowed)
        if not email_allowed:
            logger.warning("rate_limit_exceeded", policy="registration_email", email=mask_email(email))
            return RateLimitDecision(
                allowed=False,
                reason="too many registrations from this email. please try again later",
            )

        return RateLimitDecision(allowed=True)

    def check_cancellation(self, ip: str) -> RateLimitDecision:
        allowed = self.check(ip, self.cancellation_per_ip, HOUR, scope="cancellation_ip")
        record_rate_limit("cancellation_ip", allowed)
        if not allowed:
            logger.warning("rate_limit_exceeded", policy="cancellation_ip", ip=ip)
            return RateLimitDecision(
                allowed=False,
                reason="too many cancellation attempts. please try again later",
            )
        return RateLimitDecision(allowed=True)

    def sweep(self) -> int:
        """Remove counters whose window has elapsed. Returns the number removed."""
        now = self._clock()
        removed = 0
        for counters in self._scopes.values():
            expired = [key for key, counter in counters.items() if now > counter.reset_at]
            for key in expired:
                del counters[key]
            removed += len(expired)
        if removed:
            logger.debug("rate_limit_sweep", removed=removed)
        return removed

    def __len__(self) -> int:
        return sum(len(counters) for counters in self._scopes.values())
