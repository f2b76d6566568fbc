#!filepath: src/jobscrabber_app/utils/rate_limit.py
from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol


@dataclass(slots=True)
class Bucket:
    """Request timestamps for one identifier inside the current window."""

    hits: list[float] = field(default_factory=list)
    last_access: float = 0.0


class RateLimitStore(Protocol):
    def update(self, identifier: str, fn: Callable[[Bucket], "RateLimitDecision"]) -> "RateLimitDecision": ...

    def sweep(self, now: float, max_idle_seconds: float) -> int: ...


class InMemoryRateLimitStore:
    """Process local store. One lock guards every bucket."""

    def __init__(self) -> None:
        self._buckets: dict[str, Bucket] = {}
        self._lock = threading.Lock()

    def update(
        self, identifier: str, fn: Callable[[Bucket], "RateLimitDecision"]
    ) -> "RateLimitDecision":
        with self._lock:
            bucket = self._buckets.setdefault(identifier, Bucket())
            return fn(bucket)

    def sweep(self, now: float, max_idle_seconds: float = 300.0) -> int:
        """Drop buckets idle for longer than ``max_idle_seconds``.

        Returns:
            int: Buckets removed.
        """
        with self._lock:
            stale = [
                k
                for k, b in self._buckets.items()
                if now - b.last_access > max_idle_seconds
            ]
            for k in stale:
                del self._buckets[k]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of one check.

    Attributes:
        success: Whether the request may proceed.
        remaining: Requests left in the window.
        reset_seconds: Seconds until a slot frees up.
    """

    success: bool
    remaining: int
    reset_seconds: int


class SlidingWindowRateLimiter:
    """At most ``limit`` hits per identifier over the trailing ``interval_seconds``."""

    def __init__(
        self,
        *,
        interval_seconds: float = 60.0,
        limit: int = 30,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        self.interval_seconds = float(interval_seconds)
        self.limit = int(limit)
        self.store: RateLimitStore = (
            store if store is not None else InMemoryRateLimitStore()
        )
        self._clock = clock

    def check(self, identifier: str) -> RateLimitDecision:
        now = self._clock()

        def _apply(bucket: Bucket) -> RateLimitDecision:
            bucket.hits = [t for t in bucket.hits if now - t < self.interval_seconds]
            bucket.last_access = now
            if len(bucket.hits) >= self.limit:
                oldest = min(bucket.hits)
                return RateLimitDecision(
                    success=False,
                    remaining=0,
                    reset_seconds=math.ceil(oldest + self.interval_seconds - now),
                )
            bucket.hits.append(now)
            return RateLimitDecision(
                success=True,
                remaining=self.limit - len(bucket.hits),
                reset_seconds=math.ceil(self.interval_seconds),
            )

        return self.store.update(str(identifier), _apply)

    def sweep(self, max_idle_seconds: float = 300.0) -> int:
        return self.store.sweep(self._clock(), max_idle_seconds)


def standard_limiter(store: Optional[RateLimitStore] = None) -> SlidingWindowRateLimiter:
    """General API traffic, 30 requests per minute."""
    return SlidingWindowRateLimiter(interval_seconds=60, limit=30, store=store)


def ai_limiter(store: Optional[RateLimitStore] = None) -> SlidingWindowRateLimiter:
    """Endpoints that fan out to LLM providers, 10 requests per minute."""
    return SlidingWindowRateLimiter(interval_seconds=60, limit=10, store=store)


def auth_limiter(store: Optional[RateLimitStore] = None) -> SlidingWindowRateLimiter:
    """One-time-code requests, 5 per 15 minutes."""
    return SlidingWindowRateLimiter(interval_seconds=900, limit=5, store=store)


def rate_limit_key(forwarded_for: Optional[str], suffix: str = "") -> str:
    """Identifier from the first address in an ``X-Forwarded-For`` header."""
    ip = str(forwarded_for or "").split(",")[0].strip() or "unknown"
    return f"{ip}:{suffix}" if suffix else ip
