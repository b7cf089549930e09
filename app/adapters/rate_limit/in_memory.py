"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Windows are anchored at the first request of a key, not at wall-clock
  boundaries. A caller can still get up to ``2 x limit`` requests through
  inside any rolling window that straddles a reset; this is the accepted
  cost of O(1) memory and CPU per check.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_MS = 5 * 60 * 1000


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float  # epoch milliseconds


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Fixed-window counters per key with opportunistic eviction.

    Expired entries are swept from inside :meth:`check`, at most once per
    ``sweep_interval_ms``, so the key space stays bounded without a
    dedicated timer thread.
    """

    def __init__(
        self,
        *,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            sweep_interval_ms: Minimum time between two sweeps of expired entries.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If sweep_interval_ms is invalid.
        """
        if sweep_interval_ms < 1:
            raise ValueError("sweep_interval_ms must be >= 1")

        self._sweep_interval_ms = sweep_interval_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._last_sweep_ms = self._now_ms()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _maybe_sweep_locked(self, now_ms: float) -> None:
        if now_ms - self._last_sweep_ms < self._sweep_interval_ms:
            return
        removed = self._sweep_locked(now_ms)
        logger.info(
            "rate_limit.sweep",
            extra={"removed": removed, "active_entries": len(self._entries)},
        )

    def _sweep_locked(self, now_ms: float) -> int:
        self._last_sweep_ms = now_ms
        expired = [key for key, entry in self._entries.items() if now_ms >= entry.window_reset_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """Count one request for ``key`` within a ``window_ms`` window.

        The first request of a key (or the first after its window expired)
        opens a new window with ``count = 1``. Later requests increment the
        count, and the request is rejected when the incremented count
        exceeds ``limit``: requests ``1..limit`` pass, ``limit + 1`` is the
        first one blocked.

        Raises:
            ValueError: If key is empty or limit/window_ms are invalid.
        """
        if not key:
            raise ValueError("key must be a non-empty string")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        now_ms = self._now_ms()

        with self._lock:
            self._maybe_sweep_locked(now_ms)

            entry = self._entries.get(key)
            if entry is None or now_ms >= entry.window_reset_at:
                entry = RateLimitEntry(count=1, window_reset_at=now_ms + window_ms)
                self._entries[key] = entry
            else:
                entry.count += 1

            count = entry.count
            reset_at_ms = entry.window_reset_at

        reset_at = int(math.ceil(reset_at_ms / 1000))
        if count > limit:
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_at=reset_at,
                retry_after_seconds=max(0, int(math.ceil((reset_at_ms - now_ms) / 1000))),
            )

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=limit - count,
            reset_at=reset_at,
            retry_after_seconds=None,
        )

    def get_remaining(self, key: str, limit: int) -> tuple[int, float]:
        """Return ``(remaining, window_reset_at_ms)`` without counting a request.

        Unknown or expired keys report the full budget and a reset time of 0.
        """
        now_ms = self._now_ms()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or now_ms >= entry.window_reset_at:
                return limit, 0
            return max(0, limit - entry.count), entry.window_reset_at

    def reset(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def sweep(self) -> int:
        """Remove every expired entry now, regardless of the sweep interval."""

        with self._lock:
            return self._sweep_locked(self._now_ms())

    def clear(self) -> None:
        """Drop all counters (use with caution: every caller starts fresh)."""

        with self._lock:
            self._entries.clear()
            self._last_sweep_ms = self._now_ms()

    def stats(self) -> dict[str, int | float]:
        """Return lightweight limiter metrics without exposing keys."""

        with self._lock:
            return {
                "active_entries": len(self._entries),
                "last_sweep_ms": self._last_sweep_ms,
                "sweep_interval_ms": self._sweep_interval_ms,
            }

    def close(self) -> None:
        with self._lock:
            active = len(self._entries)
            self._entries.clear()
        logger.info("rate_limit.closed", extra={"dropped_entries": active})
