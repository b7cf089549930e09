"""Rate limiter interfaces.

Route handlers and the admission pipeline depend on this abstraction (not the
concrete implementation) so the storage backend can be swapped (e.g., Redis)
with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters keyed by namespaced caller identity."""

    @abstractmethod
    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """Count one request for ``key`` and report whether it is admitted.

        Args:
            key: Namespaced identity (e.g. ``album:203.0.113.7``).
            limit: Requests admitted per window.
            window_ms: Window length in milliseconds.

        Returns:
            RateLimitResult describing the decision.
        """
        raise NotImplementedError

    def is_limited(self, key: str, limit: int, window_ms: int) -> bool:
        """Count one request for ``key``; True once the budget is exceeded."""

        return not self.check(key, limit, window_ms).allowed

    @abstractmethod
    def reset(self, key: str) -> None:
        """Forget the counter for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop expired entries and return how many were removed."""
        raise NotImplementedError

    def close(self) -> None:
        """Release limiter state on shutdown."""
