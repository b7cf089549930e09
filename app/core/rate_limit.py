"""Rate limiting policies and FastAPI dependencies.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on dependency functions only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind an
  abstract interface.
- Explicit lifecycle: the limiter instance is built by the app factory and
  stored on ``app.state``; nothing here holds module-level state.

Each route class owns an independent budget per caller. Keys are namespaced
as ``"{route_class}:{identity}"`` so the same IP can exhaust its album budget
and still use the general API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import HTTPException, Request, status

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.client_info import get_client_ip
from app.core.config import RateLimitSettings, settings, settings_for
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)


class RouteClass(str, Enum):
    ALBUM = "album"
    API = "api"
    ADMIN = "admin"
    BURST = "burst"
    USER = "user"


@dataclass(frozen=True)
class RateLimitPolicy:
    limit: int
    window_ms: int


def policy_for(route_class: RouteClass, rate_settings: RateLimitSettings | None = None) -> RateLimitPolicy:
    """Resolve the configured (limit, window) pair for a route class."""

    cfg = rate_settings or settings.rate_limit
    prefix = route_class.value
    return RateLimitPolicy(
        limit=getattr(cfg, f"{prefix}_limit"),
        window_ms=getattr(cfg, f"{prefix}_window_ms"),
    )


def build_key(route_class: RouteClass, identity: str) -> str:
    return f"{route_class.value}:{identity}"


def check_route_class(
    limiter: AbstractRateLimiter,
    route_class: RouteClass,
    identity: str,
    rate_settings: RateLimitSettings | None = None,
) -> RateLimitResult:
    """Count one request of ``identity`` against the ``route_class`` budget."""

    policy = policy_for(route_class, rate_settings)
    return limiter.check(build_key(route_class, identity), policy.limit, policy.window_ms)


def rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset_at),
    }
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return headers


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


def _enforce(request: Request, route_class: RouteClass, identity: str | None = None) -> None:
    rate_settings = settings_for(request).rate_limit
    if not rate_settings.enabled:
        return

    identity = identity or get_client_ip(request)
    key_hash = hash_identifier(build_key(route_class, identity))
    result = check_route_class(get_rate_limiter(request), route_class, identity, rate_settings)

    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "route_class": route_class.value,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "route_class": route_class.value,
            "key_hash": key_hash,
            "limit": result.limit,
            "retry_after_s": result.retry_after_seconds,
        },
    )

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests",
        headers=rate_limit_headers(result) if rate_settings.include_headers else None,
    )


async def enforce_api_rate_limit(request: Request) -> None:
    """FastAPI dependency: general API budget (20/min per IP by default)."""

    _enforce(request, RouteClass.API)


async def enforce_admin_rate_limit(request: Request) -> None:
    """FastAPI dependency: administrative budget (100/min per IP by default)."""

    _enforce(request, RouteClass.ADMIN)


async def enforce_burst_rate_limit(request: Request) -> None:
    """FastAPI dependency: short-window burst protection (3 per 10s by default)."""

    _enforce(request, RouteClass.BURST)


async def enforce_user_rate_limit(request: Request, user_id: int) -> None:
    """FastAPI dependency: per-user budget keyed by the ``user_id`` path parameter."""

    _enforce(request, RouteClass.USER, identity=str(user_id))
