"""Tests for route-class policies and the rate limit FastAPI dependencies."""

from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from conftest import FakeAlbumRecords

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.app_factory import create_app
from app.core.config import RateLimitSettings, Settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.rate_limit import (
    RouteClass,
    build_key,
    check_route_class,
    enforce_burst_rate_limit,
    enforce_user_rate_limit,
    policy_for,
    rate_limit_headers,
)


class TestPolicies:
    @pytest.mark.parametrize(
        ("route_class", "limit", "window_ms"),
        [
            (RouteClass.ALBUM, 5, 60_000),
            (RouteClass.API, 20, 60_000),
            (RouteClass.ADMIN, 100, 60_000),
            (RouteClass.BURST, 3, 10_000),
            (RouteClass.USER, 50, 60_000),
        ],
    )
    def test_default_policies(self, route_class: RouteClass, limit: int, window_ms: int) -> None:
        policy = policy_for(route_class, RateLimitSettings())

        assert policy.limit == limit
        assert policy.window_ms == window_ms

    def test_policy_follows_settings(self) -> None:
        policy = policy_for(RouteClass.ALBUM, RateLimitSettings(album_limit=2, album_window_ms=500))

        assert (policy.limit, policy.window_ms) == (2, 500)

    def test_keys_are_namespaced(self) -> None:
        assert build_key(RouteClass.ALBUM, "203.0.113.7") == "album:203.0.113.7"


def test_route_classes_have_independent_budgets() -> None:
    limiter = InMemoryFixedWindowRateLimiter(clock=Mock(return_value=1000.0))
    cfg = RateLimitSettings(album_limit=1, api_limit=1)

    assert check_route_class(limiter, RouteClass.ALBUM, "1.2.3.4", cfg).allowed is True
    assert check_route_class(limiter, RouteClass.ALBUM, "1.2.3.4", cfg).allowed is False
    assert check_route_class(limiter, RouteClass.API, "1.2.3.4", cfg).allowed is True


def test_rate_limit_headers_include_retry_after_when_blocked() -> None:
    limiter = InMemoryFixedWindowRateLimiter(clock=Mock(return_value=1000.0))
    cfg = RateLimitSettings(burst_limit=1, burst_window_ms=10_000)
    check_route_class(limiter, RouteClass.BURST, "ip", cfg)

    headers = rate_limit_headers(check_route_class(limiter, RouteClass.BURST, "ip", cfg))

    assert headers["X-RateLimit-Limit"] == "1"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["Retry-After"] == "10"


@pytest.fixture
def guarded_app() -> FastAPI:
    app = FastAPI()
    app.state.rate_limiter = InMemoryFixedWindowRateLimiter()
    setup_exception_handlers(app)

    @app.get("/burst", dependencies=[Depends(enforce_burst_rate_limit)])
    async def burst() -> dict:
        return {"ok": True}

    @app.get("/users/{user_id}", dependencies=[Depends(enforce_user_rate_limit)])
    async def user(user_id: int) -> dict:
        return {"user_id": user_id}

    return app


def test_burst_dependency_returns_429_with_headers(guarded_app: FastAPI) -> None:
    client = TestClient(guarded_app)

    statuses = [client.get("/burst").status_code for _ in range(3)]
    blocked = client.get("/burst")

    assert statuses == [200, 200, 200]
    assert blocked.status_code == 429
    assert blocked.json()["error"]["code"] == "rate_limited"
    assert "Retry-After" in blocked.headers
    assert blocked.headers["X-RateLimit-Remaining"] == "0"


def test_callers_are_keyed_by_forwarded_ip(guarded_app: FastAPI) -> None:
    client = TestClient(guarded_app)
    for _ in range(3):
        client.get("/burst", headers={"CF-Connecting-IP": "198.51.100.1"})

    assert client.get("/burst", headers={"CF-Connecting-IP": "198.51.100.1"}).status_code == 429
    assert client.get("/burst", headers={"CF-Connecting-IP": "198.51.100.2"}).status_code == 200


def test_user_budget_is_keyed_by_user_id(guarded_app: FastAPI) -> None:
    guarded_app.state.settings = Settings(rate_limit=RateLimitSettings(user_limit=1))
    client = TestClient(guarded_app)

    assert client.get("/users/1").status_code == 200
    assert client.get("/users/1").status_code == 429
    assert client.get("/users/2").status_code == 200


def test_disabled_rate_limiting_lets_everything_through(guarded_app: FastAPI) -> None:
    guarded_app.state.settings = Settings(rate_limit=RateLimitSettings(enabled=False))
    client = TestClient(guarded_app)

    statuses = {client.get("/burst").status_code for _ in range(10)}

    assert statuses == {200}


def test_headers_can_be_left_off_the_429(guarded_app: FastAPI) -> None:
    guarded_app.state.settings = Settings(rate_limit=RateLimitSettings(burst_limit=1, include_headers=False))
    client = TestClient(guarded_app)

    client.get("/burst")
    blocked = client.get("/burst")

    assert blocked.status_code == 429
    assert "X-RateLimit-Remaining" not in blocked.headers


class TestFactorySettings:
    """Limits follow the settings passed to ``create_app``, not the process environment."""

    @pytest.fixture
    def generate(self):
        with patch("app.repositories.locks.generate_locks", new=AsyncMock(return_value=[1])) as mocked:
            yield mocked

    def test_app_with_limits_disabled_never_answers_429(self, admin_headers: dict, generate) -> None:
        app = create_app(Settings(rate_limit=RateLimitSettings(enabled=False)), records=FakeAlbumRecords())

        with TestClient(app) as client:
            statuses = [client.post("/api/locks/generate/1", headers=admin_headers).status_code for _ in range(6)]

        assert 429 not in statuses

    def test_app_with_tighter_burst_limit_applies_it(self, admin_headers: dict, generate) -> None:
        app = create_app(Settings(rate_limit=RateLimitSettings(burst_limit=1)), records=FakeAlbumRecords())

        with TestClient(app) as client:
            first = client.post("/api/locks/generate/1", headers=admin_headers)
            second = client.post("/api/locks/generate/1", headers=admin_headers)

        assert first.status_code != 429
        assert second.status_code == 429
