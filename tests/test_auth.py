"""Unit tests for admin API key authentication."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from conftest import FakeAlbumRecords

from app.core.app_factory import create_app
from app.core.auth import parse_api_keys, validate_api_key, verify_api_key
from app.core.config import AppSettings, Settings
from app.core.errors import AuthenticationAppError, AuthorizationAppError


class TestParseAPIKeys:
    """Test API key parsing utility function."""

    def test_parse_single_key(self) -> None:
        assert parse_api_keys("my-secret-key") == {"my-secret-key"}

    def test_parse_keys_with_whitespace(self) -> None:
        """Whitespace around keys is trimmed."""
        assert parse_api_keys("key1 , key2  ,  key3") == {"key1", "key2", "key3"}

    def test_parse_none_returns_empty_set(self) -> None:
        assert parse_api_keys(None) == set()

    def test_parse_whitespace_only_returns_empty_set(self) -> None:
        assert parse_api_keys("   ,  ,  ") == set()

    def test_parse_removes_duplicate_keys(self) -> None:
        assert parse_api_keys("key1,key2,key1,key3,key2") == {"key1", "key2", "key3"}


class TestValidateAPIKey:
    """Test core API key validation logic."""

    def test_validate_bypassed_when_auth_disabled(self) -> None:
        cfg = AppSettings(admin_api_key_required=False, admin_api_keys=None)

        # Should not raise even with invalid or missing key
        validate_api_key("any-random-key", cfg)
        validate_api_key(None, cfg)

    def test_missing_key_is_authentication_error(self) -> None:
        cfg = AppSettings(admin_api_keys="valid-key")

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_api_key(None, cfg)

        assert exc_info.value.code == "missing_api_key"
        assert exc_info.value.status_code == 401

    def test_empty_key_counts_as_missing(self) -> None:
        with pytest.raises(AuthenticationAppError):
            validate_api_key("", AppSettings(admin_api_keys="valid-key"))

    def test_validate_raises_when_no_keys_configured(self) -> None:
        cfg = AppSettings(admin_api_key_required=True, admin_api_keys=None)

        with pytest.raises(AuthorizationAppError) as exc_info:
            validate_api_key("some-key", cfg)

        assert exc_info.value.code == "api_keys_not_configured"
        assert exc_info.value.status_code == 403

    def test_validate_accepts_any_configured_key(self) -> None:
        cfg = AppSettings(admin_api_keys="valid-key-1,valid-key-2")

        validate_api_key("valid-key-1", cfg)
        validate_api_key("valid-key-2", cfg)

    def test_validate_rejects_invalid_key(self) -> None:
        cfg = AppSettings(admin_api_keys="valid-key-1,valid-key-2")

        with pytest.raises(AuthorizationAppError) as exc_info:
            validate_api_key("invalid-key", cfg)

        assert exc_info.value.code == "invalid_api_key"
        assert exc_info.value.status_code == 403

    def test_provided_key_is_not_trimmed(self) -> None:
        cfg = AppSettings(admin_api_keys=" key1 , key2 ")

        validate_api_key("key1", cfg)
        with pytest.raises(AuthorizationAppError):
            validate_api_key(" key1 ", cfg)

    @patch("app.core.auth.settings")
    def test_defaults_to_global_settings(self, mock_settings) -> None:
        mock_settings.app = AppSettings(admin_api_keys="from-global")

        validate_api_key("from-global")


def request_with(app_settings: AppSettings) -> SimpleNamespace:
    """Stand-in for the Request the dependency reads ``app.state.settings`` from."""
    return SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(settings=Settings(app=app_settings))))


class TestVerifyAPIKeyDependency:
    """Test the FastAPI dependency."""

    @pytest.fixture
    def request_(self) -> SimpleNamespace:
        return request_with(AppSettings(admin_api_keys="test-admin-key,second-admin-key"))

    @pytest.mark.asyncio
    async def test_header_wins_over_query(self, request_) -> None:
        await verify_api_key(request_, x_api_key="test-admin-key", api_key="wrong")

    @pytest.mark.asyncio
    async def test_query_key_used_without_header(self, request_) -> None:
        await verify_api_key(request_, x_api_key=None, api_key="second-admin-key")

    @pytest.mark.asyncio
    async def test_nothing_sent(self, request_) -> None:
        with pytest.raises(AuthenticationAppError):
            await verify_api_key(request_, x_api_key=None, api_key=None)

    @pytest.mark.asyncio
    async def test_keys_come_from_the_application_settings(self) -> None:
        request = request_with(AppSettings(admin_api_keys="app-only-key"))

        await verify_api_key(request, x_api_key="app-only-key")
        with pytest.raises(AuthorizationAppError):
            await verify_api_key(request, x_api_key="test-admin-key")


class TestAuthOverHTTP:
    def test_app_built_with_other_keys_uses_them(self) -> None:
        app = create_app(Settings(app=AppSettings(admin_api_keys="factory-key")), records=FakeAlbumRecords())

        with TestClient(app) as client:
            assert client.get("/api/locks/stats", headers={"X-API-Key": "test-admin-key"}).status_code == 403
            assert client.get("/api/locks/stats", headers={"X-API-Key": "factory-key"}).status_code != 403

    def test_missing_key_envelope(self, client: TestClient) -> None:
        resp = client.get("/api/data/users/1")

        assert resp.status_code == 401
        error = resp.json()["error"]
        assert error["code"] == "missing_api_key"
        assert error["request_id"] == resp.headers["X-Request-ID"]

    def test_invalid_key_envelope(self, client: TestClient) -> None:
        resp = client.get("/api/data/users/1", headers={"X-API-Key": "wrong"})

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "invalid_api_key"

    def test_public_routes_need_no_key(self, client: TestClient) -> None:
        assert client.get("/health").status_code == 200
        assert client.get("/").status_code == 200
