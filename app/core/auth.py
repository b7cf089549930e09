"""Admin API key authentication.

Every non-album ``/api`` route is administrative. Keys are validated against a
comma-separated list from ``APP_ADMIN_API_KEYS`` and may be sent either in the
``X-API-Key`` header or the ``api_key`` query parameter (the header wins).

Outcomes:
- no key sent → 401 ``missing_api_key``
- key not in the configured set → 403 ``invalid_api_key``
- auth required but no keys configured → 403 ``api_keys_not_configured``
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header, Query, Request

from app.core.config import AppSettings, settings, settings_for
from app.core.errors import AuthenticationAppError, AuthorizationAppError
from app.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def _matches_any(provided_key: str, valid_keys: set[str]) -> bool:
    # compare against every key so timing does not reveal which one matched
    matched = False
    for key in valid_keys:
        if hmac.compare_digest(provided_key.encode(), key.encode()):
            matched = True
    return matched


def validate_api_key(provided_key: str | None, app_settings: AppSettings | None = None) -> None:
    """Validate an admin API key.

    Pure validation logic without FastAPI dependencies for easy testing.

    Raises:
        AuthenticationAppError: If no key was provided.
        AuthorizationAppError: If the key is wrong or no keys are configured.
    """
    cfg = app_settings or settings.app
    if not cfg.admin_api_key_required:
        return

    if not provided_key:
        logger.warning("auth.missing_key", extra={"api_key_present": False})
        raise AuthenticationAppError(
            code="missing_api_key",
            message="Missing API key. Provide the X-API-Key header.",
        )

    valid_keys = parse_api_keys(cfg.admin_api_keys)
    if not valid_keys:
        logger.error("auth.failed", extra={"reason": "api_keys_not_configured"})
        raise AuthorizationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no keys are configured",
            details={"hint": "Set APP_ADMIN_API_KEYS or disable auth with APP_ADMIN_API_KEY_REQUIRED=false"},
        )

    if not _matches_any(provided_key, valid_keys):
        logger.warning(
            "auth.failed",
            extra={"reason": "invalid_api_key", "api_key_hash": hash_identifier(provided_key)},
        )
        raise AuthorizationAppError(code="invalid_api_key", message="Invalid API key")


async def verify_api_key(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
    api_key: Annotated[str | None, Query(include_in_schema=False)] = None,
) -> None:
    """FastAPI dependency guarding administrative routes.

    Usage:
        router = APIRouter(dependencies=[Depends(verify_api_key)])
    """
    provided = x_api_key or api_key
    validate_api_key(provided, settings_for(request).app)
    if provided:
        logger.debug("auth.success", extra={"api_key_hash": hash_identifier(provided)})
