"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    limit: int
    actual_value: int
    retry_after: int
    resource: str
    errors: list[dict[str, Any]]
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    status_code: ClassVar[int] = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""

    status_code = 400


class AuthenticationAppError(AppError):
    """Raised when credentials are missing."""

    status_code = 401


class AuthorizationAppError(AppError):
    """Raised when credentials are present but not accepted."""

    status_code = 403


class NotFoundAppError(AppError):
    """Raised when a requested resource does not exist (or must look absent)."""

    status_code = 404


class AccessDeniedAppError(AppError):
    """Raised when the bot heuristic rejects a public request."""

    status_code = 403


class RateLimitedAppError(AppError):
    """Raised when a caller exhausted its route-class budget."""

    status_code = 429


class DatabaseAppError(AppError):
    """Raised when the relational store fails."""

    status_code = 500
