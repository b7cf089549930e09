"""Pydantic schemas for the user data endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator, model_validator

from app.schemas.common import CamelModel
from app.utils.sanitizer import normalize_phone_number, sanitize_optional

AuthProvider = Literal["email", "phone", "google", "apple"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^\+[1-9]\d{1,14}$"


class CreateUserRequest(CamelModel):
    email: str | None = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    phone_number: str | None = Field(None, pattern=PHONE_PATTERN, description="E.164 format")
    auth_provider: AuthProvider = "email"
    provider_id: str | None = Field(None, min_length=1, max_length=255)
    name: str | None = Field(None, max_length=100)
    profile_picture_url: str | None = Field(None, max_length=2048, pattern=r"^https?://")
    email_verified: bool = False
    phone_verified: bool = False

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("phone_number", mode="before")
    @classmethod
    def _normalize_phone(cls, value: object) -> object:
        return normalize_phone_number(value) if isinstance(value, str) else value

    @field_validator("name", mode="before")
    @classmethod
    def _clean_name(cls, value: object) -> object:
        return sanitize_optional(value) if isinstance(value, str) else value

    @model_validator(mode="after")
    def _identity_for_provider(self) -> "CreateUserRequest":
        if self.auth_provider in ("email", "phone"):
            if not self.email and not self.phone_number:
                raise ValueError("email or phoneNumber is required for email/phone users")
        elif not self.provider_id:
            raise ValueError("providerId is required for social users")
        return self


class User(CamelModel):
    id: int
    email: str | None = None
    phone_number: str | None = None
    auth_provider: str
    provider_id: str | None = None
    name: str | None = None
    profile_picture_url: str | None = None
    email_verified: bool = False
    phone_verified: bool = False
    has_premium_storage: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login_at: datetime | None = None


class DetachedLock(CamelModel):
    id: int
    lock_name: str | None = None
    album_title: str | None = None


class DeleteUserResponse(CamelModel):
    message: str
    user_id: int
    locks_cleared: int
    locks: list[DetachedLock]
