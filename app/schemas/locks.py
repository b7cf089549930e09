"""Pydantic schemas for locks, media objects and the public album."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from app.schemas.common import MAX_ROW_ID, CamelModel
from app.utils.sanitizer import sanitize_text

MediaType = Literal["image/jpeg", "image/png", "image/webp", "video/mp4", "video/quicktime"]

DEFAULT_LOCK_NAME = "Memory Lock"
DEFAULT_ALBUM_TITLE = "Wonderful Memories"


class MediaObject(CamelModel):
    """A photo or video attached to a lock."""

    id: int
    lock_id: int
    cloudflare_id: str
    url: str
    file_name: str | None = None
    media_type: str
    is_main_picture: bool = False
    display_order: int | None = None
    created_at: datetime | None = None


class Lock(CamelModel):
    id: int
    lock_name: str | None = None
    album_title: str | None = None
    seal_date: datetime | None = None
    notified_when_scanned: bool = False
    scan_count: int = 0
    created_at: datetime | None = None
    user_id: int | None = None


class LockWithMedia(Lock):
    media: list[MediaObject] = Field(default_factory=list)


class MediaVariantUrls(CamelModel):
    thumbnail: str
    profile: str


class AlbumMedia(MediaObject):
    urls: MediaVariantUrls


class AlbumResponse(CamelModel):
    """Public view of a lock, as rendered by the album web page."""

    lock_name: str = Field(..., description="Lock name, or a friendly default when unnamed.")
    album_title: str = Field(..., description="Album title, or a friendly default when unset.")
    seal_date: datetime | None = None
    media: list[AlbumMedia] = Field(default_factory=list)


class GenerateLocksRequest(CamelModel):
    prefix: str | None = Field(
        None,
        min_length=1,
        max_length=20,
        description="Optional name prefix; locks are named '{prefix}-1' .. '{prefix}-{count}'.",
    )

    @field_validator("prefix", mode="before")
    @classmethod
    def _clean_prefix(cls, value: object) -> object:
        return sanitize_text(value) if isinstance(value, str) else value


class GenerateLocksResponse(CamelModel):
    success: bool = True
    created: int
    lock_ids: list[int]
    hash_ids: list[str] = Field(default_factory=list, description="Album tokens to print as QR codes.")
    start_id: int | None = None
    end_id: int | None = None
    message: str


class UpdateNotificationsRequest(CamelModel):
    notified_when_scanned: bool


class UpdateLockNameRequest(CamelModel):
    lock_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("lock_name", mode="before")
    @classmethod
    def _clean(cls, value: object) -> object:
        return sanitize_text(value) if isinstance(value, str) else value


class UpdateAlbumTitleRequest(CamelModel):
    album_title: str = Field(..., min_length=1, max_length=150)

    @field_validator("album_title", mode="before")
    @classmethod
    def _clean(cls, value: object) -> object:
        return sanitize_text(value) if isinstance(value, str) else value


class UpdateOwnerRequest(CamelModel):
    user_id: int | None = Field(
        None,
        ge=1,
        le=MAX_ROW_ID,
        description="New owner id; null detaches the lock.",
    )


class SealResponse(CamelModel):
    success: bool = True
    seal_date: datetime


class LockStats(CamelModel):
    total: int
    sealed: int
    with_users: int
    with_media: int
    total_scans: int
