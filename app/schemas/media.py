"""Pydantic schemas for media management requests."""

from pydantic import Field, field_validator

from app.schemas.common import MAX_ROW_ID, CamelModel
from app.schemas.locks import MediaType
from app.utils.sanitizer import sanitize_optional


class CreateMediaRequest(CamelModel):
    """Register an already uploaded image or video against a lock."""

    cloudflare_id: str = Field(..., min_length=1, max_length=255, pattern=r"^[A-Za-z0-9_\-]+$")
    url: str = Field(..., min_length=1, max_length=2048, pattern=r"^https?://")
    media_type: MediaType
    file_name: str | None = Field(None, max_length=255)
    is_main_picture: bool = False
    display_order: int | None = Field(
        None,
        ge=0,
        description="Explicit position; appended after the last item when omitted.",
    )

    @field_validator("file_name", mode="before")
    @classmethod
    def _clean_file_name(cls, value: object) -> object:
        return sanitize_optional(value) if isinstance(value, str) else value


class ReorderMediaRequest(CamelModel):
    media_ids: list[int] = Field(
        ...,
        min_length=1,
        description="Every media id of the lock, in the desired order.",
    )

    @field_validator("media_ids")
    @classmethod
    def _valid_ids(cls, value: list[int]) -> list[int]:
        if any(not 0 < media_id <= MAX_ROW_ID for media_id in value):
            raise ValueError("media ids must be positive 32-bit integers")
        if len(set(value)) != len(value):
            raise ValueError("media ids must be unique")
        return value


class UpdateDisplayOrderRequest(CamelModel):
    display_order: int = Field(..., ge=0)
