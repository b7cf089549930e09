"""Album read model: storage access for the admission pipeline and response shaping."""

from __future__ import annotations

import logging

from app.core.config import settings
from app.repositories import locks as locks_repo
from app.schemas.locks import (
    DEFAULT_ALBUM_TITLE,
    DEFAULT_LOCK_NAME,
    AlbumMedia,
    AlbumResponse,
    LockWithMedia,
    MediaVariantUrls,
)

logger = logging.getLogger(__name__)

THUMBNAIL_VARIANT = "w=300,h=300,fit=cover"
PROFILE_VARIANT = "w=750,h=auto,fit=scale-down"


class PostgresAlbumRecords:
    """Record access layer backed by the lock and media repositories."""

    async def fetch_record_with_children(self, record_id: int) -> LockWithMedia | None:
        row = await locks_repo.get_lock_with_media(record_id)
        if row is None:
            return None
        return LockWithMedia.model_validate(row)

    async def increment_view_counter(self, record_id: int) -> None:
        updated = await locks_repo.increment_scan_count(record_id)
        if not updated:
            logger.warning("album.scan_count_missed", extra={"lock_id": record_id})


def variant_urls(cloudflare_id: str, base_url: str | None = None) -> MediaVariantUrls:
    base = (base_url or settings.app.media_base_url).rstrip("/")
    return MediaVariantUrls(
        thumbnail=f"{base}/{cloudflare_id}/{THUMBNAIL_VARIANT}",
        profile=f"{base}/{cloudflare_id}/{PROFILE_VARIANT}",
    )


def build_album_response(record: LockWithMedia, base_url: str | None = None) -> AlbumResponse:
    """Shape a lock and its media into the public album body.

    Unnamed locks and untitled albums get friendly defaults; media keeps the
    storage order and gains thumbnail/profile variant URLs.
    """
    media = [
        AlbumMedia(
            **item.model_dump(),
            urls=variant_urls(item.cloudflare_id, base_url),
        )
        for item in record.media
    ]
    return AlbumResponse(
        lock_name=record.lock_name or DEFAULT_LOCK_NAME,
        album_title=record.album_title or DEFAULT_ALBUM_TITLE,
        seal_date=record.seal_date,
        media=media,
    )
