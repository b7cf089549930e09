"""Media ordering and quota rules for a lock's album.

Display orders are spaced by ``DISPLAY_ORDER_GAP`` so a single item can be
moved between two neighbours without renumbering the rest; a full reorder
renumbers everything to 10, 20, 30, ...
"""

from __future__ import annotations

import logging

from app.core.config import AppSettings, settings
from app.core.errors import NotFoundAppError, ValidationAppError
from app.repositories import locks as locks_repo
from app.repositories import media as media_repo
from app.schemas.locks import MediaObject
from app.schemas.media import CreateMediaRequest

logger = logging.getLogger(__name__)

DISPLAY_ORDER_GAP = 10


def next_display_order(current_max: int | None) -> int:
    return (current_max or 0) + DISPLAY_ORDER_GAP


def gap_orders(media_ids: list[int]) -> list[tuple[int, int]]:
    """Pair each id with its spaced position: ``[(id, 10), (id, 20), ...]``."""

    return [(media_id, (index + 1) * DISPLAY_ORDER_GAP) for index, media_id in enumerate(media_ids)]


def _lock_not_found(lock_id: int) -> NotFoundAppError:
    return NotFoundAppError(code="lock_not_found", message="Lock not found", details={"resource": f"lock:{lock_id}"})


def _media_not_found(media_id: int) -> NotFoundAppError:
    return NotFoundAppError(
        code="media_not_found",
        message="Media object not found",
        details={"resource": f"media:{media_id}"},
    )


class MediaService:
    """Lock media management with storage quotas.

    Args:
        free_limit: Maximum media per lock for owners without premium storage.
        premium_limit: Maximum media per lock for premium owners.
    """

    def __init__(self, free_limit: int = 30, premium_limit: int = 100) -> None:
        self.free_limit = free_limit
        self.premium_limit = premium_limit

    @classmethod
    def from_settings(cls, app_settings: AppSettings | None = None) -> "MediaService":
        cfg = app_settings or settings.app
        return cls(free_limit=cfg.free_media_limit, premium_limit=cfg.premium_media_limit)

    async def _require_lock(self, lock_id: int) -> None:
        if not await locks_repo.lock_exists(lock_id):
            raise _lock_not_found(lock_id)

    async def _require_media(self, media_id: int) -> dict:
        row = await media_repo.get_media_by_id(media_id)
        if row is None:
            raise _media_not_found(media_id)
        return row

    async def quota_for(self, lock_id: int) -> int:
        premium = await locks_repo.get_lock_owner_premium(lock_id)
        return self.premium_limit if premium else self.free_limit

    async def list_media(self, lock_id: int) -> list[MediaObject]:
        await self._require_lock(lock_id)
        rows = await media_repo.list_media_for_lock(lock_id)
        return [MediaObject.model_validate(row) for row in rows]

    async def add_media(self, lock_id: int, payload: CreateMediaRequest) -> MediaObject:
        """Attach a media object, appending it after the last item by default.

        Raises:
            NotFoundAppError: If the lock does not exist.
            ValidationAppError: If the lock already holds its quota of media.
        """
        await self._require_lock(lock_id)

        limit = await self.quota_for(lock_id)
        current = await media_repo.count_media_for_lock(lock_id)
        if current >= limit:
            logger.info(
                "media.limit_reached",
                extra={"lock_id": lock_id, "limit": limit, "current": current},
            )
            raise ValidationAppError(
                code="media_limit_reached",
                message=f"This lock already holds the maximum of {limit} media objects",
                details={"limit": limit, "actual_value": current},
            )

        display_order = payload.display_order
        if display_order is None:
            display_order = next_display_order(await media_repo.max_display_order(lock_id))

        row = await media_repo.create_media(
            lock_id=lock_id,
            cloudflare_id=payload.cloudflare_id,
            url=payload.url,
            media_type=payload.media_type,
            file_name=payload.file_name,
            is_main_picture=False,
            display_order=display_order,
        )
        if payload.is_main_picture:
            await media_repo.set_main_picture(lock_id, row["id"])
            row["is_main_picture"] = True

        logger.info(
            "media.created",
            extra={"lock_id": lock_id, "media_id": row["id"], "display_order": display_order},
        )
        return MediaObject.model_validate(row)

    async def reorder(self, lock_id: int, media_ids: list[int]) -> list[MediaObject]:
        """Renumber a lock's media in the given order.

        Raises:
            ValidationAppError: If ``media_ids`` is not exactly the lock's media set.
        """
        await self._require_lock(lock_id)
        existing = {row["id"] for row in await media_repo.list_media_for_lock(lock_id)}
        if set(media_ids) != existing:
            raise ValidationAppError(
                code="invalid_media_order",
                message="mediaIds must list every media object of the lock exactly once",
                details={
                    "context": {
                        "unknown": sorted(set(media_ids) - existing),
                        "missing": sorted(existing - set(media_ids)),
                    }
                },
            )

        await media_repo.bulk_update_display_order(gap_orders(media_ids))
        logger.info("media.reordered", extra={"lock_id": lock_id, "count": len(media_ids)})
        return await self.list_media(lock_id)

    async def move(self, media_id: int, display_order: int) -> MediaObject:
        row = await self._require_media(media_id)
        if not await media_repo.update_display_order(media_id, display_order):
            raise _media_not_found(media_id)
        row["display_order"] = display_order
        return MediaObject.model_validate(row)

    async def set_main_picture(self, media_id: int) -> MediaObject:
        row = await self._require_media(media_id)
        if not await media_repo.set_main_picture(row["lock_id"], media_id):
            raise _media_not_found(media_id)
        row["is_main_picture"] = True
        return MediaObject.model_validate(row)

    async def delete(self, media_id: int) -> None:
        if not await media_repo.delete_media(media_id):
            raise _media_not_found(media_id)
        logger.info("media.deleted", extra={"media_id": media_id})
