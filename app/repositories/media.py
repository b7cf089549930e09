"""Media object persistence helpers.

Media is always listed by ``display_order`` (NULLs last), then creation time,
then id, so the album order is stable even for legacy rows without an order.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable

from app.core import db

MEDIA_COLUMNS = """
    id, lock_id, cloudflare_id, url, file_name, media_type,
    is_main_picture, display_order, created_at
"""

MEDIA_ORDER = "display_order ASC NULLS LAST, created_at ASC, id ASC"


async def list_media_for_lock(lock_id: int) -> list[dict[str, Any]]:
    return await db.fetch_all(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM media_objects
        WHERE lock_id = $1
        ORDER BY {MEDIA_ORDER}
        """,
        lock_id,
    )


async def list_media_for_locks(lock_ids: Iterable[int]) -> dict[int, list[dict[str, Any]]]:
    """Media of several locks in one query, grouped by lock id."""

    ids = list(lock_ids)
    if not ids:
        return {}
    rows = await db.fetch_all(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM media_objects
        WHERE lock_id = ANY($1::int[])
        ORDER BY lock_id, {MEDIA_ORDER}
        """,
        ids,
    )
    grouped: dict[int, list[dict[str, Any]]] = defaultdict(list)
    for row in rows:
        grouped[row["lock_id"]].append(row)
    return dict(grouped)


async def get_media_by_id(media_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {MEDIA_COLUMNS}
        FROM media_objects
        WHERE id = $1
        """,
        media_id,
    )


async def create_media(
    *,
    lock_id: int,
    cloudflare_id: str,
    url: str,
    media_type: str,
    file_name: str | None = None,
    is_main_picture: bool = False,
    display_order: int | None = None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO media_objects (
            lock_id, cloudflare_id, url, file_name, media_type,
            is_main_picture, display_order
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        RETURNING {MEDIA_COLUMNS}
        """,
        lock_id,
        cloudflare_id,
        url,
        file_name,
        media_type,
        is_main_picture,
        display_order,
    )
    if row is None:
        raise RuntimeError("Failed to create media object.")
    return row


async def delete_media(media_id: int) -> bool:
    affected = await db.execute("DELETE FROM media_objects WHERE id = $1", media_id)
    return affected > 0


async def update_display_order(media_id: int, display_order: int) -> bool:
    affected = await db.execute(
        "UPDATE media_objects SET display_order = $2 WHERE id = $1",
        media_id,
        display_order,
    )
    return affected > 0


async def bulk_update_display_order(orders: Iterable[tuple[int, int]]) -> None:
    """Apply ``(media_id, display_order)`` pairs in one transaction."""

    await db.execute_many(
        "UPDATE media_objects SET display_order = $2 WHERE id = $1",
        list(orders),
    )


async def max_display_order(lock_id: int) -> int | None:
    return await db.fetch_val(
        "SELECT MAX(display_order) FROM media_objects WHERE lock_id = $1",
        lock_id,
    )


async def count_media_for_lock(lock_id: int) -> int:
    count = await db.fetch_val(
        "SELECT COUNT(*) FROM media_objects WHERE lock_id = $1",
        lock_id,
    )
    return int(count or 0)


async def set_main_picture(lock_id: int, media_id: int) -> bool:
    """Flag one media object as the lock's main picture, clearing its siblings."""

    updated = await db.fetch_all(
        """
        UPDATE media_objects
        SET is_main_picture = (id = $2)
        WHERE lock_id = $1
        RETURNING id, is_main_picture
        """,
        lock_id,
        media_id,
    )
    return any(row["id"] == media_id for row in updated)
