"""Lock persistence helpers."""

from __future__ import annotations

from typing import Any

from app.core import db
from app.repositories import media as media_repo

LOCK_COLUMNS = """
    id, lock_name, album_title, seal_date, notified_when_scanned,
    scan_count, created_at, user_id
"""


async def generate_locks(count: int, prefix: str | None = None) -> list[int]:
    """Insert ``count`` blank locks and return their ids in ascending order.

    With a prefix, locks are named ``{prefix}-1`` .. ``{prefix}-{count}``.
    """
    rows = await db.fetch_all(
        """
        INSERT INTO locks (lock_name)
        SELECT CASE WHEN $2::text IS NULL THEN NULL ELSE $2::text || '-' || g END
        FROM generate_series(1, $1::int) AS g
        RETURNING id
        """,
        count,
        prefix,
    )
    return sorted(row["id"] for row in rows)


async def get_lock_by_id(lock_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {LOCK_COLUMNS}
        FROM locks
        WHERE id = $1
        """,
        lock_id,
    )


async def lock_exists(lock_id: int) -> bool:
    found = await db.fetch_val("SELECT 1 FROM locks WHERE id = $1", lock_id)
    return found is not None


async def get_lock_with_media(lock_id: int) -> dict[str, Any] | None:
    lock = await get_lock_by_id(lock_id)
    if lock is None:
        return None
    lock["media"] = await media_repo.list_media_for_lock(lock_id)
    return lock


async def list_locks_for_user(user_id: int) -> list[dict[str, Any]]:
    """Locks owned by a user, newest first, each with its ordered media.

    Media for all locks is loaded with a single query.
    """
    locks = await db.fetch_all(
        f"""
        SELECT {LOCK_COLUMNS}
        FROM locks
        WHERE user_id = $1
        ORDER BY created_at DESC, id DESC
        """,
        user_id,
    )
    if not locks:
        return []

    media_by_lock = await media_repo.list_media_for_locks([lock["id"] for lock in locks])
    for lock in locks:
        lock["media"] = media_by_lock.get(lock["id"], [])
    return locks


async def list_locks(page: int = 1, limit: int = 20) -> list[dict[str, Any]]:
    offset = (page - 1) * limit
    return await db.fetch_all(
        f"""
        SELECT {LOCK_COLUMNS}
        FROM locks
        ORDER BY created_at DESC, id DESC
        LIMIT $1 OFFSET $2
        """,
        limit,
        offset,
    )


async def update_notifications(lock_id: int, notified_when_scanned: bool) -> bool:
    affected = await db.execute(
        "UPDATE locks SET notified_when_scanned = $2 WHERE id = $1",
        lock_id,
        notified_when_scanned,
    )
    return affected > 0


async def seal_lock(lock_id: int) -> dict[str, Any] | None:
    """Set the seal date to now; returns ``{"id", "seal_date"}`` or None."""

    return await db.fetch_one(
        """
        UPDATE locks
        SET seal_date = now()
        WHERE id = $1
        RETURNING id, seal_date
        """,
        lock_id,
    )


async def unseal_lock(lock_id: int) -> bool:
    affected = await db.execute("UPDATE locks SET seal_date = NULL WHERE id = $1", lock_id)
    return affected > 0


async def update_lock_name(lock_id: int, lock_name: str) -> bool:
    affected = await db.execute(
        "UPDATE locks SET lock_name = $2 WHERE id = $1",
        lock_id,
        lock_name,
    )
    return affected > 0


async def update_album_title(lock_id: int, album_title: str) -> bool:
    affected = await db.execute(
        "UPDATE locks SET album_title = $2 WHERE id = $1",
        lock_id,
        album_title,
    )
    return affected > 0


async def update_lock_owner(lock_id: int, user_id: int | None) -> bool:
    affected = await db.execute(
        "UPDATE locks SET user_id = $2 WHERE id = $1",
        lock_id,
        user_id,
    )
    return affected > 0


async def increment_scan_count(lock_id: int) -> bool:
    affected = await db.execute(
        "UPDATE locks SET scan_count = scan_count + 1 WHERE id = $1",
        lock_id,
    )
    return affected > 0


async def delete_lock(lock_id: int) -> bool:
    await db.execute("DELETE FROM media_objects WHERE lock_id = $1", lock_id)
    affected = await db.execute("DELETE FROM locks WHERE id = $1", lock_id)
    return affected > 0


async def get_lock_owner_premium(lock_id: int) -> bool:
    """Whether the lock's owner has premium storage (False when unowned)."""

    premium = await db.fetch_val(
        """
        SELECT u.has_premium_storage
        FROM locks l
        JOIN users u ON u.id = l.user_id
        WHERE l.id = $1
        """,
        lock_id,
    )
    return bool(premium)


async def get_lock_stats() -> dict[str, int]:
    row = await db.fetch_one(
        """
        SELECT
            (SELECT COUNT(*) FROM locks) AS total,
            (SELECT COUNT(*) FROM locks WHERE seal_date IS NOT NULL) AS sealed,
            (SELECT COUNT(*) FROM locks WHERE user_id IS NOT NULL) AS with_users,
            (SELECT COUNT(DISTINCT lock_id) FROM media_objects) AS with_media,
            (SELECT COALESCE(SUM(scan_count), 0) FROM locks) AS total_scans
        """
    )
    row = row or {}
    return {key: int(row.get(key) or 0) for key in ("total", "sealed", "with_users", "with_media", "total_scans")}
