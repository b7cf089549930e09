"""User persistence helpers."""

from __future__ import annotations

from typing import Any

from app.core import db

USER_COLUMNS = """
    id, email, phone_number, auth_provider, provider_id, name,
    profile_picture_url, email_verified, phone_verified, has_premium_storage,
    created_at, updated_at, last_login_at
"""


def normalize_email(email: str | None) -> str | None:
    if not email:
        return None
    return email.strip().lower()


async def create_user(
    *,
    email: str | None = None,
    phone_number: str | None = None,
    auth_provider: str = "email",
    provider_id: str | None = None,
    name: str | None = None,
    profile_picture_url: str | None = None,
    email_verified: bool = False,
    phone_verified: bool = False,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO users (
            email, phone_number, auth_provider, provider_id, name,
            profile_picture_url, email_verified, phone_verified
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
        RETURNING {USER_COLUMNS}
        """,
        normalize_email(email),
        phone_number,
        auth_provider,
        provider_id,
        name,
        profile_picture_url,
        email_verified,
        phone_verified,
    )
    if row is None:
        raise RuntimeError("Failed to create user.")
    return row


async def get_user_by_identifier(identifier: str) -> dict[str, Any] | None:
    """Look a user up by email (case-insensitive) or phone number."""

    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM users
        WHERE lower(email) = lower($1) OR phone_number = $1
        LIMIT 1
        """,
        identifier.strip(),
    )


async def get_user_by_id(user_id: int) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM users
        WHERE id = $1
        """,
        user_id,
    )


async def get_user_by_provider(provider: str, provider_id: str) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM users
        WHERE auth_provider = $1 AND provider_id = $2
        LIMIT 1
        """,
        provider,
        provider_id,
    )


async def update_login_time(user_id: int) -> bool:
    affected = await db.execute(
        """
        UPDATE users
        SET last_login_at = now(), updated_at = now()
        WHERE id = $1
        """,
        user_id,
    )
    return affected > 0


async def delete_user_by_provider(provider: str, provider_id: str) -> dict[str, Any] | None:
    """Delete a user and detach their locks.

    Locks stay publicly reachable; only their owner is cleared. Returns
    ``None`` when no such user exists, otherwise the user id and the
    detached lock summaries.
    """
    user = await get_user_by_provider(provider, provider_id)
    if user is None:
        return None

    user_id = user["id"]
    detached = await db.fetch_all(
        """
        UPDATE locks
        SET user_id = NULL
        WHERE user_id = $1
        RETURNING id, lock_name, album_title
        """,
        user_id,
    )
    await db.execute("DELETE FROM users WHERE id = $1", user_id)
    return {"user_id": user_id, "locks": detached}


async def get_user_stats() -> dict[str, int]:
    row = await db.fetch_one(
        """
        SELECT
            COUNT(*) AS total,
            COUNT(*) FILTER (WHERE email_verified OR phone_verified) AS verified,
            COUNT(*) FILTER (WHERE has_premium_storage) AS premium
        FROM users
        """
    )
    row = row or {}
    return {
        "total": row.get("total") or 0,
        "verified": row.get("verified") or 0,
        "premium": row.get("premium") or 0,
    }
