"""Async PostgreSQL access helpers (raw SQL) using asyncpg.

This module owns the connection pool. The FastAPI lifespan opens it on
startup and closes it on shutdown (see ``app.core.app_factory``).

SQL parameter style: asyncpg uses positional placeholders ``$1, $2, ...``.

Driver failures are logged and re-raised as :class:`DatabaseAppError` so
routes answer with a generic 500 instead of leaking SQL details.
"""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from app.core.config import DatabaseSettings, settings
from app.core.errors import DatabaseAppError

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


async def init_pool(db_settings: DatabaseSettings | None = None) -> None:
    global _pool
    if _pool is not None:
        return None

    cfg = db_settings or settings.db
    if not cfg.url:
        raise RuntimeError("DB_URL is not set.")

    _pool = await asyncpg.create_pool(
        dsn=cfg.url,
        min_size=cfg.min_pool_size,
        max_size=cfg.max_pool_size,
        command_timeout=cfg.command_timeout_seconds,
    )
    logger.info(
        "db.pool_opened",
        extra={"min_size": cfg.min_pool_size, "max_size": cfg.max_pool_size},
    )


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return None
    await _pool.close()
    _pool = None
    logger.info("db.pool_closed")


def pool() -> asyncpg.Pool:
    if _pool is None:
        raise DatabaseAppError(
            code="database_unavailable",
            message="Database is not available",
        )
    return _pool


def _failure(exc: Exception) -> DatabaseAppError:
    logger.error(
        "db.query_failed",
        extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
    )
    return DatabaseAppError(code="database_error", message="Database operation failed")


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


def affected_rows(status: str | None) -> int:
    """Row count from an asyncpg command status (``"UPDATE 3"`` -> 3)."""

    if not status:
        return 0
    tail = status.rsplit(" ", 1)[-1]
    return int(tail) if tail.isdigit() else 0


async def fetch_one(sql: str, *args: Any) -> dict[str, Any] | None:
    """Run a query and return a single row as a dict (or None)."""
    try:
        row = await pool().fetchrow(sql, *args)
    except _DRIVER_ERRORS as exc:
        raise _failure(exc) from exc
    return _record_to_dict(row) if row is not None else None


async def fetch_all(sql: str, *args: Any) -> list[dict[str, Any]]:
    """Run a query and return all rows as a list of dicts."""
    try:
        rows = await pool().fetch(sql, *args)
    except _DRIVER_ERRORS as exc:
        raise _failure(exc) from exc
    return [_record_to_dict(r) for r in rows]


async def fetch_val(sql: str, *args: Any) -> Any:
    try:
        return await pool().fetchval(sql, *args)
    except _DRIVER_ERRORS as exc:
        raise _failure(exc) from exc


async def execute(sql: str, *args: Any) -> int:
    """Run a statement (INSERT/UPDATE/DELETE) and return the affected row count."""
    try:
        status = await pool().execute(sql, *args)
    except _DRIVER_ERRORS as exc:
        raise _failure(exc) from exc
    return affected_rows(status)


async def execute_many(sql: str, args: list[tuple[Any, ...]]) -> None:
    """Run one statement per argument tuple inside a single transaction."""
    try:
        async with pool().acquire() as conn:
            async with conn.transaction():
                await conn.executemany(sql, args)
    except _DRIVER_ERRORS as exc:
        raise _failure(exc) from exc
