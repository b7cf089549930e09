"""Application factory for the FastAPI app.

This is the composition root: it builds the shared components (rate limiter,
bot detector, id codec, background runner, admission pipeline, media service)
once per app and stores them on ``app.state``, where dependencies look them
up. Tests build their own app and may pass replacements for any component.

The lifespan owns I/O resources: the asyncpg pool is opened on startup (when
``DB_URL`` is set); background tasks are drained and the limiter closed on
shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.api.routes import album_router, health_router, locks_router, media_router, users_router
from app.core import db
from app.core.config import API_VERSION, Settings, settings, split_csv
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import TAGS_METADATA, apply_openapi_customizations
from app.services.admission import AlbumAdmissionPipeline, RecordAccessLayer
from app.services.album_service import PostgresAlbumRecords
from app.services.background import BackgroundTaskRunner
from app.services.bot_detection import BotDetector
from app.services.hashid_codec import HashIdCodec
from app.services.media_service import MediaService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    cfg: Settings = app.state.settings
    if cfg.db.url:
        await db.init_pool(cfg.db)
    else:
        logger.warning("db.not_configured", extra={"hint": "set DB_URL to enable storage"})
    try:
        yield
    finally:
        await app.state.background.shutdown()
        app.state.rate_limiter.close()
        await db.close_pool()


def create_app(
    app_settings: Settings | None = None,
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    records: RecordAccessLayer | None = None,
    bot_detector: BotDetector | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use (defaults to the process-wide settings).
        rate_limiter: Limiter backend; an in-memory fixed window by default.
        records: Record access layer for the album pipeline; PostgreSQL by default.
        bot_detector: Bot heuristic; built from ``BOT_*`` settings by default.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Memory Locks API",
        description=(
            "Backend for Memory Locks: public QR-code albums guarded by opaque ids, "
            "bot detection and per-IP rate limits, plus administrative lock, media "
            "and user management behind an X-API-Key."
        ),
        version=API_VERSION,
        openapi_tags=TAGS_METADATA,
        debug=cfg.app.debug,
        lifespan=lifespan,
    )

    limiter = rate_limiter or InMemoryFixedWindowRateLimiter(sweep_interval_ms=cfg.rate_limit.sweep_interval_ms)
    codec = HashIdCodec.from_settings(cfg.hashids)
    background = BackgroundTaskRunner()

    app.state.settings = cfg
    app.state.rate_limiter = limiter
    app.state.codec = codec
    app.state.background = background
    app.state.media_service = MediaService.from_settings(cfg.app)
    app.state.admission_pipeline = AlbumAdmissionPipeline(
        codec=codec,
        detector=bot_detector or BotDetector.from_settings(cfg.bot),
        limiter=limiter,
        records=records or PostgresAlbumRecords(),
        background=background,
        app_settings=cfg,
    )

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=split_csv(cfg.app.cors_origins),
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key", cfg.log.request_id_header],
        expose_headers=[cfg.log.request_id_header, "Retry-After", "X-RateLimit-Remaining"],
        max_age=86400,
    )
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(album_router)
    app.include_router(locks_router)
    app.include_router(media_router)
    app.include_router(users_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={"env": cfg.app_env, "rate_limit_enabled": cfg.rate_limit.enabled, "bot_enabled": cfg.bot.enabled},
    )
    return app
