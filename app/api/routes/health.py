from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from app.core.auth import parse_api_keys
from app.core.config import API_VERSION, settings_for

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness probe used by load balancers and uptime monitors.

    Never touches the database; reports whether admin keys and the pool are
    configured so misconfigured deployments are visible at a glance.
    """
    cfg = settings_for(request)
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "env": cfg.app_env,
        "has_admin_key": bool(parse_api_keys(cfg.app.admin_api_keys)),
        "database_configured": bool(cfg.db.url),
        "pending_background_tasks": request.app.state.background.pending_count(),
    }


@router.get("/")
def index() -> dict:
    return {
        "message": "Memory Locks API",
        "version": API_VERSION,
        "endpoints": {
            "album": "GET /api/album/{hash_id}",
            "generate_locks": "POST /api/locks/generate/{count} (X-API-Key)",
            "lock_stats": "GET /api/locks/stats (X-API-Key)",
            "user_locks": "GET /api/locks/user/{user_id} (X-API-Key)",
            "lock": "GET|DELETE /api/locks/{lock_id} (X-API-Key)",
            "lock_updates": "PATCH /api/locks/{lock_id}/notifications|seal|unseal|name|album-title|owner (X-API-Key)",
            "lock_media": "GET|POST /api/locks/{lock_id}/media, PUT /api/locks/{lock_id}/media/order (X-API-Key)",
            "media": "PATCH /api/media/{media_id}/display-order|main, DELETE /api/media/{media_id} (X-API-Key)",
            "users": "POST /api/data/users, GET /api/data/users/{user_id}|by-identifier/{identifier}, "
            "PUT /api/data/users/{user_id}/login, DELETE /api/data/users/provider/{provider}/{provider_id} (X-API-Key)",
        },
    }
