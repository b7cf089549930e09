from __future__ import annotations

from app.api.routes.album import router as album_router
from app.api.routes.health import router as health_router
from app.api.routes.locks import router as locks_router
from app.api.routes.media import router as media_router
from app.api.routes.users import router as users_router

__all__ = ["album_router", "health_router", "locks_router", "media_router", "users_router"]
