"""OpenAPI metadata and customization utilities.

Enriches the generated schema with:
- tag descriptions
- the admin API key security scheme (``X-API-Key`` header or ``api_key`` query)
- per-path exemptions for the public album, health and index endpoints
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

PUBLIC_PATH_PREFIXES = ("/api/album/", "/health")
PUBLIC_PATHS = ("/",)

TAGS_METADATA = [
    {"name": "Album", "description": "Public album behind a lock's QR code (no key, bot and rate limited)."},
    {"name": "Locks", "description": "Administrative lock management."},
    {"name": "Media", "description": "Ordering, quota and main picture of lock media."},
    {"name": "Users", "description": "User records used by the mobile app backend."},
    {"name": "Health", "description": "Liveness checks."},
]


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PATH_PREFIXES)


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to document admin key auth.

    Every operation requires a key by default; public ones get ``security: []``.
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "AdminApiKeyHeader",
            {"type": "apiKey", "in": "header", "name": "X-API-Key"},
        )
        security_schemes.setdefault(
            "AdminApiKeyQuery",
            {"type": "apiKey", "in": "query", "name": "api_key"},
        )
        schema.setdefault("security", [{"AdminApiKeyHeader": []}, {"AdminApiKeyQuery": []}])

        tags = schema.setdefault("tags", [])
        known = {t.get("name") for t in tags}
        tags.extend(tag for tag in TAGS_METADATA if tag["name"] not in known)

        for path, methods in schema.get("paths", {}).items():
            if not is_public_path(path):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = []

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
