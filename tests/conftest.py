"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports ``app.core.config``,
so the global settings are built from test values and no ``.env`` file or
database is required.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("HASHIDS_SALT", "test-salt-for-album-links")
os.environ.setdefault("APP_ADMIN_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key,second-admin-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.pop("DB_URL", None)

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.app_factory import create_app
from app.schemas.locks import LockWithMedia, MediaObject

DESKTOP_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_SAFARI_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
BROWSER_HEADERS = {
    "User-Agent": DESKTOP_CHROME_UA,
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Site": "same-origin",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Dest": "document",
}


class FakeAlbumRecords:
    """In-memory record access layer for pipeline and album route tests."""

    def __init__(self, records: dict[int, LockWithMedia] | None = None) -> None:
        self.records = records or {}
        self.fetch_calls: list[int] = []
        self.increments: list[int] = []

    async def fetch_record_with_children(self, record_id: int) -> LockWithMedia | None:
        self.fetch_calls.append(record_id)
        return self.records.get(record_id)

    async def increment_view_counter(self, record_id: int) -> None:
        self.increments.append(record_id)


def make_lock(lock_id: int = 42, **overrides) -> LockWithMedia:
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    data = {
        "id": lock_id,
        "lock_name": "Paris Bridge",
        "album_title": "Our Trip",
        "seal_date": None,
        "notified_when_scanned": False,
        "scan_count": 3,
        "created_at": created,
        "user_id": 7,
        "media": [
            MediaObject(
                id=1,
                lock_id=lock_id,
                cloudflare_id="img-first",
                url="https://media.memorylocks.com/img-first/public",
                media_type="image/jpeg",
                is_main_picture=True,
                display_order=10,
                created_at=created,
            ),
            MediaObject(
                id=2,
                lock_id=lock_id,
                cloudflare_id="img-second",
                url="https://media.memorylocks.com/img-second/public",
                media_type="image/png",
                display_order=20,
                created_at=created,
            ),
        ],
    }
    data.update(overrides)
    return LockWithMedia(**data)


def media_row(media_id: int = 1, lock_id: int = 42, **overrides) -> dict:
    row = {
        "id": media_id,
        "lock_id": lock_id,
        "cloudflare_id": f"img-{media_id}",
        "url": f"https://media.memorylocks.com/img-{media_id}/public",
        "file_name": None,
        "media_type": "image/jpeg",
        "is_main_picture": False,
        "display_order": media_id * 10,
        "created_at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def lock_row(lock_id: int = 42, **overrides) -> dict:
    row = {
        "id": lock_id,
        "lock_name": "Paris Bridge",
        "album_title": "Our Trip",
        "seal_date": None,
        "notified_when_scanned": False,
        "scan_count": 0,
        "created_at": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        "user_id": None,
    }
    row.update(overrides)
    return row


@pytest.fixture
def fake_records() -> FakeAlbumRecords:
    return FakeAlbumRecords({42: make_lock(42)})


@pytest.fixture
def app(fake_records: FakeAlbumRecords):
    return create_app(records=fake_records)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-API-Key": "test-admin-key"}
