from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

from newspulse.models.items import Category
from newspulse.services.background import BackgroundTasks
from newspulse.services.database import Database
from newspulse.services.shared_store import StoreNotConfiguredError


class FakeSharedStore:
    """In-memory stand-in for the Supabase-backed SharedStore."""

    def __init__(self, configured: bool = True):
        self._configured = configured
        self.fail_reads = False
        self.fail_writes = False
        self.feed_cache: Dict[str, Dict[str, Any]] = {}
        self.enrichment: Dict[str, Dict[str, Any]] = {}
        self.audio: Dict[str, str] = {}
        self.archive: Dict[Tuple[int, int], Dict[str, Any]] = {}
        self.gallery: List[Dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    def _check_read(self):
        if self.fail_reads:
            raise RuntimeError("shared store unreachable")

    def _check_write(self):
        if self.fail_writes:
            raise RuntimeError("shared store rejected write")

    async def get_feed_cache(self, category: Category) -> Optional[Dict[str, Any]]:
        self._check_read()
        return self.feed_cache.get(category.value)

    async def upsert_feed_cache(self, category: Category, articles, updated_at: datetime):
        self._check_write()
        self.feed_cache[category.value] = {
            "category": category.value,
            "articles": articles,
            "updated_at": updated_at.isoformat(),
        }

    async def get_enrichment(self, article_id: str):
        self._check_read()
        return self.enrichment.get(article_id)

    async def upsert_enrichment(self, article_id: str, data):
        self._check_write()
        self.enrichment[article_id] = data

    async def get_audio(self, text_hash: str):
        self._check_read()
        return self.audio.get(text_hash)

    async def upsert_audio(self, text_hash: str, audio_data: str):
        self._check_write()
        self.audio[text_hash] = audio_data

    async def get_archive(self, limit: int = None):
        self._check_read()
        rows = sorted(self.archive.values(), key=lambda r: r.get("created_at") or "", reverse=True)
        return rows[:limit] if limit else rows

    async def upsert_archive_post(self, chat_id, message_id, message, media_url, media_type):
        self._check_write()
        row = self.archive.setdefault((chat_id, message_id), {"id": len(self.archive) + 1})
        row.update({
            "chat_id": chat_id,
            "message_id": message_id,
            "message": message,
            "media_url": media_url,
            "media_type": media_type,
        })

    async def get_gallery(self):
        self._check_read()
        return list(self.gallery)

    async def add_gallery_post(self, title, description, media_url):
        if not self._configured:
            raise StoreNotConfiguredError("Database not connected")
        row = {"id": len(self.gallery) + 1, "title": title, "description": description, "media_url": media_url}
        self.gallery.insert(0, row)
        return [row]


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def shared() -> FakeSharedStore:
    return FakeSharedStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 1, 6, 10, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def background() -> BackgroundTasks:
    return BackgroundTasks()


@pytest_asyncio.fixture
async def local_db(tmp_path) -> Database:
    database = Database(tmp_path / "cache.db")
    await database.init()
    return database


@pytest.fixture
def offline_shared() -> FakeSharedStore:
    return FakeSharedStore(configured=False)
