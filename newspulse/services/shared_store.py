"""
Shared remote store (Supabase).

Tables are treated as key/value-ish with upsert-by-unique-key:
  rss_feed_cache(category)          -> articles, updated_at
  ai_articles_cache(article_id)     -> data
  ai_audio_cache(text_hash)         -> audio_data
  telegram_posts(chat_id, message_id) -> message, media_url, media_type
  gallery_posts(id)                 -> title, description, media_url, created_at

When the store is not configured, reads return nothing and writes are no-ops.
Errors from a configured store propagate; the cache layers decide to swallow them.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import AsyncClient, acreate_client

from newspulse.config import settings
from newspulse.models.items import Category
from newspulse.services.logger import logger

FEED_CACHE_TABLE = "rss_feed_cache"
ENRICHMENT_TABLE = "ai_articles_cache"
AUDIO_TABLE = "ai_audio_cache"
ARCHIVE_TABLE = "telegram_posts"
GALLERY_TABLE = "gallery_posts"


class StoreNotConfiguredError(RuntimeError):
    pass


class SharedStore:
    def __init__(self, client: Optional[AsyncClient] = None):
        self.client = client

    async def connect(self, url: str = None, key: str = None):
        if self.client is not None:
            return
        url = url or settings.SUPABASE_URL
        key = key or settings.SUPABASE_KEY
        if not (url and key):
            logger.warning("SUPABASE_URL/SUPABASE_KEY not set. Shared store disabled.")
            return
        try:
            self.client = await acreate_client(url, key)
            logger.info("Shared store connected.")
        except Exception as e:
            logger.error(f"Failed to connect shared store: {e}")
            self.client = None

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def _first(self, table: str, column: str, value: Any, fields: str = "*") -> Optional[Dict[str, Any]]:
        if not self.configured:
            return None
        response = await self.client.table(table).select(fields).eq(column, value).limit(1).execute()
        return response.data[0] if response.data else None

    async def _upsert(self, table: str, row: Dict[str, Any], on_conflict: str):
        if not self.configured:
            return
        await self.client.table(table).upsert(row, on_conflict=on_conflict).execute()

    # Feed cache

    async def get_feed_cache(self, category: Category) -> Optional[Dict[str, Any]]:
        return await self._first(FEED_CACHE_TABLE, "category", category.value)

    async def upsert_feed_cache(self, category: Category, articles: List[Dict[str, Any]], updated_at: datetime):
        await self._upsert(
            FEED_CACHE_TABLE,
            {"category": category.value, "articles": articles, "updated_at": updated_at.isoformat()},
            on_conflict="category",
        )

    # Enrichment caches

    async def get_enrichment(self, article_id: str) -> Optional[Dict[str, Any]]:
        row = await self._first(ENRICHMENT_TABLE, "article_id", article_id, fields="data")
        return row["data"] if row else None

    async def upsert_enrichment(self, article_id: str, data: Dict[str, Any]):
        await self._upsert(ENRICHMENT_TABLE, {"article_id": article_id, "data": data}, on_conflict="article_id")

    async def get_audio(self, text_hash: str) -> Optional[str]:
        row = await self._first(AUDIO_TABLE, "text_hash", text_hash, fields="audio_data")
        return row["audio_data"] if row else None

    async def upsert_audio(self, text_hash: str, audio_data: str):
        await self._upsert(AUDIO_TABLE, {"text_hash": text_hash, "audio_data": audio_data}, on_conflict="text_hash")

    # Channel archive (written by the ingestion bot)

    async def get_archive(self, limit: int = None) -> List[Dict[str, Any]]:
        if not self.configured:
            return []
        response = await (
            self.client.table(ARCHIVE_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .limit(limit or settings.ARCHIVE_LIMIT)
            .execute()
        )
        return response.data or []

    async def upsert_archive_post(self, chat_id: int, message_id: int, message: str, media_url: Optional[str], media_type: Optional[str]):
        await self._upsert(
            ARCHIVE_TABLE,
            {
                "chat_id": chat_id,
                "message_id": message_id,
                "message": message,
                "media_url": media_url,
                "media_type": media_type,
            },
            on_conflict="chat_id,message_id",
        )

    # Gallery

    async def get_gallery(self) -> List[Dict[str, Any]]:
        if not self.configured:
            return []
        response = await self.client.table(GALLERY_TABLE).select("*").order("created_at", desc=True).execute()
        return response.data or []

    async def add_gallery_post(self, title: str, description: str, media_url: str) -> List[Dict[str, Any]]:
        if not self.configured:
            raise StoreNotConfiguredError("Database not connected")
        response = await (
            self.client.table(GALLERY_TABLE)
            .insert({"title": title, "description": description, "media_url": media_url})
            .execute()
        )
        return response.data or []

shared_store = SharedStore()
