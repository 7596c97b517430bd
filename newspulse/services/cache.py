"""
Cache tiers.

``MemoryCache`` is the process-memory tier: constructed once at startup and
injected wherever it is needed (tests build fresh instances).

``TieredFeedCache`` manages the per-category feed cache across the shared
store and the device-local store. Reads check the shared store first, then
the local store; an entry is fresh while ``now - written_at < window``.
Stale payloads are retained on the lookup so the orchestrator can fall back
to them when a live refresh produces nothing.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import ValidationError

from newspulse.config import settings
from newspulse.models.items import Category, ContentItem, FeedCacheEntry
from newspulse.services.background import BackgroundTasks
from newspulse.services.database import Database
from newspulse.services.logger import logger
from newspulse.services.shared_store import SharedStore

V = TypeVar("V")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryCache(Generic[V]):
    def __init__(self):
        self._data: Dict[str, V] = {}

    def get(self, key: str) -> Optional[V]:
        return self._data.get(key)

    def set(self, key: str, value: V):
        self._data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


@dataclass
class FeedLookup:
    category: Category
    fresh: Optional[List[ContentItem]] = None
    fresh_tier: Optional[str] = None
    stale_shared: List[ContentItem] = field(default_factory=list)
    stale_local: List[ContentItem] = field(default_factory=list)

    @property
    def hit(self) -> bool:
        return self.fresh is not None


class TieredFeedCache:
    def __init__(
        self,
        local: Database,
        shared: SharedStore,
        background: BackgroundTasks,
        ttl_seconds: int = None,
        prefix: str = None,
        clock: Clock = utc_now,
    ):
        self.local = local
        self.shared = shared
        self.background = background
        self.window = timedelta(seconds=ttl_seconds if ttl_seconds is not None else settings.FEED_CACHE_TTL_SECONDS)
        self.prefix = prefix if prefix is not None else settings.LOCAL_CACHE_PREFIX
        self.clock = clock

    def local_key(self, category: Category) -> str:
        return f"{self.prefix}{category.value}"

    def is_fresh(self, written_at: datetime) -> bool:
        if written_at.tzinfo is None:
            written_at = written_at.replace(tzinfo=timezone.utc)
        return self.clock() - written_at < self.window

    async def read(self, category: Category) -> FeedLookup:
        lookup = FeedLookup(category=category)

        entry = await self._read_shared(category)
        if entry is not None:
            if self.is_fresh(entry.written_at):
                logger.info(f"[{category.value}] Fresh shared cache hit ({len(entry.items)} items)")
                lookup.fresh, lookup.fresh_tier = entry.items, "shared"
                return lookup
            lookup.stale_shared = entry.items

        entry = await self._read_local(category)
        if entry is not None:
            if self.is_fresh(entry.written_at):
                logger.info(f"[{category.value}] Fresh local cache hit ({len(entry.items)} items)")
                lookup.fresh, lookup.fresh_tier = entry.items, "local"
                return lookup
            lookup.stale_local = entry.items

        return lookup

    async def write(self, category: Category, items: List[ContentItem]):
        """Local write is awaited; the shared write runs detached and never blocks the caller."""
        now = self.clock()
        articles = [item.to_cache_dict() for item in items]
        await self.local.set_value(self.local_key(category), {
            "timestamp": int(now.timestamp() * 1000),
            "articles": articles,
        })
        if self.shared.configured:
            self.background.spawn(
                self._write_shared(category, articles, now),
                name=f"feed-cache-write:{category.value}",
            )

    def read_stale_fallback(self, lookup: FeedLookup) -> List[ContentItem]:
        # Shared copy wins over the local copy regardless of which is newer
        if lookup.stale_shared:
            return list(lookup.stale_shared)
        return list(lookup.stale_local)

    async def _read_shared(self, category: Category) -> Optional[FeedCacheEntry]:
        if not self.shared.configured:
            return None
        try:
            row = await self.shared.get_feed_cache(category)
        except Exception as e:
            logger.warning(f"Shared feed cache check failed for {category.value}: {e}")
            return None
        if not row or not row.get("articles"):
            return None
        return self._entry(category, row.get("articles"), row.get("updated_at"))

    async def _read_local(self, category: Category) -> Optional[FeedCacheEntry]:
        try:
            value = await self.local.get_value(self.local_key(category))
        except Exception as e:
            logger.error(f"Local feed cache read failed for {category.value}: {e}")
            return None
        if not isinstance(value, dict) or not value.get("articles"):
            return None
        try:
            written_at = datetime.fromtimestamp(value["timestamp"] / 1000, tz=timezone.utc)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Local feed cache entry for {category.value} has no usable timestamp: {e}")
            return None
        return self._entry(category, value["articles"], written_at)

    def _entry(self, category: Category, articles: Any, written_at: Any) -> Optional[FeedCacheEntry]:
        try:
            return FeedCacheEntry(category=category, items=articles, written_at=written_at)
        except ValidationError as e:
            logger.error(f"Cache parse error for {category.value}: {e.error_count()} invalid fields")
            return None

    async def _write_shared(self, category: Category, articles: List[Dict[str, Any]], written_at: datetime):
        try:
            await self.shared.upsert_feed_cache(category, articles, written_at)
        except Exception as e:
            logger.warning(f"Shared feed cache update failed for {category.value}: {e}")
