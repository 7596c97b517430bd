import asyncio
from typing import Dict, Iterable, List, Optional, Type
from pydantic import BaseModel, ValidationError
from newspulse.config import settings
from newspulse.feeds_config import CATEGORY_FEEDS
from newspulse.models.items import ArchiveRecord, Category, ContentItem, GalleryRecord, RawRecord, UnrecognizedRecord
from newspulse.services.background import BackgroundTasks
from newspulse.services.cache import TieredFeedCache
from newspulse.services.database import Database, db
from newspulse.services.logger import logger
from newspulse.services.shared_store import SharedStore, shared_store
from newspulse.tools.channel_adapter import ChannelAdapter
from newspulse.tools.normalizer import ContentNormalizer
from newspulse.tools.proxy_fetcher import ProxyChainFetcher
from newspulse.tools.rss_adapter import RSSAdapter


def dedupe(items: Iterable[ContentItem], by_title: bool = True) -> List[ContentItem]:
    """
    First occurrence wins, order preserved. Drops repeated ids and, with
    ``by_title``, titles that collide once lowercased and stripped to [a-z0-9].
    Titles with no ASCII alphanumerics (e.g. Telugu headlines) are never title-matched.
    """
    seen_ids = set()
    seen_titles = set()
    unique = []
    for item in items:
        if item.id in seen_ids:
            continue
        key = item.dedup_key() if by_title else ""
        # An empty key is never collapsed, unlike a plain seen-set; distinct non-Latin headlines all map to ""
        if key and key in seen_titles:
            continue
        seen_ids.add(item.id)
        if key:
            seen_titles.add(key)
        unique.append(item)
    return unique


def rows_to_records(rows: Iterable[dict], model: Type[BaseModel]) -> List[RawRecord]:
    records = []
    for row in rows:
        try:
            records.append(model.model_validate(row))
        except ValidationError:
            records.append(UnrecognizedRecord(payload=row))
    return records


class Aggregator:
    """
    Per-category fetch cycle:
      CacheCheck -> LiveFetch -> Merge -> Persist, or Degrade to stale/empty.
    The channel category scrapes the live channel page and falls back to the
    shared archive; the gallery category reads the shared store directly.
    """

    def __init__(
        self,
        cache: TieredFeedCache,
        rss: RSSAdapter,
        channel: ChannelAdapter,
        shared: SharedStore,
        normalizer: ContentNormalizer,
        feeds: Dict[Category, List[str]] = None,
        archive_limit: int = None,
    ):
        self.cache = cache
        self.rss = rss
        self.channel = channel
        self.shared = shared
        self.normalizer = normalizer
        self.feeds = feeds if feeds is not None else CATEGORY_FEEDS
        self.archive_limit = archive_limit or settings.ARCHIVE_LIMIT

    async def fetch_category(self, category: Category) -> List[ContentItem]:
        # 1. CacheCheck
        lookup = await self.cache.read(category)
        if lookup.hit:
            return list(lookup.fresh)

        # 2-3. LiveFetch + Merge
        if category == Category.AZAD_STUDIO:
            items = await self._fetch_channel(category)
        elif category == Category.GALLERY:
            items = await self._fetch_gallery(category)
        else:
            items = await self._fetch_feeds(category)

        # 4. Persist
        if items:
            await self.cache.write(category, items)
            logger.info(f"[{category.value}] Live fetch produced {len(items)} items")
            return items

        # 5. Degrade
        if category == Category.AZAD_STUDIO:
            logger.warning(f"[{category.value}] All live fetch routes failed. Trying archive fallback.")
            archived = await self._fetch_archive(category)
            if archived:
                return archived

        stale = self.cache.read_stale_fallback(lookup)
        if stale:
            logger.warning(f"[{category.value}] Live fetch empty; serving {len(stale)} stale items")
            return stale

        logger.warning(f"[{category.value}] No data from any tier or source")
        return []

    async def refresh_all(self, categories: Iterable[Category] = None) -> Dict[Category, List[ContentItem]]:
        categories = list(categories or Category)
        results = await asyncio.gather(*[self.fetch_category(c) for c in categories], return_exceptions=True)
        out = {}
        for category, res in zip(categories, results):
            if isinstance(res, BaseException):
                logger.error(f"[{category.value}] Fetch cycle crashed: {res}")
                out[category] = []
            else:
                out[category] = res
        return out

    async def _fetch_feeds(self, category: Category) -> List[ContentItem]:
        urls = self.feeds.get(category) or []
        if not urls:
            logger.warning(f"[{category.value}] No feed URLs configured")
            return []
        per_url = await self.rss.fetch_many(urls)
        merged = []
        for records in per_url:
            merged.extend(self.normalizer.normalize_all(records, category))
        unique = dedupe(merged)
        if len(unique) < len(merged):
            logger.info(f"[{category.value}] Dropped {len(merged) - len(unique)} duplicate items")
        return unique

    async def _fetch_channel(self, category: Category) -> List[ContentItem]:
        records = await self.channel.fetch_channel()
        return dedupe(self.normalizer.normalize_all(records, category), by_title=False)

    async def _fetch_archive(self, category: Category) -> List[ContentItem]:
        if not self.shared.configured:
            return []
        try:
            rows = await self.shared.get_archive(limit=self.archive_limit)
        except Exception as e:
            logger.warning(f"[{category.value}] Archive fallback failed: {e}")
            return []
        return self.normalizer.normalize_all(rows_to_records(rows, ArchiveRecord), category)

    async def _fetch_gallery(self, category: Category) -> List[ContentItem]:
        if not self.shared.configured:
            return []
        try:
            rows = await self.shared.get_gallery()
        except Exception as e:
            logger.warning(f"Failed to fetch gallery posts: {e}")
            return []
        return self.normalizer.normalize_all(rows_to_records(rows, GalleryRecord), category)


def create_aggregator(
    local: Database = None,
    shared: SharedStore = None,
    background: Optional[BackgroundTasks] = None,
    fetcher: Optional[ProxyChainFetcher] = None,
) -> Aggregator:
    local = local or db
    shared = shared or shared_store
    fetcher = fetcher or ProxyChainFetcher()
    return Aggregator(
        cache=TieredFeedCache(local, shared, background or BackgroundTasks()),
        rss=RSSAdapter(fetcher),
        channel=ChannelAdapter(fetcher),
        shared=shared,
        normalizer=ContentNormalizer(),
    )
