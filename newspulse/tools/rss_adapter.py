import feedparser
from typing import List, Optional, Sequence
from datetime import datetime, timezone
from newspulse.config import settings
from newspulse.feeds_config import FEED_PROXY_CHAIN
from newspulse.models.items import RssRecord
from newspulse.services.logger import logger
from newspulse.tools.base_adapter import SourceAdapter
from newspulse.tools.proxy_fetcher import ProxyChainFetcher, ProxyRoute

class RSSAdapter(SourceAdapter):
    def __init__(self, fetcher: ProxyChainFetcher, routes: Sequence[ProxyRoute] = None, timeout: float = None):
        super().__init__(fetcher, routes or FEED_PROXY_CHAIN, timeout or settings.FEED_FETCH_TIMEOUT)

    def parse(self, body: str) -> Optional[List[RssRecord]]:
        # feedparser treats URL-looking strings as something to download
        if not body.lstrip().startswith("<"):
            return None
        feed = feedparser.parse(body.encode("utf-8"))
        if not feed.entries:
            return None
        return [_entry_to_record(entry) for entry in feed.entries]

    async def fetch_many(self, urls: Sequence[str]) -> List[List[RssRecord]]:
        """One proxy chain per feed URL, all in flight at once; results in ``urls`` order."""
        logger.info(f"Fetching RSS feeds: {len(urls)} sources")
        results = await self.fetcher.fetch_many(urls, self.routes, self.parse, self.timeout)
        per_url = []
        for url, records in zip(urls, results):
            records = records or []
            per_url.append([r.model_copy(update={"feed_url": url}) for r in records])
        logger.info(f"Found {sum(len(r) for r in per_url)} RSS records")
        return per_url


def _entry_to_record(entry) -> RssRecord:
    published = entry.get('published_parsed') or entry.get('updated_parsed')
    dt = None
    if published:
        try:
            dt = datetime(*published[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            dt = None

    # content:encoded carries the full article when the feed has it
    body = ""
    contents = entry.get('content')
    if contents:
        body = contents[0].get('value', '') or ''
    if not body:
        body = entry.get('summary', '') or entry.get('description', '') or ''

    return RssRecord(
        feed_url="",
        title=entry.get('title'),
        link=entry.get('link'),
        published_at=dt,
        body_html=body,
        media_url=_media_url(entry),
    )


def _media_url(entry) -> Optional[str]:
    for key in ('media_content', 'media_thumbnail'):
        for media in entry.get(key) or []:
            url = media.get('url')
            if url:
                return url
    for enclosure in entry.get('enclosures') or []:
        if str(enclosure.get('type', '')).startswith('image/') and enclosure.get('href'):
            return enclosure.get('href')
    return None
