"""
Content normalization.

Every provider record (RSS entry, live channel post, archived channel post,
gallery row) becomes exactly one ``ContentItem``, or ``None`` when it cannot
be parsed. Ids are derived from each provider's natural key so the same
record always yields the same id across fetch cycles.
"""
import hashlib
import re
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from newspulse.config import settings
from newspulse.models.items import (
    ArchiveRecord,
    Category,
    ChannelMessageRecord,
    ContentItem,
    GalleryRecord,
    MediaType,
    RawRecord,
    RssRecord,
)
from newspulse.services.logger import logger

CHANNEL_SOURCE = "Azad Studio Live"
ARCHIVE_SOURCE = "Azad Studio (Archive)"
GALLERY_SOURCE = "Azad Gallery"
CHANNEL_UPDATE_LABEL = "Azad Studio Update"

RECENT = "Recent"

_IMG_SRC_RE = re.compile(r"<img[^>]+src=[\"']([^\"'>]+)[\"']", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")
_BLOCK_TAGS = ["br", "p", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6"]

_ARCHIVE_MEDIA_TYPES = {
    "photo": MediaType.IMAGE,
    "image": MediaType.IMAGE,
    "video": MediaType.VIDEO,
    "animation": MediaType.ANIMATION,
}


def stable_hash(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()[:16]


def html_to_text(html: str) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    # Inline tags join with no separator; only block boundaries break words
    for tag in soup.find_all(_BLOCK_TAGS):
        tag.insert_after("\n")
    text = soup.get_text()
    return _WHITESPACE_RE.sub(" ", text).strip()


def first_image_src(html: str) -> Optional[str]:
    match = _IMG_SRC_RE.search(html or "")
    return match.group(1) if match else None


def truncate(text: str, limit: int) -> str:
    """Keeps an exact prefix of ``text`` so the result stays a prefix of the full body."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def source_label(feed_url: str) -> str:
    host = urlparse(feed_url).hostname or ""
    host = host.replace("www.", "").replace("feeds.", "")
    return host.split(".")[0].upper() or "RSS"


def placeholder_body(source: str) -> str:
    return f"Check out this update from {source}."


class ContentNormalizer:
    def __init__(self, display_tz: str = None, description_max: int = None, title_max: int = None, logo_url: str = None):
        self.tz = ZoneInfo(display_tz or settings.DISPLAY_TIMEZONE)
        self.description_max = description_max or settings.DESCRIPTION_MAX_CHARS
        self.title_max = title_max or settings.TITLE_MAX_CHARS
        self.logo_url = logo_url if logo_url is not None else settings.ASSET_LOGO_URL
        self._handlers: Dict[type, Callable[[RawRecord, Category], Optional[ContentItem]]] = {
            RssRecord: self._from_rss,
            ChannelMessageRecord: self._from_channel,
            ArchiveRecord: self._from_archive,
            GalleryRecord: self._from_gallery,
        }

    def normalize(self, record: RawRecord, category: Category) -> Optional[ContentItem]:
        handler = self._handlers.get(type(record))
        if handler is None:
            return None
        try:
            return handler(record, category)
        except Exception as e:
            logger.debug(f"Skipping unparseable {type(record).__name__}: {e}")
            return None

    def normalize_all(self, records: Iterable[RawRecord], category: Category) -> List[ContentItem]:
        items = []
        for record in records:
            item = self.normalize(record, category)
            if item is not None:
                items.append(item)
        return items

    # Formatting helpers

    def derive_title(self, text: str, fallback: str) -> str:
        for line in text.splitlines():
            line = line.strip()
            if line:
                return truncate(line, self.title_max)
        return fallback

    def _local(self, dt: datetime) -> datetime:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(self.tz)

    def format_time(self, dt: Optional[datetime]) -> str:
        return self._local(dt).strftime("%I:%M %p") if dt else RECENT

    def format_datetime(self, dt: Optional[datetime]) -> str:
        return self._local(dt).strftime("%d %b %Y, %I:%M %p") if dt else RECENT

    def format_date(self, dt: Optional[datetime]) -> str:
        return self._local(dt).strftime("%d %b %Y") if dt else RECENT

    # Per-provider rules

    def _from_rss(self, record: RssRecord, category: Category) -> Optional[ContentItem]:
        text = html_to_text(record.body_html)
        title = (record.title or "").strip()
        link = (record.link or "").strip()

        natural_key = link or (f"{title}|{record.published_at.isoformat()}" if title and record.published_at else title)
        if not natural_key:
            return None

        source = source_label(record.feed_url)
        body = text or placeholder_body(source)
        image_url = record.media_url or first_image_src(record.body_html)

        return ContentItem(
            id=f"rss_{stable_hash(natural_key)}",
            title=title or self.derive_title(text, "New Image Upload" if image_url else f"{source} Update"),
            source=source,
            timestamp=self.format_time(record.published_at),
            description=truncate(body, self.description_max),
            content=body,
            category=category,
            url=link or "#",
            image_url=image_url,
            media_type=MediaType.IMAGE if image_url else MediaType.NONE,
            published_at=record.published_at,
        )

    def _from_channel(self, record: ChannelMessageRecord, category: Category) -> Optional[ContentItem]:
        text = record.text.strip()
        if record.post_ref:
            post_id = record.post_ref
        elif text or record.published_at:
            post_id = stable_hash(f"{text}|{record.published_at}")
        else:
            return None

        if record.is_video:
            label = "New Video Upload"
        elif record.image_url:
            label = "New Image Upload"
        else:
            label = CHANNEL_UPDATE_LABEL
        body = text or placeholder_body("Azad Studio Official")

        return ContentItem(
            id=f"tg_live_{post_id}",
            title=self.derive_title(text, label),
            source=CHANNEL_SOURCE,
            timestamp=self.format_datetime(record.published_at),
            description=truncate(body, self.description_max),
            content=body,
            category=category,
            url=f"https://t.me/{record.post_ref}" if record.post_ref else "#",
            image_url=record.image_url or self.logo_url or None,
            video_url=record.video_url,
            media_type=MediaType.VIDEO if record.is_video else MediaType.IMAGE,
            published_at=record.published_at,
        )

    def _from_archive(self, record: ArchiveRecord, category: Category) -> Optional[ContentItem]:
        if record.id is not None:
            row_key = str(record.id)
        elif record.chat_id is not None and record.message_id is not None:
            row_key = f"{record.chat_id}_{record.message_id}"
        else:
            return None

        media_type = _ARCHIVE_MEDIA_TYPES.get((record.media_type or "").lower(), MediaType.NONE)
        if media_type == MediaType.NONE and record.media_url:
            media_type = MediaType.IMAGE
        is_motion = media_type in (MediaType.VIDEO, MediaType.ANIMATION)

        text = (record.message or "").strip()
        if media_type == MediaType.VIDEO:
            label = "New Video Upload"
        elif media_type == MediaType.IMAGE:
            label = "New Image Upload"
        else:
            label = CHANNEL_UPDATE_LABEL
        body = text or placeholder_body("Azad Studio Official")

        return ContentItem(
            id=f"tg_db_{row_key}",
            title=self.derive_title(text, label),
            source=ARCHIVE_SOURCE,
            timestamp=self.format_datetime(record.created_at),
            description=truncate(body, self.description_max),
            content=body,
            category=category,
            image_url=None if is_motion else record.media_url,
            video_url=record.media_url if is_motion else None,
            media_type=media_type,
            published_at=record.created_at,
        )

    def _from_gallery(self, record: GalleryRecord, category: Category) -> Optional[ContentItem]:
        body = (record.description or "").strip() or placeholder_body(GALLERY_SOURCE)
        return ContentItem(
            id=f"gal_{record.id}",
            title=(record.title or "").strip() or "Gallery Post",
            source=GALLERY_SOURCE,
            timestamp=self.format_date(record.created_at),
            description=truncate(body, self.description_max),
            content=body,
            category=category,
            image_url=record.media_url,
            media_type=MediaType.IMAGE if record.media_url else MediaType.NONE,
            published_at=record.created_at,
        )
