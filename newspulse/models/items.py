import re
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from pydantic.alias_generators import to_camel
from typing import Optional, List, Any, Union, Literal, Annotated
from datetime import datetime

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Category(str, Enum):
    AZAD_STUDIO = "Azad Studio"
    HYDERABAD = "Hyderabad"
    TELANGANA = "Telangana"
    INDIA = "India"
    INTERNATIONAL = "International"
    SPORTS = "Sports"
    FOUNDERS = "Founders"
    GALLERY = "Gallery"

    @classmethod
    def parse(cls, text: str) -> Optional["Category"]:
        """Case-insensitive lookup by display value or member name."""
        wanted = text.strip().lower()
        for category in cls:
            if category.value.lower() == wanted or category.name.lower() == wanted:
                return category
        return None


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    ANIMATION = "animation"
    NONE = "none"


class ContentItem(BaseModel):
    """Canonical unit flowing through the aggregation pipeline.

    Items are frozen: every cache tier stores its own serialized copy and
    rebuilds items on read, so nothing downstream can mutate a cached item.
    Cached JSON uses camelCase keys (``imageUrl``, ``mediaType``).
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    title: str
    source: str
    timestamp: str = "Recent"
    description: str
    content: str
    category: Category
    url: str = "#"
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    media_type: MediaType = MediaType.NONE
    # Provider publish time, only used for in-process ordering; never serialized
    published_at: Optional[datetime] = Field(default=None, exclude=True)

    def dedup_key(self) -> str:
        return re.sub(r"[^a-z0-9]", "", self.title.lower())

    def to_cache_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class FeedCacheEntry(BaseModel):
    category: Category
    items: List[ContentItem]
    written_at: datetime


# Raw provider records. The normalizer dispatches on ``kind``.

class RssRecord(BaseModel):
    kind: Literal["rss"] = "rss"
    feed_url: str
    title: Optional[str] = None
    link: Optional[str] = None
    published_at: Optional[datetime] = None
    body_html: str = ""
    media_url: Optional[str] = None


class ChannelMessageRecord(BaseModel):
    kind: Literal["channel"] = "channel"
    post_ref: Optional[str] = None  # "<channel>/<message id>"
    text: str = ""
    published_at: Optional[datetime] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    is_video: bool = False


class ArchiveRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["archive"] = "archive"
    id: Optional[Union[int, str]] = None
    chat_id: Optional[int] = None
    message_id: Optional[int] = None
    message: Optional[str] = None
    media_url: Optional[str] = None
    media_type: Optional[str] = None
    created_at: Optional[datetime] = None


class GalleryRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    kind: Literal["gallery"] = "gallery"
    id: Union[int, str]
    title: Optional[str] = None
    description: Optional[str] = None
    media_url: Optional[str] = None
    created_at: Optional[datetime] = None


class UnrecognizedRecord(BaseModel):
    kind: Literal["unrecognized"] = "unrecognized"
    payload: Any = None


RawRecord = Union[RssRecord, ChannelMessageRecord, ArchiveRecord, GalleryRecord, UnrecognizedRecord]


class GeneratedContent(BaseModel):
    """Shape requested from the generation capability."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    full_article: NonEmptyStr
    summary_short: NonEmptyStr
    summary_roman_urdu: NonEmptyStr
    summary_urdu: NonEmptyStr
    summary_hindi: NonEmptyStr
    summary_telugu: NonEmptyStr
    full_article_roman_urdu: NonEmptyStr
    full_article_urdu: NonEmptyStr
    full_article_hindi: NonEmptyStr
    full_article_telugu: NonEmptyStr


class EnhancedContent(GeneratedContent):
    # False only for the "translation unavailable" placeholder
    available: bool = True

    @classmethod
    def unavailable(cls, description: str = "") -> "EnhancedContent":
        description = (description or "").strip()
        return cls(
            full_article=description or "Content currently unavailable. Please check back later.",
            summary_short=description or "Summary unavailable.",
            summary_roman_urdu="Tarjuma dastiyab nahi hai.",
            summary_urdu="ترجمہ دستیاب نہیں ہے۔",
            summary_hindi="अनुवाद उपलब्ध नहीं है।",
            summary_telugu="అనువాదం అందుబాటులో లేదు.",
            full_article_roman_urdu=description or "Tarjuma dastiyab nahi hai.",
            full_article_urdu="ترجمہ دستیاب نہیں ہے۔",
            full_article_hindi="अनुवाद उपलब्ध नहीं है।",
            full_article_telugu="అనువాదం అందుబాటులో లేదు.",
            available=False,
        )
