import re
from bs4 import BeautifulSoup
from typing import List, Optional, Sequence
from datetime import datetime
from newspulse.config import settings
from newspulse.feeds_config import CHANNEL_PROXY_CHAIN
from newspulse.models.items import ChannelMessageRecord
from newspulse.services.logger import logger
from newspulse.tools.base_adapter import SourceAdapter
from newspulse.tools.proxy_fetcher import ProxyChainFetcher, ProxyRoute

# Marker present on every post of a public channel preview page (t.me/s/<channel>)
MESSAGE_MARKER = "tgme_widget_message"

_BG_IMAGE_RE = re.compile(r"url\(['\"]?(.*?)['\"]?\)")


class ChannelAdapter(SourceAdapter):
    """Scrapes the public web preview of a Telegram channel."""

    def __init__(self, fetcher: ProxyChainFetcher, channel_url: str = None, routes: Sequence[ProxyRoute] = None, timeout: float = None):
        super().__init__(fetcher, routes or CHANNEL_PROXY_CHAIN, timeout or settings.CHANNEL_FETCH_TIMEOUT)
        self.channel_url = channel_url or settings.TELEGRAM_CHANNEL_URL

    def parse(self, body: str) -> Optional[List[ChannelMessageRecord]]:
        if MESSAGE_MARKER not in body:
            return None
        soup = BeautifulSoup(body, "html.parser")
        records = [_message_to_record(msg) for msg in soup.select(f".{MESSAGE_MARKER}")]
        if not records:
            return None
        # The page lists oldest first
        records.reverse()
        return records

    async def fetch_channel(self) -> List[ChannelMessageRecord]:
        logger.info(f"Fetching channel page: {self.channel_url}")
        records = await self.fetch_records(self.channel_url)
        logger.info(f"Found {len(records)} channel posts")
        return records


def extract_bg_image(style: str) -> str:
    match = _BG_IMAGE_RE.search(style or "")
    return match.group(1) if match else ""


def _message_to_record(msg) -> ChannelMessageRecord:
    text = ""
    text_el = msg.select_one(".tgme_widget_message_text")
    if text_el is not None:
        for br in text_el.find_all("br"):
            br.replace_with("\n")
        text = text_el.get_text()

    published = None
    time_el = msg.select_one("time[datetime]")
    if time_el is not None:
        try:
            published = datetime.fromisoformat(time_el["datetime"])
        except ValueError:
            published = None

    image_url = ""
    photo_wrap = msg.select_one(".tgme_widget_message_photo_wrap")
    if photo_wrap is not None:
        image_url = extract_bg_image(photo_wrap.get("style", ""))

    video_url = ""
    is_video = False
    video_wrap = msg.select_one(".tgme_widget_message_video_player")
    if video_wrap is not None:
        is_video = True
        thumb = video_wrap.select_one(".tgme_widget_message_video_thumb")
        if not image_url and thumb is not None:
            image_url = extract_bg_image(thumb.get("style", ""))
        video_tag = video_wrap.select_one("video")
        if video_tag is not None:
            video_url = video_tag.get("src", "")

    return ChannelMessageRecord(
        post_ref=msg.get("data-post"),
        text=text,
        published_at=published,
        image_url=image_url or None,
        video_url=video_url or None,
        is_video=is_video,
    )
