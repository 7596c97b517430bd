from datetime import datetime, timezone

import httpx
import pytest

from newspulse.tools.proxy_fetcher import ProxyChainFetcher, ProxyRoute
from newspulse.tools.rss_adapter import RSSAdapter

DIRECT = [ProxyRoute(name="direct", template="{raw}")]

SAMPLE_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>City News</title>
    <item>
      <title>Metro line opens in Hyderabad</title>
      <link>https://news.test/metro</link>
      <pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
      <description><![CDATA[<p>The new <b>metro</b> line opened today.</p>]]></description>
      <media:content url="https://img.test/metro.jpg" medium="image" />
    </item>
    <item>
      <title>Rain alert issued</title>
      <link>https://news.test/rain</link>
      <description>Heavy rain expected.</description>
      <enclosure url="https://img.test/rain.jpg" type="image/jpeg" length="1200" />
    </item>
  </channel>
</rss>
"""


def test_parse_extracts_records():
    adapter = RSSAdapter(ProxyChainFetcher(), routes=DIRECT)

    records = adapter.parse(SAMPLE_FEED)

    assert len(records) == 2
    first, second = records
    assert first.title == "Metro line opens in Hyderabad"
    assert first.link == "https://news.test/metro"
    assert first.published_at == datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc)
    assert "<b>metro</b>" in first.body_html
    assert first.media_url == "https://img.test/metro.jpg"
    assert second.published_at is None
    assert second.media_url == "https://img.test/rain.jpg"


def test_parse_rejects_non_feed_bodies():
    adapter = RSSAdapter(ProxyChainFetcher(), routes=DIRECT)

    assert adapter.parse("Access denied") is None
    assert adapter.parse("<html><body>Just a moment...</body></html>") is None
    assert adapter.parse("<rss version='2.0'><channel><title>Empty</title></channel></rss>") is None


@pytest.mark.asyncio
async def test_fetch_many_stamps_feed_url_per_source():
    def handler(request):
        if request.url.host == "good.test":
            return httpx.Response(200, text=SAMPLE_FEED)
        return httpx.Response(404)

    adapter = RSSAdapter(ProxyChainFetcher(transport=httpx.MockTransport(handler)), routes=DIRECT, timeout=1)

    per_url = await adapter.fetch_many(["https://good.test/rss", "https://missing.test/rss"])

    assert len(per_url) == 2
    assert [r.feed_url for r in per_url[0]] == ["https://good.test/rss"] * 2
    assert per_url[1] == []
