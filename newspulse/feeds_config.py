from typing import Dict, List
from newspulse.models.items import Category
from newspulse.tools.proxy_fetcher import ProxyRoute

# RSS Feeds per category (merged in this order)
CATEGORY_FEEDS: Dict[Category, List[str]] = {
    Category.HYDERABAD: [
        "https://www.thehindu.com/news/cities/Hyderabad/feeder/default.rss",
        "https://timesofindia.indiatimes.com/rssfeeds/-2128816011.cms",
    ],
    Category.TELANGANA: [
        "https://www.thehindu.com/news/national/telangana/feeder/default.rss",
        "https://www.deccanchronicle.com/google_feeds.xml",
    ],
    Category.INDIA: [
        "https://feeds.feedburner.com/ndtvnews-india-news",
        "https://www.thehindu.com/news/national/feeder/default.rss",
    ],
    Category.INTERNATIONAL: [
        "https://feeds.bbci.co.uk/news/world/rss.xml",
        "https://www.aljazeera.com/xml/rss/all.xml",
    ],
    Category.SPORTS: [
        "https://feeds.bbci.co.uk/sport/rss.xml",
        "https://www.espncricinfo.com/rss/content/story/feeds/0.xml",
    ],
    Category.FOUNDERS: [
        "https://techcrunch.com/feed/",
        "https://yourstory.com/feed",
    ],
}

# Tried in order for every feed URL
FEED_PROXY_CHAIN: List[ProxyRoute] = [
    ProxyRoute(name="allorigins", template="https://api.allorigins.win/get?url={encoded}", response="json"),
    ProxyRoute(name="codetabs", template="https://api.codetabs.com/v1/proxy?quest={encoded}"),
    ProxyRoute(name="corsproxy", template="https://corsproxy.io/?{encoded}"),
    ProxyRoute(name="thingproxy", template="https://thingproxy.freeboard.io/fetch/{raw}"),
]

# Channel preview page; allorigins caches aggressively, so bust it
CHANNEL_PROXY_CHAIN: List[ProxyRoute] = [
    ProxyRoute(name="allorigins", template="https://api.allorigins.win/get?url={encoded}", response="json", cache_bust=True),
    ProxyRoute(name="codetabs", template="https://api.codetabs.com/v1/proxy?quest={encoded}"),
    ProxyRoute(name="corsproxy", template="https://corsproxy.io/?{encoded}"),
]
