from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from newspulse.models.items import RawRecord
from newspulse.tools.proxy_fetcher import ProxyChainFetcher, ProxyRoute

class SourceAdapter(ABC):
    """Turns a fetched body into raw provider records; fetching goes through a proxy chain."""

    def __init__(self, fetcher: ProxyChainFetcher, routes: Sequence[ProxyRoute], timeout: float):
        self.fetcher = fetcher
        self.routes = list(routes)
        self.timeout = timeout

    @abstractmethod
    def parse(self, body: str) -> Optional[List[RawRecord]]:
        """Returns None when the body does not look like this provider's payload."""

    async def fetch_records(self, url: str) -> List[RawRecord]:
        records = await self.fetcher.fetch(url, self.routes, self.parse, self.timeout)
        return records or []
