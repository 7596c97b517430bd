"""
Proxy-chain fetching.

A logical resource is retrieved through an ordered list of alternate routes
(public CORS/fetch proxies, or a direct route). Each attempt is bounded by its
own timeout; any transport error, non-2xx status, empty body or unparseable
body moves on to the next route. Exhausting the chain is not an error: the
caller simply gets ``None`` and carries on with its other sources.
"""
import asyncio
import time
from typing import Callable, List, Literal, Optional, Sequence, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from newspulse.config import settings
from newspulse.services.logger import logger

T = TypeVar("T")

Parser = Callable[[str], Optional[T]]


class ProxyRoute(BaseModel):
    name: str
    # Placeholders: {encoded} is the percent-encoded target, {raw} the target as-is
    template: str
    response: Literal["json", "text"] = "text"
    json_field: str = "contents"
    cache_bust: bool = False

    def build_url(self, target_url: str) -> str:
        if self.cache_bust:
            sep = "&" if "?" in target_url else "?"
            target_url = f"{target_url}{sep}t={int(time.time() * 1000)}"
        return self.template.format(encoded=quote(target_url, safe=""), raw=target_url)

    def extract_body(self, response: httpx.Response) -> str:
        if self.response == "json":
            data = response.json()
            body = data.get(self.json_field) if isinstance(data, dict) else None
            return body if isinstance(body, str) else ""
        return response.text


class ProxyChainFetcher:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None, user_agent: Optional[str] = None):
        self._transport = transport
        self._headers = {"User-Agent": user_agent or settings.HTTP_USER_AGENT}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, headers=self._headers, follow_redirects=True)

    async def fetch(self, target_url: str, routes: Sequence[ProxyRoute], parse: Parser, timeout: float) -> Optional[T]:
        """Walks the route chain for one resource; returns the first valid parse or None."""
        async with self._client() as client:
            return await self._fetch_with(client, target_url, routes, parse, timeout)

    async def fetch_many(self, target_urls: Sequence[str], routes: Sequence[ProxyRoute], parse: Parser, timeout: float) -> List[Optional[T]]:
        """
        Runs one independent chain per URL concurrently.
        Results come back in the order of ``target_urls`` once every chain has settled.
        """
        async with self._client() as client:
            results = await asyncio.gather(
                *[self._fetch_with(client, url, routes, parse, timeout) for url in target_urls],
                return_exceptions=True,
            )
        settled = []
        for url, res in zip(target_urls, results):
            if isinstance(res, BaseException):
                logger.error(f"Proxy chain for {url} crashed: {res}")
                settled.append(None)
            else:
                settled.append(res)
        return settled

    async def _fetch_with(self, client: httpx.AsyncClient, target_url: str, routes: Sequence[ProxyRoute], parse: Parser, timeout: float) -> Optional[T]:
        for route in routes:
            result = await self._attempt(client, route, target_url, parse, timeout)
            if result is not None:
                logger.debug(f"Fetched {target_url} via {route.name}")
                return result
        logger.warning(f"All {len(routes)} routes failed for {target_url}")
        return None

    async def _attempt(self, client: httpx.AsyncClient, route: ProxyRoute, target_url: str, parse: Parser, timeout: float) -> Optional[T]:
        url = route.build_url(target_url)
        try:
            # wait_for bounds the whole attempt; httpx's own timeout is per phase
            resp = await asyncio.wait_for(client.get(url, timeout=timeout), timeout=timeout)
            if resp.status_code < 200 or resp.status_code >= 300:
                logger.debug(f"Route {route.name} returned status {resp.status_code} for {target_url}")
                return None
            body = route.extract_body(resp)
        except asyncio.TimeoutError:
            logger.debug(f"Route {route.name} timed out after {timeout}s for {target_url}")
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Route {route.name} failed for {target_url}: {e}")
            return None

        if not body or not body.strip():
            return None

        try:
            parsed = parse(body)
        except Exception as e:
            logger.debug(f"Route {route.name} body unparseable for {target_url}: {e}")
            return None
        return parsed if parsed else None
