"""Firecrawl HTTP client used for both web search and page scraping."""

from functools import lru_cache
from typing import Any

import httpx

from adverse_media.config import get_settings
from adverse_media.exceptions import ScrapeProviderError, SearchProviderError
from adverse_media.logging import get_logger
from adverse_media.models import SearchHit
from adverse_media.providers.search import SearchResponse

log = get_logger("adverse_media.providers.firecrawl")

SEARCH_PATH = "/v1/search"
SCRAPE_PATH = "/v1/scrape"
SCRAPE_FORMATS = ("markdown", "html")


class FirecrawlClient:
    """Thin async wrapper over the Firecrawl v1 REST API.

    Implements both the ``WebSearcher`` and ``ContentScraper`` protocols.
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.firecrawl.dev",
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key.strip()
        self.base_url = base_url.strip().rstrip("/")
        self.timeout_seconds = max(float(timeout_seconds), 1.0)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.post(self.base_url + path, json=payload, headers=self._headers())
            response.raise_for_status()
            return response.json()

    async def search(self, query: str, *, limit: int) -> SearchResponse:
        """Run a web search and normalize the hits in rank order."""
        try:
            payload = await self._post(SEARCH_PATH, {"query": query, "limit": limit})
        except (httpx.HTTPError, ValueError) as e:
            raise SearchProviderError(query=query, reason=str(e)) from e

        if not isinstance(payload, dict) or not payload.get("success", True):
            reason = payload.get("error", "provider reported failure") if isinstance(payload, dict) else "malformed"
            raise SearchProviderError(query=query, reason=str(reason))

        raw_hits = payload.get("data") or []
        hits = [
            SearchHit(
                url=str(item["url"]),
                title=item.get("title") or "No title",
                description=item.get("description") or "No description",
                raw=item,
            )
            for item in raw_hits[:limit]
            if isinstance(item, dict) and item.get("url")
        ]
        log.debug("firecrawl.search.completed", query=query, hit_count=len(hits))
        return SearchResponse(hits=hits, raw_data=payload)

    async def scrape(self, url: str) -> dict[str, Any]:
        """Fetch markdown, html and metadata for one page; returns the raw payload."""
        try:
            payload = await self._post(SCRAPE_PATH, {"url": url, "formats": list(SCRAPE_FORMATS)})
        except (httpx.HTTPError, ValueError) as e:
            raise ScrapeProviderError(url=url, reason=str(e)) from e

        if not isinstance(payload, dict):
            raise ScrapeProviderError(url=url, reason="malformed response")
        return payload


@lru_cache(maxsize=1)
def get_firecrawl_client() -> FirecrawlClient:
    """Cached client built from settings."""
    settings = get_settings()
    return FirecrawlClient(
        api_key=settings.firecrawl_api_key,
        base_url=settings.firecrawl_base_url,
        timeout_seconds=settings.firecrawl_timeout_seconds,
    )
