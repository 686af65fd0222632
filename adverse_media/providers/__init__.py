"""External provider adapters: web search and content fetching."""

from adverse_media.providers.fetcher import ContentScraper, fetch_content
from adverse_media.providers.firecrawl import FirecrawlClient, get_firecrawl_client
from adverse_media.providers.search import SearchResponse, WebSearcher, web_search

__all__ = [
    "ContentScraper",
    "FirecrawlClient",
    "SearchResponse",
    "WebSearcher",
    "fetch_content",
    "get_firecrawl_client",
    "web_search",
]
