"""Content fetcher: wraps the scraper and normalizes every outcome."""

from typing import Any, Protocol

from adverse_media.logging import get_logger
from adverse_media.models import FetchResult

log = get_logger("adverse_media.providers.fetcher")


class ContentScraper(Protocol):
    """Web content scraper: url -> raw provider payload."""

    async def scrape(self, url: str) -> dict[str, Any]:
        """Return ``{"success": bool, "data": {"markdown", "html", "metadata"}}``."""
        ...


def _failed(raw_data: Any) -> FetchResult:
    return FetchResult(status="failed", content="", html="", metadata={}, raw_data=raw_data)


async def fetch_content(url: str, *, scraper: ContentScraper) -> FetchResult:
    """Fetch a page as markdown/html/metadata. Never raises."""
    try:
        payload = await scraper.scrape(url)
    except Exception as e:
        log.warning("fetch.failed", url=url, error=str(e), error_type=type(e).__name__)
        return _failed({"error": str(e)})

    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(payload, dict) or not payload.get("success") or not isinstance(data, dict):
        reason = payload.get("error", "No data returned") if isinstance(payload, dict) else "malformed payload"
        log.info("fetch.unsuccessful", url=url, reason=str(reason))
        return _failed(payload)

    metadata = data.get("metadata")
    result = FetchResult(
        status="success",
        content=str(data.get("markdown") or ""),
        html=str(data.get("html") or ""),
        metadata=metadata if isinstance(metadata, dict) else {},
        raw_data=payload,
    )
    log.debug("fetch.completed", url=url, content_length=len(result.content))
    return result
