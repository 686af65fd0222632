"""Web search seam: provider protocol plus the failure-absorbing pipeline wrapper."""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from adverse_media.logging import get_logger
from adverse_media.models import SearchHit

log = get_logger("adverse_media.providers.search")


class SearchResponse(BaseModel):
    """Ranked hits plus the provider payload kept for audit."""

    hits: list[SearchHit] = Field(default_factory=list)
    raw_data: Any = None
    status: Literal["success", "failed"] = "success"


class WebSearcher(Protocol):
    """Full-text web search provider: query -> ranked hits."""

    async def search(self, query: str, *, limit: int) -> SearchResponse:
        """Return at most ``limit`` hits; raise on provider failure."""
        ...


async def web_search(query: str, *, limit: int, searcher: WebSearcher) -> SearchResponse:
    """Search for the pipeline; provider failures become an empty hit list."""
    try:
        response = await searcher.search(query, limit=limit)
    except Exception as e:
        log.warning("search.failed", query=query, error=str(e), error_type=type(e).__name__)
        return SearchResponse(hits=[], raw_data={"error": str(e)}, status="failed")

    return SearchResponse(hits=response.hits[:limit], raw_data=response.raw_data)
