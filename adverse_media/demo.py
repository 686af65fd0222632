"""Demo mode fixtures for API testing without burning API keys."""

import os
from functools import lru_cache
from typing import AsyncIterator

from adverse_media.aggregator import aggregate
from adverse_media.events import complete_event, progress_event
from adverse_media.models import (
    EntityMatch,
    PipelineStatus,
    Relationship,
    RelationshipType,
    ScreeningSnapshot,
    SearchResultItem,
    SearchSourceInfo,
    SearchSources,
    SourceRecord,
)
from adverse_media.query import build_search_query, resolve_keyword_terms

DEMO_SEARCH_ID = "00000000-0000-4000-8000-000000000000"


def is_demo_mode_allowed() -> bool:
    """Check if demo mode is allowed in current environment.

    Demo mode is only allowed in development and staging environments
    for security and resource reasons.

    Returns:
        True if demo mode allowed, False otherwise
    """
    environment = os.getenv("ENVIRONMENT", "development")
    return environment in ("development", "staging")


def _demo_results(individual_name: str) -> list[SearchResultItem]:
    return [
        SearchResultItem(
            url="https://www.example-news.se/ekonomi/bolag-under-utredning",
            title=f"{individual_name} named in tax fraud investigation",
            description="Prosecutors have opened a preliminary investigation into the company's accounts.",
            risk_score=65,
            adverse_content=[
                "Named as a suspect in a preliminary tax fraud investigation",
                "Company accounts for 2022 referred to the Economic Crime Authority",
            ],
            status="complete",
            entity_match=EntityMatch(
                is_exact_match=True,
                confidence=92,
                reason="Full name, company and city match the screening target",
            ),
            relationships=[
                Relationship(
                    name="Nordic Trade Holding AB",
                    type=RelationshipType.BUSINESS,
                    description="Board member of the holding company under investigation",
                    confidence=85,
                    source_url="https://www.example-news.se/ekonomi/bolag-under-utredning",
                    source_title=f"{individual_name} named in tax fraud investigation",
                )
            ],
            summary="The article reports an ongoing fraud investigation involving the target's company.",
        ),
        SearchResultItem(
            url="https://www.example-sport.se/fotboll/matchrapport",
            title=f"{individual_name} scores twice in derby",
            description="Match report from the weekend's local derby.",
            risk_score=0,
            adverse_content=[],
            status="complete",
            entity_match=EntityMatch(
                is_exact_match=False,
                confidence=15,
                reason="Same name, but the article is about a 19-year-old football player",
            ),
            summary="Sports coverage about a namesake.",
        ),
        SearchResultItem(
            url="https://www.example-registry.se/foretag/nordic-trade-holding",
            title="Nordic Trade Holding AB - company information",
            description="Registered officers and annual reports.",
            risk_score=20,
            adverse_content=["Late filing of the 2023 annual report"],
            status="complete",
            entity_match=EntityMatch(
                is_exact_match=False,
                confidence=75,
                reason="Listed as board member of the target's company",
            ),
            summary="Registry entry listing the target as a board member.",
        ),
    ]


@lru_cache(maxsize=8)
def get_demo_screening_result(
    individual_name: str,
    company_name: str | None = None,
    keyword_tags: tuple[str, ...] = (),
) -> ScreeningSnapshot:
    """Generate cached demo screening result for testing.

    Returns the same three fabricated articles for any name: one adverse
    valid match, one namesake and one low-risk registry entry.

    Args:
        individual_name: Name being screened (used in titles)
        company_name: Optional company (used in the query only)
        keyword_tags: Keyword tag IDs (used in the query and summary)

    Returns:
        Final ScreeningSnapshot with realistic mock data
    """
    query = build_search_query(individual_name, company_name, None, keyword_tags)
    keywords = resolve_keyword_terms(keyword_tags)
    results = _demo_results(individual_name)
    outcome = aggregate(results, individual_name=individual_name, scraping_failures=0, keywords=keywords)

    sources = SearchSources(
        search=SearchSourceInfo(
            query=query,
            results=[{"url": item.url, "title": item.title, "description": item.description} for item in results],
        ),
        crawl=[SourceRecord(source_type="crawl", url=item.url, status="success") for item in results],
    )
    return ScreeningSnapshot(
        status=PipelineStatus.COMPLETE,
        progress=100,
        results=results,
        sources=sources,
        summary=outcome.summary,
        relationships=outcome.relationships,
        search_id=DEMO_SEARCH_ID,
        auto_saved=False,
    )


async def generate_demo_sse_stream(
    individual_name: str,
    company_name: str | None = None,
    keyword_tags: tuple[str, ...] = (),
) -> AsyncIterator[str]:
    """Generate demo SSE event stream following the real progress sequence.

    Yields events instantly for rapid testing.

    Yields:
        Formatted SSE event strings
    """
    final = get_demo_screening_result(individual_name, company_name, keyword_tags)
    placeholders = [SearchResultItem(url=item.url, title=item.title, description=item.description) for item in final.results]

    yield progress_event(ScreeningSnapshot(status=PipelineStatus.SEARCHING, progress=5, search_id=DEMO_SEARCH_ID)).format()
    yield progress_event(
        ScreeningSnapshot(status=PipelineStatus.SEARCHING, progress=10, sources=final.sources, search_id=DEMO_SEARCH_ID)
    ).format()

    total = len(final.results)
    for index in range(total):
        yield progress_event(
            ScreeningSnapshot(
                status=PipelineStatus.ANALYZING,
                progress=30 + (index * 60) // total,
                results=[*final.results[:index], *placeholders[index:]],
                sources=final.sources,
                search_id=DEMO_SEARCH_ID,
            )
        ).format()

    yield complete_event(final).format()
