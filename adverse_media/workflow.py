"""Screening pipeline: search, then fetch and analyze each hit in rank order, then aggregate."""

from collections.abc import Awaitable, Callable, Mapping
from time import perf_counter
from uuid import uuid4

from pydantic_ai import Agent

from adverse_media.aggregator import aggregate, empty_results_summary
from adverse_media.analysis import analyze_content, analyze_search_snippet
from adverse_media.config import Settings, get_settings
from adverse_media.events import EventLog, SSEEvent, complete_event, progress_event
from adverse_media.keywords import DEFAULT_KEYWORDS
from adverse_media.logging import bind_context_vars, get_logger, unbind_context_vars
from adverse_media.models import (
    AnalysisJudgment,
    FetchResult,
    PipelineStatus,
    RunStatus,
    ScreeningSnapshot,
    ScreeningTarget,
    SearchHit,
    SearchRequest,
    SearchResultItem,
    SearchSourceInfo,
    SearchSources,
    SourceRecord,
)
from adverse_media.persistence import ScreeningRepository, get_repository
from adverse_media.providers import (
    ContentScraper,
    WebSearcher,
    fetch_content,
    get_firecrawl_client,
    web_search,
)
from adverse_media.query import build_search_query, resolve_keyword_terms

log = get_logger("adverse_media.workflow")

EventCallback = Callable[[SSEEvent], Awaitable[None]]

SEARCH_DISPATCHED_PROGRESS = 5
SEARCH_RECEIVED_PROGRESS = 10
ANALYSIS_START_PROGRESS = 30
ANALYSIS_SPAN = 60

STREAM_ERROR_MESSAGE = "Screening failed before completion. Partial results may be available in search history."


def analysis_progress(index: int, total: int) -> int:
    """Progress while analyzing result ``index`` (0-based) of ``total``."""
    return ANALYSIS_START_PROGRESS + (index * ANALYSIS_SPAN) // total


def _completed_item(hit: SearchHit, fetched: FetchResult, judgment: AnalysisJudgment) -> SearchResultItem:
    relationships = [
        relationship.model_copy(update={"source_url": hit.url, "source_title": hit.title})
        for relationship in judgment.relationships
    ]
    return SearchResultItem(
        url=hit.url,
        title=hit.title,
        description=hit.description,
        risk_score=judgment.risk_score,
        adverse_content=judgment.adverse_content,
        status="complete",
        entity_match=judgment.entity_match,
        relationships=relationships,
        summary=judgment.summary,
        raw_search_data=hit.raw or None,
        raw_crawl_data=fetched.raw_data if isinstance(fetched.raw_data, dict) else None,
    )


async def run_screening_workflow(
    request: SearchRequest,
    *,
    event_callback: EventCallback | None = None,
    searcher: WebSearcher | None = None,
    scraper: ContentScraper | None = None,
    analysis_agent: Agent[None, str] | None = None,
    repository: ScreeningRepository | None = None,
    settings: Settings | None = None,
    dictionary: Mapping[str, str] = DEFAULT_KEYWORDS,
) -> ScreeningSnapshot:
    """Run one adverse media screening end to end.

    Every step emits a snapshot event through ``event_callback``. The run
    always ends with a complete event at progress 100; failures are reported
    through its ``error`` field rather than raised.

    Args:
        request: Identity, keyword tags and optional run id to resume.
        event_callback: Async sink for progress and complete events.
        searcher: Override default web search provider (for testing).
        scraper: Override default content scraper (for testing).
        analysis_agent: Override default analysis agent (for testing).
        repository: Override default persistence adapter (for testing).
        settings: Override environment settings (for testing).
        dictionary: Keyword tag to search term mapping.

    Returns:
        The final snapshot, as a stream consumer would hold it.
    """
    correlation_id = str(uuid4())[:8]
    bind_context_vars(correlation_id=correlation_id)

    _settings = settings or get_settings()
    _repository = repository or get_repository()
    _searcher = searcher or get_firecrawl_client()
    _scraper = scraper or get_firecrawl_client()

    events = EventLog()

    async def emit(event: SSEEvent) -> None:
        events.append(event)
        if event_callback is not None:
            await event_callback(event)

    keywords = resolve_keyword_terms(request.keyword_tags, dictionary)
    query = build_search_query(
        request.individual_name,
        request.company_name,
        request.additional_info,
        request.keyword_tags,
        dictionary=dictionary,
    )
    target = ScreeningTarget(
        individual_name=request.individual_name,
        company_name=request.company_name,
        additional_info=request.additional_info,
        keywords=keywords,
    )

    run_id: str | None = None
    results: list[SearchResultItem] = []
    sources: SearchSources | None = None
    progress = 0
    finalized = False
    scraping_failures = 0

    workflow_start = perf_counter()
    log.info("workflow.started", query=query, resumed=request.search_id is not None)

    try:
        # Init
        run_id = await _repository.create_or_update_run(
            request.search_id, request, RunStatus.IN_PROGRESS, request.keyword_tags
        )
        bind_context_vars(search_id=run_id)
        progress = SEARCH_DISPATCHED_PROGRESS
        await emit(
            progress_event(ScreeningSnapshot(status=PipelineStatus.SEARCHING, progress=progress, search_id=run_id))
        )

        # Search
        phase_start = perf_counter()
        response = await web_search(query, limit=_settings.search_result_limit, searcher=_searcher)
        hits = response.hits
        sources = SearchSources(
            search=SearchSourceInfo(
                query=query,
                results=[{"url": hit.url, "title": hit.title, "description": hit.description} for hit in hits],
                raw_data=response.raw_data,
                status=response.status,
            )
        )
        progress = SEARCH_RECEIVED_PROGRESS
        await _repository.save_partial_results(run_id, [], sources, progress)
        log.info(
            "workflow.search.completed",
            hit_count=len(hits),
            duration_ms=int((perf_counter() - phase_start) * 1000),
        )
        await emit(
            progress_event(
                ScreeningSnapshot(status=PipelineStatus.SEARCHING, progress=progress, sources=sources, search_id=run_id)
            )
        )

        if not hits:
            summary = empty_results_summary(keywords)
            await _repository.finalize_run(run_id, summary)
            finalized = True
            log.info("workflow.completed.no_results")
            await emit(
                complete_event(
                    ScreeningSnapshot(
                        status=PipelineStatus.COMPLETE,
                        progress=100,
                        results=[],
                        sources=sources,
                        summary=summary,
                        relationships=[],
                        search_id=run_id,
                        auto_saved=True,
                    )
                )
            )
            return events.snapshot()

        placeholders = [SearchResultItem.placeholder(hit) for hit in hits]
        progress = ANALYSIS_START_PROGRESS
        await emit(
            progress_event(
                ScreeningSnapshot(
                    status=PipelineStatus.ANALYZING,
                    progress=progress,
                    results=placeholders,
                    sources=sources,
                    search_id=run_id,
                )
            )
        )

        # Per-result loop, strictly in rank order
        phase_start = perf_counter()
        total = len(hits)
        valid_matches = 0
        for index, hit in enumerate(hits):
            progress = analysis_progress(index, total)
            await emit(
                progress_event(
                    ScreeningSnapshot(
                        status=PipelineStatus.ANALYZING,
                        progress=progress,
                        results=[*results, *placeholders[index:]],
                        sources=sources,
                        search_id=run_id,
                    )
                )
            )

            fetched = await fetch_content(hit.url, scraper=_scraper)
            sources.crawl.append(
                SourceRecord(
                    source_type="crawl",
                    url=hit.url,
                    status=fetched.status,
                    raw_data=fetched.raw_data,
                    metadata=fetched.metadata,
                )
            )

            if fetched.is_usable:
                judgment = await analyze_content(fetched.content, target, url=hit.url, agent=analysis_agent)
            else:
                scraping_failures += 1
                log.info("workflow.snippet_fallback", url=hit.url, fetch_status=fetched.status)
                judgment = await analyze_search_snippet(hit, target, agent=analysis_agent)

            judgment = judgment.gated()
            if judgment.entity_match.is_valid:
                valid_matches += 1

            results.append(_completed_item(hit, fetched, judgment))
            await emit(
                progress_event(
                    ScreeningSnapshot(
                        status=PipelineStatus.ANALYZING,
                        progress=progress,
                        results=[*results, *placeholders[index + 1 :]],
                        sources=sources,
                        search_id=run_id,
                    )
                )
            )

            # Every checkpoint resends the full list; URL dedup skips rows already stored
            if len(results) % _settings.partial_save_interval == 0:
                await _repository.save_partial_results(run_id, results, sources, progress)

        await _repository.save_partial_results(run_id, results, sources, progress)

        log.info(
            "workflow.analysis.completed",
            result_count=len(results),
            valid_entity_matches=valid_matches,
            scraping_failures=scraping_failures,
            duration_ms=int((perf_counter() - phase_start) * 1000),
        )

        # Aggregate and finalize
        outcome = aggregate(
            results,
            individual_name=request.individual_name,
            scraping_failures=scraping_failures,
            keywords=keywords,
        )
        await _repository.finalize_run(run_id, outcome.summary)
        finalized = True

        log.info(
            "workflow.completed",
            risk_level=outcome.summary.risk_level.value,
            adverse_findings=outcome.summary.adverse_findings,
            total_ms=int((perf_counter() - workflow_start) * 1000),
        )
        await emit(
            complete_event(
                ScreeningSnapshot(
                    status=PipelineStatus.COMPLETE,
                    progress=100,
                    results=results,
                    sources=sources,
                    summary=outcome.summary,
                    relationships=outcome.relationships,
                    search_id=run_id,
                    auto_saved=True,
                )
            )
        )
        return events.snapshot()

    except Exception as e:
        log.exception(
            "workflow.failed",
            error=str(e),
            error_type=type(e).__name__,
            total_ms=int((perf_counter() - workflow_start) * 1000),
        )
        if not finalized:
            await _record_failure(_repository, run_id, results, sources, progress, e)
        try:
            await emit(
                complete_event(
                    ScreeningSnapshot(
                        status=PipelineStatus.COMPLETE,
                        progress=100,
                        results=results,
                        sources=sources,
                        relationships=[],
                        search_id=run_id,
                        auto_saved=False,
                        error=STREAM_ERROR_MESSAGE,
                    )
                )
            )
        except Exception as emit_error:
            log.error("workflow.final_event_failed", error=str(emit_error))
        return events.snapshot()

    finally:
        unbind_context_vars("correlation_id", "search_id")


async def _record_failure(
    repository: ScreeningRepository,
    run_id: str | None,
    results: list[SearchResultItem],
    sources: SearchSources | None,
    progress: int,
    error: Exception,
) -> None:
    """Best-effort partial save and error marking; never raises."""
    if run_id is None:
        return
    try:
        await repository.save_partial_results(run_id, results, sources, progress)
    except Exception as e:
        log.warning("workflow.partial_save_failed", error=str(e))
    try:
        await repository.mark_run_error(run_id, f"Screening failed: {error}")
    except Exception as e:
        log.warning("workflow.mark_error_failed", error=str(e))
