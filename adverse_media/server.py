"""FastAPI application for the adverse media screening service."""

import asyncio
from typing import Any, AsyncIterator

import structlog
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, ValidationError

from adverse_media import __version__
from adverse_media.config import get_settings
from adverse_media.demo import generate_demo_sse_stream, get_demo_screening_result, is_demo_mode_allowed
from adverse_media.events import CompleteEvent, HeartbeatEvent, SSEEvent
from adverse_media.exceptions import RunNotFoundError, ScreeningPipelineError, SearchProviderError
from adverse_media.keywords import DEFAULT_KEYWORDS
from adverse_media.logging import configure_structlog
from adverse_media.models import RunDetails, ScreeningSnapshot, SearchRequest, SearchRun
from adverse_media.persistence import ScreeningRepository, get_repository
from adverse_media.providers import WebSearcher, get_firecrawl_client
from adverse_media.query import build_fallback_query
from adverse_media.workflow import STREAM_ERROR_MESSAGE, run_screening_workflow

log = structlog.get_logger("adverse_media.server")

# SSE Configuration
HEARTBEAT_INTERVAL = 30  # seconds
MAX_QUEUE_SIZE = 100  # Bounded queue to prevent memory leaks

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",  # Disable proxy buffering
    "Connection": "keep-alive",
}

# Runs whose client went away; held so they finish and persist
_detached_runs: set[asyncio.Task[Any]] = set()


# --- Request/Response schemas ---


class ErrorResponse(BaseModel):
    """Structured error response."""

    error: str = Field(
        description="Error type (RunNotFoundError, PersistenceError, SearchProviderError, ValidationError, InternalServerError)",
        examples=["RunNotFoundError"],
    )
    detail: str = Field(
        description="User-friendly error message explaining what went wrong",
        examples=["Screening run not found."],
    )


class HealthResponse(BaseModel):
    """Health and probe response."""

    status: str = Field(description="ok, alive or ready", examples=["ok"])
    version: str | None = Field(default=None, description="Service version, on /health only", examples=["0.1.0"])
    record_store: str | None = Field(
        default=None,
        description="Configured screening history backend, on readiness only",
        examples=["InMemoryRecordStore", "SupabaseRecordStore"],
    )


class FallbackSearchResponse(BaseModel):
    """Raw search hits without analysis."""

    success: bool = True
    results: list[dict[str, Any]] = Field(default_factory=list)
    query: str


class KeywordOption(BaseModel):
    id: str
    term: str


class KeywordCategoryResponse(BaseModel):
    id: str
    name: str
    keywords: list[KeywordOption]


# --- Exception handlers ---

# Map domain exception types to user-friendly messages
_SAFE_ERROR_MESSAGES: dict[str, str] = {
    "SearchProviderError": "Web search is currently unavailable. Please try again.",
    "ScrapeProviderError": "Unable to fetch page content. Please try again.",
    "AnalysisError": "Unable to analyze content. Please try again.",
    "PersistenceError": "Unable to access screening history. Please try again.",
    "RunNotFoundError": "Screening run not found.",
}


def _safe_message(exc: Exception) -> str:
    return _SAFE_ERROR_MESSAGES.get(type(exc).__name__, "An error occurred processing your request.")


def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=error, detail=detail).model_dump())


async def _handle_not_found(request: Request, exc: RunNotFoundError) -> JSONResponse:
    log.info("request.run_not_found", search_id=exc.run_id)
    return _error_response(404, type(exc).__name__, _safe_message(exc))


async def _handle_pipeline_error(request: Request, exc: ScreeningPipelineError) -> JSONResponse:
    log.warning("request.pipeline_error", error_type=type(exc).__name__, detail=str(exc))
    return _error_response(422, type(exc).__name__, _safe_message(exc))


async def _handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    log.warning("request.validation_error", error_count=exc.error_count(), detail=str(exc))
    return _error_response(422, "ValidationError", str(exc))


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    log.exception("request.unexpected_error", path=request.url.path, error=str(exc))
    return _error_response(500, "InternalServerError", "An unexpected error occurred.")


def _require_demo_mode(endpoint: str, body: SearchRequest) -> None:
    if not is_demo_mode_allowed():
        raise HTTPException(
            status_code=403,
            detail="Demo mode not available in this environment",
        )
    log.warning("demo_mode_active", individual_name=body.individual_name, endpoint=endpoint)


# --- App factory ---


def get_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_structlog()
    application = FastAPI(
        title="Adverse Media Screening Service",
        description="""
Automated adverse media (KYC) screening for individuals.

## Overview

Given a name plus optional company, context and keyword filters, the service:

1. **Searches** the web with a boolean query built from the identity and keywords
2. **Fetches** each of the top results as markdown
3. **Analyzes** every page with an LLM: is it about this person, and is it adverse?
4. **Aggregates** a risk level and recommendation from entity-matched pages only

Progress streams over Server-Sent Events and every run is saved incrementally,
so partial results survive a failure and can be read back from history.

## Entity matching

A page counts only when the analyzer marks it an exact match or gives it a
match confidence of 70 or more. Pages about namesakes contribute no risk.
        """,
        version=__version__,
    )

    application.add_exception_handler(RunNotFoundError, _handle_not_found)  # type: ignore[arg-type]
    application.add_exception_handler(ScreeningPipelineError, _handle_pipeline_error)  # type: ignore[arg-type]
    application.add_exception_handler(ValidationError, _handle_validation_error)  # type: ignore[arg-type]
    application.add_exception_handler(Exception, _handle_unexpected_error)

    @application.post(
        "/screening",
        response_model=ScreeningSnapshot,
        response_model_exclude_none=True,
        status_code=status.HTTP_200_OK,
        summary="Run Screening",
        description="""
Runs the full screening pipeline and returns the final snapshot.

The response carries every analyzed result, the search and crawl sources,
the summary (risk level, adverse findings, recommendation, entity match
statistics) and the relationships found on entity-matched pages.

If the pipeline fails part way the response still arrives, with `error`
set and whatever results were gathered; those are also saved to history.
        """,
        tags=["Screening"],
        response_description="Final screening snapshot",
    )
    async def screening(
        body: SearchRequest,
        demo: bool = Query(default=False, description="Enable demo mode with hardcoded response for frontend testing"),
    ) -> ScreeningSnapshot:
        if demo:
            _require_demo_mode("/screening", body)
            return get_demo_screening_result(body.individual_name, body.company_name, tuple(body.keyword_tags))

        return await run_screening_workflow(body)

    @application.post(
        "/screening/stream",
        response_class=StreamingResponse,
        responses={
            200: {
                "description": "Server-Sent Events stream of screening progress",
                "content": {"text/event-stream": {"example": "event: progress\ndata: {...}\n\n"}},
            },
            422: {"model": ErrorResponse},
        },
        summary="Run screening with streaming progress updates",
        description="""
Runs the screening pipeline with real-time progress updates via SSE.

Each event is a full snapshot of the accumulated state; merge it into the
previous one field by field.

**Event Types:**
- `progress`: `status` (searching, analyzing), `progress` (5, 10, 30-90), `results`, `sources`
- `complete`: final snapshot with `summary`, `relationships`, `searchId`, `autoSaved`, or `error`
- heartbeat: keep-alive comment every 30s (`: keepalive`)

**Connection:** Closes after the complete event. If the client disconnects
the run carries on and is saved to history under its `searchId`.
        """,
        tags=["Screening"],
    )
    async def screening_stream(
        request: Request,
        body: SearchRequest,
        demo: bool = Query(
            default=False, description="Enable demo mode with hardcoded SSE events for frontend testing"
        ),
    ) -> StreamingResponse:
        """Run the screening workflow with SSE progress streaming."""

        if demo:
            _require_demo_mode("/screening/stream", body)
            return StreamingResponse(
                generate_demo_sse_stream(body.individual_name, body.company_name, tuple(body.keyword_tags)),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )

        async def event_generator() -> AsyncIterator[str]:
            """Generate SSE events from workflow execution."""
            # Bounded queue to prevent memory leaks
            event_queue: asyncio.Queue[SSEEvent] = asyncio.Queue(maxsize=MAX_QUEUE_SIZE)
            workflow_complete = asyncio.Event()
            detached = False

            async def event_callback(event: SSEEvent) -> None:
                """Callback for workflow to emit events (with backpressure)."""
                if detached:
                    return
                try:
                    await asyncio.wait_for(event_queue.put(event), timeout=5.0)
                except asyncio.TimeoutError:
                    log.warning("event_queue_full", event=event.event)

            async def run_workflow_task() -> None:
                """Background task executing the screening workflow."""
                try:
                    await run_screening_workflow(body, event_callback=event_callback)
                except Exception as e:
                    log.error("workflow_error", error=str(e), exc_info=True)
                    await event_queue.put(
                        CompleteEvent(
                            data=ScreeningSnapshot(
                                status="complete", progress=100, error=STREAM_ERROR_MESSAGE
                            ).to_wire()
                        )
                    )
                finally:
                    workflow_complete.set()

            # Start workflow in background
            workflow_task = asyncio.create_task(run_workflow_task())

            # Stream events with heartbeat management
            loop = asyncio.get_running_loop()
            start_time = loop.time()
            next_heartbeat = start_time + HEARTBEAT_INTERVAL

            try:
                while not workflow_complete.is_set():
                    current_time = loop.time()

                    # Check for client disconnect EVERY iteration
                    if await request.is_disconnected():
                        log.info("client_disconnected", elapsed=current_time - start_time)
                        detached = True
                        break

                    # Send heartbeat if needed (no drift accumulation)
                    if current_time >= next_heartbeat:
                        yield HeartbeatEvent().format()
                        next_heartbeat += HEARTBEAT_INTERVAL

                    # Short wait keeps disconnect detection responsive
                    try:
                        event = await asyncio.wait_for(event_queue.get(), timeout=0.1)
                        yield event.format()
                    except asyncio.TimeoutError:
                        continue

                # Drain remaining events in queue
                while not detached and not event_queue.empty():
                    yield event_queue.get_nowait().format()

            finally:
                if not workflow_task.done():
                    # The run keeps going so history stays consistent
                    detached = True
                    _detached_runs.add(workflow_task)
                    workflow_task.add_done_callback(_detached_runs.discard)
                    log.info("workflow_detached")

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    @application.post(
        "/search/fallback",
        response_model=FallbackSearchResponse,
        status_code=status.HTTP_200_OK,
        summary="Fallback Search",
        description="""
Runs only the web search step, without fetching or analysis.

The query is the identity fields joined by spaces (no keyword clauses) and
the result count is capped at 3. Use it when the full pipeline is unreachable.
        """,
        tags=["Screening"],
        responses={
            502: {
                "description": "Search provider failed",
                "content": {"application/json": {"example": {"success": False, "error": "Web search failed"}}},
            },
        },
    )
    async def fallback_search(
        body: SearchRequest,
        searcher: WebSearcher = Depends(get_firecrawl_client),
    ) -> Any:
        query = build_fallback_query(body.individual_name, body.company_name, body.additional_info)
        limit = get_settings().fallback_search_limit
        try:
            response = await searcher.search(query, limit=limit)
        except SearchProviderError as e:
            log.warning("fallback_search_failed", error=str(e))
            return JSONResponse(
                status_code=502,
                content={"success": False, "error": _safe_message(e)},
            )

        results = [
            {"url": hit.url, "title": hit.title, "description": hit.description} for hit in response.hits[:limit]
        ]
        return FallbackSearchResponse(success=True, results=results, query=query)

    @application.get(
        "/keywords",
        response_model=list[KeywordCategoryResponse],
        summary="Keyword Catalogue",
        description="Keyword tags grouped by category, with the search term each tag maps to.",
        tags=["Screening"],
    )
    async def keywords() -> list[dict[str, object]]:
        return DEFAULT_KEYWORDS.catalogue()

    @application.get(
        "/searches",
        response_model=list[SearchRun],
        response_model_exclude_none=True,
        summary="List Screening Runs",
        description="All screening runs, newest first.",
        tags=["History"],
    )
    async def list_searches(repository: ScreeningRepository = Depends(get_repository)) -> list[SearchRun]:
        return await repository.list_runs()

    @application.get(
        "/searches/{search_id}",
        response_model=RunDetails,
        response_model_exclude_none=True,
        summary="Get Screening Run",
        description="""
One screening run with its saved results (highest risk first), sources
(in the order they were recorded) and relationships.
        """,
        tags=["History"],
        responses={404: {"model": ErrorResponse}},
    )
    async def get_search(search_id: str, repository: ScreeningRepository = Depends(get_repository)) -> RunDetails:
        return await repository.get_run(search_id)

    @application.delete(
        "/searches/{search_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Delete Screening Run",
        description="Deletes a run together with its results, sources and relationships.",
        tags=["History"],
        responses={404: {"model": ErrorResponse}},
    )
    async def delete_search(search_id: str, repository: ScreeningRepository = Depends(get_repository)) -> Response:
        await repository.delete_run(search_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @application.get(
        "/health",
        response_model=HealthResponse,
        response_model_exclude_none=True,
        summary="Health Check",
        description="Service status and version, for monitoring and smoke tests.",
        tags=["Health"],
    )
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @application.get(
        "/health/liveness",
        response_model=HealthResponse,
        response_model_exclude_none=True,
        summary="Liveness Probe",
        description="200 while the process can accept requests.",
        tags=["Health"],
    )
    async def liveness() -> HealthResponse:
        return HealthResponse(status="alive")

    @application.get(
        "/health/readiness",
        response_model=HealthResponse,
        response_model_exclude_none=True,
        summary="Readiness Probe",
        description="""
200 once settings load and the screening history backend is built.

With the in-memory backend, history is per worker process and lost on restart.
        """,
        tags=["Health"],
    )
    async def readiness(repository: ScreeningRepository = Depends(get_repository)) -> HealthResponse:
        return HealthResponse(status="ready", record_store=type(repository.store).__name__)

    return application


app = get_app()
