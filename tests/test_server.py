"""Tests for FastAPI server."""

from collections.abc import Iterator
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi import FastAPI

from adverse_media.exceptions import SearchProviderError
from adverse_media.models import (
    EntityMatchStats,
    RiskLevel,
    RunStatus,
    ScreeningSnapshot,
    SearchHit,
    SearchRequest,
    SearchResultItem,
    SearchSummary,
)
from adverse_media.persistence import RUNS_TABLE, InMemoryRecordStore, ScreeningRepository, get_repository
from adverse_media.providers import get_firecrawl_client
from adverse_media.providers.search import SearchResponse
from adverse_media.server import get_app

BODY = {"individualName": "Jane Doe", "companyName": "Acme AB", "keywordTags": ["fraud"]}


def _make_snapshot() -> ScreeningSnapshot:
    """Helper to create a finished snapshot for mocking."""
    return ScreeningSnapshot(
        status="complete",
        progress=100,
        results=[SearchResultItem(url="https://a.example", status="complete", risk_score=10)],
        summary=SearchSummary(
            risk_level=RiskLevel.LOW,
            adverse_findings=0,
            recommendation="No significant adverse media detected.",
            entity_match_stats=EntityMatchStats(total_results=1, valid_entity_matches=1),
        ),
        search_id="run-1",
        auto_saved=True,
    )


class FakeSearcher:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def search(self, query: str, *, limit: int) -> SearchResponse:
        self.calls.append((query, limit))
        if self.error is not None:
            raise self.error
        hits = [SearchHit(url=f"https://{i}.example", title=f"Hit {i}", raw={"rank": i}) for i in range(5)]
        return SearchResponse(hits=hits)


@pytest.fixture
def app() -> FastAPI:
    return get_app()


@pytest.fixture
def repository(app: FastAPI) -> Iterator[ScreeningRepository]:
    repo = ScreeningRepository(InMemoryRecordStore())
    app.dependency_overrides[get_repository] = lambda: repo
    yield repo
    app.dependency_overrides.clear()


def _client(app: FastAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestScreeningEndpoint:
    """Tests for /screening endpoint."""

    @pytest.mark.asyncio
    async def test__valid_request__returns_200(self, app: FastAPI) -> None:
        workflow = AsyncMock(return_value=_make_snapshot())
        with patch("adverse_media.server.run_screening_workflow", new=workflow):
            async with _client(app) as client:
                response = await client.post("/screening", json=BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["searchId"] == "run-1"
        assert data["summary"]["riskLevel"] == "low"
        assert data["results"][0]["riskScore"] == 10
        assert "error" not in data

        request = workflow.call_args.args[0]
        assert isinstance(request, SearchRequest)
        assert request.company_name == "Acme AB"

    @pytest.mark.asyncio
    async def test__empty_name__returns_422(self, app: FastAPI) -> None:
        async with _client(app) as client:
            response = await client.post("/screening", json={"individualName": "   "})
        assert response.status_code == 422
        # FastAPI's default validation error format
        assert "detail" in response.json()

    @pytest.mark.asyncio
    async def test__unexpected_error__returns_500(self, app: FastAPI) -> None:
        with patch("adverse_media.server.run_screening_workflow", new=AsyncMock(side_effect=RuntimeError("boom"))):
            async with httpx.AsyncClient(
                transport=httpx.ASGITransport(app=app, raise_app_exceptions=False), base_url="http://test"
            ) as client:
                response = await client.post("/screening", json=BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "InternalServerError", "detail": "An unexpected error occurred."}

    @pytest.mark.asyncio
    async def test__demo_mode__returns_fixture(self, app: FastAPI, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "staging")
        async with _client(app) as client:
            response = await client.post("/screening?demo=true", json=BODY)

        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["riskLevel"] == "medium"
        assert len(data["results"]) == 3

    @pytest.mark.asyncio
    async def test__demo_mode__blocked_in_production(self, app: FastAPI, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        async with _client(app) as client:
            response = await client.post("/screening?demo=true", json=BODY)
        assert response.status_code == 403


class TestFallbackSearch:
    """Tests for /search/fallback endpoint."""

    @pytest.mark.asyncio
    async def test__fallback__returns_plain_hits(self, app: FastAPI) -> None:
        searcher = FakeSearcher()
        app.dependency_overrides[get_firecrawl_client] = lambda: searcher
        try:
            async with _client(app) as client:
                response = await client.post(
                    "/search/fallback", json={**BODY, "additionalInfo": "Stockholm"}
                )
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["query"] == "Jane Doe Acme AB Stockholm"
        assert len(data["results"]) == 3
        assert data["results"][0] == {"url": "https://0.example", "title": "Hit 0", "description": "No description"}
        assert searcher.calls == [("Jane Doe Acme AB Stockholm", 3)]

    @pytest.mark.asyncio
    async def test__fallback__provider_failure_returns_502(self, app: FastAPI) -> None:
        searcher = FakeSearcher(error=SearchProviderError(query="Jane Doe", reason="HTTP 503"))
        app.dependency_overrides[get_firecrawl_client] = lambda: searcher
        try:
            async with _client(app) as client:
                response = await client.post("/search/fallback", json=BODY)
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 502
        assert response.json() == {
            "success": False,
            "error": "Web search is currently unavailable. Please try again.",
        }


class TestKeywordsEndpoint:
    @pytest.mark.asyncio
    async def test__keywords__lists_categories_with_terms(self, app: FastAPI) -> None:
        async with _client(app) as client:
            response = await client.get("/keywords")

        assert response.status_code == 200
        keywords = {kw["id"]: kw["term"] for category in response.json() for kw in category["keywords"]}
        assert keywords["fraud"] == "bedrägeri*"
        assert keywords["sanctions"] == "sanktion*"


class TestHistoryEndpoints:
    """Tests for /searches endpoints."""

    @pytest.mark.asyncio
    async def test__list_searches__newest_first(self, app: FastAPI, repository: ScreeningRepository) -> None:
        first = await repository.create_or_update_run(
            None, SearchRequest(individual_name="A"), RunStatus.IN_PROGRESS, []
        )
        second = await repository.create_or_update_run(
            None, SearchRequest(individual_name="B"), RunStatus.IN_PROGRESS, []
        )
        await repository.store.update(RUNS_TABLE, {"created_at": "2026-01-01T00:00:00+00:00"}, match={"id": first})
        await repository.store.update(RUNS_TABLE, {"created_at": "2026-03-01T00:00:00+00:00"}, match={"id": second})

        async with _client(app) as client:
            response = await client.get("/searches")

        assert response.status_code == 200
        assert [run["id"] for run in response.json()] == [second, first]
        assert response.json()[0]["individualName"] == "B"

    @pytest.mark.asyncio
    async def test__get_search__returns_run_details(self, app: FastAPI, repository: ScreeningRepository) -> None:
        run_id = await repository.create_or_update_run(
            None, SearchRequest(individual_name="Jane Doe"), RunStatus.IN_PROGRESS, ["fraud"]
        )
        item = SearchResultItem(url="https://a.example", status="complete", risk_score=40)
        await repository.save_partial_results(run_id, [item], None, 50)

        async with _client(app) as client:
            response = await client.get(f"/searches/{run_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["run"]["id"] == run_id
        assert data["run"]["progress"] == 50
        assert data["run"]["keywordTags"] == ["fraud"]
        assert [result["url"] for result in data["results"]] == ["https://a.example"]

    @pytest.mark.asyncio
    async def test__get_search__unknown_id_returns_404(self, app: FastAPI, repository: ScreeningRepository) -> None:
        async with _client(app) as client:
            response = await client.get("/searches/missing")

        assert response.status_code == 404
        assert response.json() == {"error": "RunNotFoundError", "detail": "Screening run not found."}

    @pytest.mark.asyncio
    async def test__delete_search__returns_204_and_removes_run(
        self, app: FastAPI, repository: ScreeningRepository
    ) -> None:
        run_id = await repository.create_or_update_run(
            None, SearchRequest(individual_name="Jane Doe"), RunStatus.IN_PROGRESS, []
        )

        async with _client(app) as client:
            response = await client.delete(f"/searches/{run_id}")
            again = await client.delete(f"/searches/{run_id}")

        assert response.status_code == 204
        assert again.status_code == 404


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test__health__returns_ok_with_version(self, app: FastAPI) -> None:
        async with _client(app) as client:
            response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"]

    @pytest.mark.asyncio
    async def test__liveness__returns_alive(self, app: FastAPI) -> None:
        async with _client(app) as client:
            response = await client.get("/health/liveness")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    @pytest.mark.asyncio
    async def test__readiness__reports_record_store(self, app: FastAPI, repository: ScreeningRepository) -> None:
        async with _client(app) as client:
            response = await client.get("/health/readiness")
        assert response.status_code == 200
        assert response.json() == {"status": "ready", "record_store": "InMemoryRecordStore"}
