"""Tests for the Firecrawl client using a mocked HTTP transport."""

import json

import httpx
import pytest

from adverse_media.exceptions import ScrapeProviderError, SearchProviderError
from adverse_media.providers.firecrawl import FirecrawlClient


def _client(handler) -> FirecrawlClient:
    return FirecrawlClient(
        api_key="fc-test",
        base_url="https://firecrawl.test/",
        transport=httpx.MockTransport(handler),
    )


class TestFirecrawlSearch:
    @pytest.mark.asyncio
    async def test__search__maps_hits_in_rank_order(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": [
                        {"url": "https://a.example", "title": "A", "description": "first"},
                        {"url": "https://b.example"},
                        {"title": "no url, dropped"},
                    ],
                },
            )

        response = await _client(handler).search("Jane Doe AND (bedrägeri*)", limit=5)

        assert [hit.url for hit in response.hits] == ["https://a.example", "https://b.example"]
        assert response.hits[0].title == "A"
        assert response.hits[1].title == "No title"
        assert response.hits[1].description == "No description"
        assert response.hits[0].raw["description"] == "first"

        sent = requests[0]
        assert str(sent.url) == "https://firecrawl.test/v1/search"
        assert sent.headers["Authorization"] == "Bearer fc-test"
        assert json.loads(sent.content) == {"query": "Jane Doe AND (bedrägeri*)", "limit": 5}

    @pytest.mark.asyncio
    async def test__search__truncates_to_limit(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            data = [{"url": f"https://{i}.example"} for i in range(10)]
            return httpx.Response(200, json={"success": True, "data": data})

        response = await _client(handler).search("q", limit=3)
        assert len(response.hits) == 3

    @pytest.mark.asyncio
    async def test__search__http_error_raises_search_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "internal"})

        with pytest.raises(SearchProviderError, match="Web search failed"):
            await _client(handler).search("q", limit=5)

    @pytest.mark.asyncio
    async def test__search__reported_failure_raises_search_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": False, "error": "quota exceeded"})

        with pytest.raises(SearchProviderError, match="quota exceeded"):
            await _client(handler).search("q", limit=5)


class TestFirecrawlScrape:
    @pytest.mark.asyncio
    async def test__scrape__requests_markdown_and_html(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"success": True, "data": {"markdown": "text"}})

        payload = await _client(handler).scrape("https://a.example")

        assert payload == {"success": True, "data": {"markdown": "text"}}
        assert bodies == [{"url": "https://a.example", "formats": ["markdown", "html"]}]

    @pytest.mark.asyncio
    async def test__scrape__transport_error_raises_scrape_provider_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ScrapeProviderError, match="https://a.example"):
            await _client(handler).scrape("https://a.example")

    def test__client__without_api_key_omits_authorization(self) -> None:
        client = FirecrawlClient(api_key="  ")
        assert "Authorization" not in client._headers()
