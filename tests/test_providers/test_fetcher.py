"""Tests for the content fetcher."""

from typing import Any

import pytest

from adverse_media.providers.fetcher import fetch_content

URL = "https://news.example/doe"


class FakeScraper:
    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[str] = []

    async def scrape(self, url: str) -> Any:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.payload


class TestFetchContent:
    @pytest.mark.asyncio
    async def test__fetch__success_maps_markdown_html_and_metadata(self) -> None:
        payload = {
            "success": True,
            "data": {"markdown": "# Doe charged", "html": "<h1>Doe charged</h1>", "metadata": {"title": "Doe"}},
        }
        scraper = FakeScraper(payload)

        result = await fetch_content(URL, scraper=scraper)

        assert scraper.calls == [URL]
        assert result.status == "success"
        assert result.content == "# Doe charged"
        assert result.html == "<h1>Doe charged</h1>"
        assert result.metadata == {"title": "Doe"}
        assert result.raw_data == payload

    @pytest.mark.asyncio
    async def test__fetch__missing_fields_default_to_empty(self) -> None:
        result = await fetch_content(URL, scraper=FakeScraper({"success": True, "data": {}}))

        assert result.status == "success"
        assert result.content == ""
        assert result.metadata == {}
        assert result.is_usable is False

    @pytest.mark.asyncio
    async def test__fetch__provider_exception_becomes_failed(self) -> None:
        result = await fetch_content(URL, scraper=FakeScraper(error=ConnectionError("refused")))

        assert result.status == "failed"
        assert result.content == ""
        assert result.html == ""
        assert result.metadata == {}
        assert result.raw_data == {"error": "refused"}

    @pytest.mark.asyncio
    async def test__fetch__unsuccessful_payload_becomes_failed(self) -> None:
        payload = {"success": False, "error": "blocked by robots.txt"}
        result = await fetch_content(URL, scraper=FakeScraper(payload))

        assert result.status == "failed"
        assert result.metadata == {}
        assert result.raw_data == payload

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [None, "not a dict", {"success": True, "data": "oops"}])
    async def test__fetch__malformed_payload_becomes_failed(self, payload: Any) -> None:
        result = await fetch_content(URL, scraper=FakeScraper(payload))

        assert result.status == "failed"
        assert result.is_usable is False
