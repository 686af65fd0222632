"""Tests for screening pipeline exceptions."""

import pytest

from adverse_media.exceptions import (
    AnalysisError,
    PersistenceError,
    RunNotFoundError,
    ScrapeProviderError,
    ScreeningPipelineError,
    SearchProviderError,
)


class TestScreeningPipelineError:
    """Tests for base ScreeningPipelineError."""

    def test__base_error__is_exception(self) -> None:
        error = ScreeningPipelineError("test message")
        assert isinstance(error, Exception)
        assert str(error) == "test message"


class TestSearchProviderError:
    def test__search_provider_error__stores_attributes(self) -> None:
        error = SearchProviderError(query="Jane Doe", reason="HTTP 500")
        assert error.query == "Jane Doe"
        assert error.reason == "HTTP 500"

    def test__search_provider_error__formats_message(self) -> None:
        error = SearchProviderError(query="Jane Doe", reason="timeout")
        assert str(error) == "Web search failed for 'Jane Doe': timeout"


class TestScrapeProviderError:
    def test__scrape_provider_error__formats_message(self) -> None:
        error = ScrapeProviderError(url="https://example.com", reason="403 Forbidden")
        assert error.url == "https://example.com"
        assert str(error) == "Failed to fetch 'https://example.com': 403 Forbidden"


class TestAnalysisError:
    def test__analysis_error__formats_message(self) -> None:
        error = AnalysisError(reason="no JSON object in model output")
        assert error.reason == "no JSON object in model output"
        assert str(error) == "Failed to analyze content: no JSON object in model output"


class TestPersistenceError:
    def test__persistence_error__formats_message(self) -> None:
        error = PersistenceError(operation="finalize_run", reason="connection reset")
        assert error.operation == "finalize_run"
        assert str(error) == "Persistence operation 'finalize_run' failed: connection reset"


class TestRunNotFoundError:
    def test__run_not_found__formats_message(self) -> None:
        error = RunNotFoundError("abc-123")
        assert error.run_id == "abc-123"
        assert str(error) == "Screening run 'abc-123' not found"


@pytest.mark.parametrize(
    "error",
    [
        SearchProviderError(query="q", reason="r"),
        ScrapeProviderError(url="u", reason="r"),
        AnalysisError(reason="r"),
        PersistenceError(operation="o", reason="r"),
        RunNotFoundError("id"),
    ],
)
def test__domain_errors__catchable_as_base(error: ScreeningPipelineError) -> None:
    with pytest.raises(ScreeningPipelineError):
        raise error
