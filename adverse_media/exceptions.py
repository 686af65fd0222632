"""Domain-specific exceptions for the screening pipeline."""


class ScreeningPipelineError(Exception):
    """Base exception for screening pipeline errors."""


class SearchProviderError(ScreeningPipelineError):
    """Raised when the web search provider cannot return results."""

    def __init__(self, query: str, reason: str) -> None:
        self.query = query
        self.reason = reason
        super().__init__(f"Web search failed for '{query}': {reason}")


class ScrapeProviderError(ScreeningPipelineError):
    """Raised by scraper adapters when a page cannot be fetched."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch '{url}': {reason}")


class AnalysisError(ScreeningPipelineError):
    """Raised when an LLM judgment cannot be extracted or validated."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Failed to analyze content: {reason}")


class PersistenceError(ScreeningPipelineError):
    """Raised when a critical write to the record store fails."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Persistence operation '{operation}' failed: {reason}")


class RunNotFoundError(ScreeningPipelineError):
    """Raised when a screening run id does not exist in the record store."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"Screening run '{run_id}' not found")
