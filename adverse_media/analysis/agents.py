"""PydanticAI agent used for entity-match and adverse media analysis."""

from functools import lru_cache
from typing import Any

from pydantic_ai import Agent

from adverse_media.config import get_settings

ANALYSIS_INSTRUCTIONS = """You are a compliance analyst performing adverse media checks
for KYC (Know Your Customer) screening.
For every request:
- First decide whether the material is really about the target individual
- Only then look for adverse media about that individual
- Never attribute findings about a namesake to the target
- Extract people and organizations connected to the target
- Answer with a single JSON object and nothing else"""


def create_analysis_agent(model: Any) -> Agent[None, str]:
    """Uncached factory - use with TestModel for tests.

    The agent returns free text; the analyzer extracts and validates the
    JSON judgment itself so malformed model output degrades gracefully.
    """
    return Agent(
        model,
        instructions=ANALYSIS_INSTRUCTIONS,
        output_type=str,
        instrument=True,
        name="analysis_agent",
    )


@lru_cache(maxsize=4)
def get_analysis_agent(model: str | None = None) -> Agent[None, str]:
    """Cached getter for production."""
    return create_analysis_agent(model or get_settings().analysis_model)


def clear_agent_cache() -> None:
    get_analysis_agent.cache_clear()
