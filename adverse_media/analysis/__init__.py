"""Entity-match and adverse media analysis."""

from adverse_media.analysis.agents import (
    clear_agent_cache,
    create_analysis_agent,
    get_analysis_agent,
)
from adverse_media.analysis.analyzer import (
    analyze_content,
    analyze_search_snippet,
    error_judgment,
    insufficient_content_judgment,
    parse_judgment,
)

__all__ = [
    # Agent factory
    "create_analysis_agent",
    "get_analysis_agent",
    "clear_agent_cache",
    # Analyzer
    "analyze_content",
    "analyze_search_snippet",
    "parse_judgment",
    "error_judgment",
    "insufficient_content_judgment",
]
