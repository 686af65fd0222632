"""Adverse Media Screening Service - KYC screening with LLM entity matching"""

__version__ = "0.1.0"

from adverse_media.aggregator import AggregateOutcome, aggregate
from adverse_media.analysis import (
    analyze_content,
    analyze_search_snippet,
    clear_agent_cache,
    create_analysis_agent,
    get_analysis_agent,
)
from adverse_media.events import EventLog, reduce_snapshot
from adverse_media.exceptions import (
    AnalysisError,
    PersistenceError,
    RunNotFoundError,
    ScrapeProviderError,
    ScreeningPipelineError,
    SearchProviderError,
)
from adverse_media.keywords import DEFAULT_KEYWORDS, KeywordDictionary
from adverse_media.models import (
    AnalysisJudgment,
    EntityMatch,
    Relationship,
    RiskLevel,
    RunDetails,
    ScreeningSnapshot,
    SearchRequest,
    SearchResultItem,
    SearchRun,
    SearchSummary,
    SourceRecord,
)
from adverse_media.persistence import ScreeningRepository, get_repository
from adverse_media.query import build_fallback_query, build_search_query
from adverse_media.server import get_app
from adverse_media.workflow import run_screening_workflow

__all__ = [
    # Models
    "SearchRequest",
    "EntityMatch",
    "Relationship",
    "AnalysisJudgment",
    "SearchResultItem",
    "SourceRecord",
    "SearchSummary",
    "SearchRun",
    "RunDetails",
    "RiskLevel",
    "ScreeningSnapshot",
    # Query building
    "KeywordDictionary",
    "DEFAULT_KEYWORDS",
    "build_search_query",
    "build_fallback_query",
    # Analysis
    "create_analysis_agent",
    "get_analysis_agent",
    "clear_agent_cache",
    "analyze_content",
    "analyze_search_snippet",
    # Aggregation
    "AggregateOutcome",
    "aggregate",
    # Events
    "EventLog",
    "reduce_snapshot",
    # Persistence
    "ScreeningRepository",
    "get_repository",
    # Exceptions
    "ScreeningPipelineError",
    "SearchProviderError",
    "ScrapeProviderError",
    "AnalysisError",
    "PersistenceError",
    "RunNotFoundError",
    # Workflow
    "run_screening_workflow",
    # Server
    "get_app",
]
