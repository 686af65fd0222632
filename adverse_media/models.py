"""Pydantic models for the adverse media screening pipeline."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

# Entity matches at or above this confidence count as the target individual
VALID_MATCH_CONFIDENCE = 70

# Scraped markdown shorter than this falls back to snippet analysis
MIN_USABLE_CONTENT_LENGTH = 100

NonEmptyName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class RunStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    ERROR = "error"


class PipelineStatus(str, Enum):
    SEARCHING = "searching"
    ANALYZING = "analyzing"
    COMPLETE = "complete"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    PENDING = "pending"


class RelationshipType(str, Enum):
    FAMILY = "family"
    BUSINESS = "business"
    POLITICAL = "political"
    CRIMINAL = "criminal"
    OTHER = "other"


# --- Inputs ---


class SearchRequest(CamelModel):
    """Immutable screening input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    individual_name: NonEmptyName = Field(
        description="Full name of the individual to screen",
        examples=["Jane Doe"],
    )
    company_name: str | None = Field(
        default=None,
        max_length=200,
        description="Company the individual is associated with",
        examples=["Acme AB"],
    )
    additional_info: str | None = Field(
        default=None,
        max_length=500,
        description="Loose extra context such as a city or profession",
        examples=["Stockholm"],
    )
    keyword_tags: list[str] = Field(
        default_factory=list,
        description="Keyword tag IDs; unknown IDs are ignored",
        examples=[["fraud", "sanctions"]],
    )
    search_id: str | None = Field(
        default=None,
        description="Existing run id to resume; a new run is created when absent",
    )

    @field_validator("company_name", "additional_info", "search_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("keyword_tags", mode="after")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(tag.strip() for tag in value if tag.strip()))


class ScreeningTarget(BaseModel):
    """Identity plus resolved keyword terms handed to the analyzer."""

    individual_name: str
    company_name: str | None = None
    additional_info: str | None = None
    keywords: list[str] = Field(default_factory=list)


# --- Analysis ---


class EntityMatch(CamelModel):
    """Whether a page is about the target individual rather than a namesake."""

    is_exact_match: bool = Field(default=False, description="Page is definitely about the target")
    confidence: int = Field(default=0, ge=0, le=100, description="Match confidence 0-100")
    reason: str = Field(default="", description="Explanation of the match assessment")

    @property
    def is_valid(self) -> bool:
        return self.is_exact_match or self.confidence >= VALID_MATCH_CONFIDENCE


class Relationship(CamelModel):
    """A person or organization connected to the target individual."""

    name: str = Field(min_length=1)
    type: RelationshipType = RelationshipType.OTHER
    description: str = ""
    confidence: int = Field(default=0, ge=0, le=100)
    source_url: str | None = None
    source_title: str | None = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.strip().lower()
            known = {member.value for member in RelationshipType}
            return normalized if normalized in known else RelationshipType.OTHER.value
        return value


class AnalysisJudgment(CamelModel):
    """Validated LLM verdict for one page or search snippet."""

    risk_score: int = Field(default=0, ge=0, le=100)
    adverse_content: list[str] = Field(default_factory=list)
    summary: str = ""
    entity_match: EntityMatch = Field(
        default_factory=lambda: EntityMatch(reason="No entity match information"),
    )
    relationships: list[Relationship] = Field(default_factory=list)

    @field_validator("relationships", "adverse_content", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def gated(self) -> "AnalysisJudgment":
        """Zero out risk, findings and relationships unless the entity match is valid."""
        if self.entity_match.is_valid:
            return self
        return self.model_copy(update={"risk_score": 0, "adverse_content": [], "relationships": []})


# --- Provider payloads ---


class SearchHit(BaseModel):
    """One ranked hit from the web search provider."""

    url: str
    title: str = "No title"
    description: str = "No description"
    raw: dict[str, Any] = Field(default_factory=dict)


class FetchResult(BaseModel):
    """Normalized scraper outcome; failures never raise."""

    status: Literal["success", "failed"]
    content: str = ""
    html: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    raw_data: Any = None

    @property
    def is_usable(self) -> bool:
        return self.status == "success" and len(self.content) > MIN_USABLE_CONTENT_LENGTH


# --- Results, sources, summary ---


class SearchResultItem(CamelModel):
    """One analyzed (or pending) web page within a run."""

    url: str
    title: str = "No title"
    description: str = "No description"
    risk_score: int = Field(default=0, ge=0, le=100)
    adverse_content: list[str] = Field(default_factory=list)
    status: Literal["analyzing", "complete"] = "analyzing"
    entity_match: EntityMatch | None = None
    relationships: list[Relationship] = Field(default_factory=list)
    summary: str | None = None
    raw_search_data: dict[str, Any] | None = None
    raw_crawl_data: dict[str, Any] | None = None

    @classmethod
    def placeholder(cls, hit: SearchHit) -> "SearchResultItem":
        return cls(url=hit.url, title=hit.title, description=hit.description)


class SourceRecord(CamelModel):
    """Audit trail entry for one external call."""

    source_type: Literal["search", "crawl"]
    url: str
    status: str
    raw_data: Any = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class SearchSourceInfo(CamelModel):
    query: str
    results: list[dict[str, Any]] = Field(default_factory=list)
    raw_data: Any = None
    status: Literal["success", "failed"] = "success"


class SearchSources(CamelModel):
    search: SearchSourceInfo
    crawl: list[SourceRecord] = Field(default_factory=list)

    def search_record(self) -> SourceRecord:
        """The query as a search-type source; the url is the literal query string."""
        return SourceRecord(
            source_type="search",
            url=self.search.query,
            status=self.search.status,
            raw_data=self.search.raw_data,
            metadata={"query": self.search.query, "resultCount": len(self.search.results)},
        )


class EntityMatchStats(CamelModel):
    total_results: int = Field(default=0, ge=0)
    valid_entity_matches: int = Field(default=0, ge=0)


class SearchSummary(CamelModel):
    """Aggregated verdict for a run."""

    risk_level: RiskLevel
    adverse_findings: int = Field(ge=0)
    recommendation: str
    entity_match_stats: EntityMatchStats = Field(default_factory=EntityMatchStats)
    keywords: list[str] = Field(default_factory=list)
    scraping_failures: int = Field(default=0, ge=0)
    average_risk_score: float = Field(default=0.0, ge=0.0, le=100.0)


class SearchRun(CamelModel):
    """The persisted header row of a screening run."""

    id: str
    individual_name: str
    company_name: str | None = None
    additional_info: str | None = None
    status: RunStatus = RunStatus.IN_PROGRESS
    progress: int = Field(default=0, ge=0, le=100)
    created_at: datetime
    last_updated_at: datetime
    completed_at: datetime | None = None
    risk_level: RiskLevel = RiskLevel.PENDING
    adverse_findings: int = 0
    recommendation: str = ""
    entity_match_stats: EntityMatchStats = Field(default_factory=EntityMatchStats)
    keyword_tags: list[str] = Field(default_factory=list)


class RunDetails(CamelModel):
    """A run with everything recorded under it."""

    run: SearchRun
    results: list[SearchResultItem] = Field(default_factory=list)
    sources: list[SourceRecord] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)


class ScreeningSnapshot(CamelModel):
    """Accumulated stream state, as the consumer sees it after folding events."""

    status: PipelineStatus = PipelineStatus.SEARCHING
    progress: int = Field(default=0, ge=0, le=100)
    results: list[SearchResultItem] = Field(default_factory=list)
    sources: SearchSources | None = None
    summary: SearchSummary | None = None
    relationships: list[Relationship] = Field(default_factory=list)
    search_id: str | None = None
    auto_saved: bool | None = None
    error: str | None = None
