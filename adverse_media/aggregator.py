"""Risk aggregation over the analyzed results of one run."""

from collections.abc import Iterable, Sequence

from pydantic import BaseModel, Field

from adverse_media.models import (
    EntityMatchStats,
    Relationship,
    RiskLevel,
    SearchResultItem,
    SearchSummary,
)

HIGH_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40

RECOMMENDATIONS: dict[str, str] = {
    "high": "Significant adverse media found. Recommend enhanced due diligence and escalation to compliance team.",
    "medium": "Some adverse media detected. Consider additional verification and monitoring.",
    "low": "No significant adverse media detected. Standard KYC procedures appear sufficient.",
    "low_with_failures": (
        "No significant adverse media detected, but some sources could not be fully analyzed. "
        "Consider manual review of search results."
    ),
    "no_results": "No search results found. Consider refining your search terms.",
}


def no_match_recommendation(individual_name: str) -> str:
    return (
        f"No relevant information found about {individual_name}. "
        "The search results appear to reference different individuals."
    )


class AggregateOutcome(BaseModel):
    summary: SearchSummary
    relationships: list[Relationship] = Field(default_factory=list)


def risk_level_for(average_risk_score: float) -> RiskLevel:
    if average_risk_score > HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if average_risk_score > MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _relationship_sentence(count: int) -> str:
    noun = "relationship" if count == 1 else "relationships"
    return f" {count} {noun} to other individuals or organizations identified; review the relationship map."


def collect_relationships(results: Iterable[SearchResultItem]) -> list[Relationship]:
    """Relationships from valid matches, tagged with the page they came from."""
    collected: list[Relationship] = []
    for item in results:
        if item.entity_match is None or not item.entity_match.is_valid:
            continue
        for relationship in item.relationships:
            collected.append(
                relationship.model_copy(
                    update={
                        "source_url": relationship.source_url or item.url,
                        "source_title": relationship.source_title or item.title,
                    }
                )
            )
    return collected


def aggregate(
    results: Sequence[SearchResultItem],
    *,
    individual_name: str,
    scraping_failures: int = 0,
    keywords: Sequence[str] = (),
) -> AggregateOutcome:
    """Compute the run verdict.

    Only valid entity matches contribute risk and findings. With no valid
    match the verdict is forced to low with a "different individuals"
    recommendation, whatever scores the discarded entries carried.
    """
    valid = [item for item in results if item.entity_match is not None and item.entity_match.is_valid]
    valid_entity_matches = len(valid)
    total_risk = sum(item.risk_score for item in valid)
    adverse_findings = sum(len(item.adverse_content) for item in valid)

    average_risk_score = total_risk / valid_entity_matches if valid_entity_matches else 0.0
    risk_level = risk_level_for(average_risk_score)

    # Unanalyzable pages might hide risk
    if scraping_failures > 0 and adverse_findings > 0 and valid_entity_matches > 0 and risk_level == RiskLevel.LOW:
        risk_level = RiskLevel.MEDIUM

    relationships = collect_relationships(results)

    if valid_entity_matches == 0:
        risk_level = RiskLevel.LOW
        adverse_findings = 0
        recommendation = no_match_recommendation(individual_name)
    elif risk_level == RiskLevel.LOW and scraping_failures > 0:
        recommendation = RECOMMENDATIONS["low_with_failures"]
    else:
        recommendation = RECOMMENDATIONS[risk_level.value]

    if relationships:
        recommendation += _relationship_sentence(len(relationships))

    summary = SearchSummary(
        risk_level=risk_level,
        adverse_findings=adverse_findings,
        recommendation=recommendation,
        entity_match_stats=EntityMatchStats(total_results=len(results), valid_entity_matches=valid_entity_matches),
        keywords=list(keywords),
        scraping_failures=scraping_failures,
        average_risk_score=round(average_risk_score, 2),
    )
    return AggregateOutcome(summary=summary, relationships=relationships)


def empty_results_summary(keywords: Sequence[str] = ()) -> SearchSummary:
    """Verdict for a search that returned no hits."""
    return SearchSummary(
        risk_level=RiskLevel.LOW,
        adverse_findings=0,
        recommendation=RECOMMENDATIONS["no_results"],
        entity_match_stats=EntityMatchStats(total_results=0, valid_entity_matches=0),
        keywords=list(keywords),
    )
