"""Tests for run-level risk aggregation."""

import pytest

from adverse_media.aggregator import (
    RECOMMENDATIONS,
    aggregate,
    collect_relationships,
    empty_results_summary,
    risk_level_for,
)
from adverse_media.models import EntityMatch, Relationship, RiskLevel, SearchResultItem


def _result(
    url: str,
    risk: int,
    *,
    findings: int = 0,
    exact: bool = False,
    confidence: int = 0,
    relationships: list[Relationship] | None = None,
) -> SearchResultItem:
    return SearchResultItem(
        url=url,
        title=f"Title {url}",
        risk_score=risk,
        adverse_content=[f"finding {i}" for i in range(findings)],
        status="complete",
        entity_match=EntityMatch(is_exact_match=exact, confidence=confidence),
        relationships=relationships or [],
    )


class TestRiskLevelFor:
    @pytest.mark.parametrize(
        "average,expected",
        [
            (0, RiskLevel.LOW),
            (40, RiskLevel.LOW),
            (40.5, RiskLevel.MEDIUM),
            (70, RiskLevel.MEDIUM),
            (70.1, RiskLevel.HIGH),
            (100, RiskLevel.HIGH),
        ],
    )
    def test__risk_level_for__uses_strict_thresholds(self, average: float, expected: RiskLevel) -> None:
        assert risk_level_for(average) == expected


class TestAggregate:
    def test__aggregate__averages_over_valid_matches_only(self) -> None:
        results = [
            _result("a", 80, findings=2, exact=True),
            _result("b", 60, findings=1, confidence=75),
            _result("c", 0, confidence=20),
        ]

        summary = aggregate(results, individual_name="Jane Doe").summary

        assert summary.average_risk_score == 70.0
        assert summary.risk_level == RiskLevel.MEDIUM
        assert summary.adverse_findings == 3
        assert summary.entity_match_stats.total_results == 3
        assert summary.entity_match_stats.valid_entity_matches == 2
        assert summary.recommendation == RECOMMENDATIONS["medium"]

    def test__aggregate__high_risk(self) -> None:
        summary = aggregate([_result("a", 90, findings=3, exact=True)], individual_name="Jane Doe").summary
        assert summary.risk_level == RiskLevel.HIGH
        assert summary.recommendation == RECOMMENDATIONS["high"]

    def test__aggregate__no_valid_match_forces_low_and_zero_findings(self) -> None:
        # Invalid entries carrying stale scores must not leak into the verdict
        results = [
            _result("a", 95, findings=4, confidence=50),
            _result("b", 80, findings=2, confidence=10),
        ]

        summary = aggregate(results, individual_name="Jane Doe", scraping_failures=2).summary

        assert summary.risk_level == RiskLevel.LOW
        assert summary.adverse_findings == 0
        assert summary.average_risk_score == 0.0
        assert summary.entity_match_stats.valid_entity_matches == 0
        assert "No relevant information found about Jane Doe" in summary.recommendation
        assert "different individuals" in summary.recommendation

    def test__aggregate__scraping_failures_escalate_low_to_medium(self) -> None:
        results = [_result("a", 20, findings=2, exact=True)]

        summary = aggregate(results, individual_name="Jane Doe", scraping_failures=1).summary

        assert summary.risk_level == RiskLevel.MEDIUM
        assert summary.scraping_failures == 1
        assert summary.recommendation == RECOMMENDATIONS["medium"]

    def test__aggregate__no_escalation_without_findings(self) -> None:
        results = [_result("a", 10, exact=True)]

        summary = aggregate(results, individual_name="Jane Doe", scraping_failures=1).summary

        assert summary.risk_level == RiskLevel.LOW
        assert summary.recommendation == RECOMMENDATIONS["low_with_failures"]

    def test__aggregate__low_without_failures(self) -> None:
        summary = aggregate([_result("a", 0, exact=True)], individual_name="Jane Doe").summary
        assert summary.risk_level == RiskLevel.LOW
        assert summary.recommendation == RECOMMENDATIONS["low"]

    def test__aggregate__appends_relationship_sentence(self) -> None:
        results = [
            _result(
                "https://a.example",
                50,
                findings=1,
                exact=True,
                relationships=[Relationship(name="Acme AB"), Relationship(name="John Roe")],
            )
        ]

        outcome = aggregate(results, individual_name="Jane Doe")

        assert outcome.summary.recommendation.endswith(
            " 2 relationships to other individuals or organizations identified; review the relationship map."
        )
        assert [r.name for r in outcome.relationships] == ["Acme AB", "John Roe"]

    def test__aggregate__keeps_keywords(self) -> None:
        summary = aggregate([], individual_name="Jane Doe", keywords=["bedrägeri*"]).summary
        assert summary.keywords == ["bedrägeri*"]


class TestCollectRelationships:
    def test__collect__tags_source_and_skips_invalid_matches(self) -> None:
        results = [
            _result("https://a.example", 50, exact=True, relationships=[Relationship(name="Acme AB")]),
            _result("https://b.example", 0, confidence=30, relationships=[Relationship(name="Namesake Ltd")]),
        ]

        relationships = collect_relationships(results)

        assert len(relationships) == 1
        assert relationships[0].source_url == "https://a.example"
        assert relationships[0].source_title == "Title https://a.example"

    def test__collect__keeps_existing_source_tags(self) -> None:
        rel = Relationship(name="Acme AB", source_url="https://origin.example", source_title="Origin")
        [collected] = collect_relationships([_result("https://a.example", 50, exact=True, relationships=[rel])])
        assert collected.source_url == "https://origin.example"


def test__empty_results_summary__is_low_with_no_results_recommendation() -> None:
    summary = empty_results_summary(["korruption"])

    assert summary.risk_level == RiskLevel.LOW
    assert summary.adverse_findings == 0
    assert summary.recommendation == RECOMMENDATIONS["no_results"]
    assert summary.entity_match_stats.total_results == 0
    assert summary.keywords == ["korruption"]
