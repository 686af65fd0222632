"""Entity-match and risk analyzer.

Sends page content (or only the search snippet) to the analysis agent,
extracts the JSON judgment from its free-text reply, validates it and gates
it on the entity match. The public functions never raise: every failure is
folded into a fixed error judgment with zero risk.
"""

from pydantic import ValidationError
from pydantic_ai import Agent

from adverse_media.analysis.agents import get_analysis_agent
from adverse_media.analysis.prompts import build_content_prompt, build_snippet_prompt
from adverse_media.exceptions import AnalysisError
from adverse_media.json_extract import extract_json_from_text
from adverse_media.logging import get_logger
from adverse_media.models import AnalysisJudgment, EntityMatch, SearchHit, ScreeningTarget

log = get_logger("adverse_media.analysis.analyzer")

MIN_ANALYZABLE_CONTENT_LENGTH = 50

CONTENT_ERROR_LABEL = "Error analyzing content"
SNIPPET_ERROR_LABEL = "Error analyzing search result"


def insufficient_content_judgment() -> AnalysisJudgment:
    return AnalysisJudgment(
        risk_score=0,
        adverse_content=["Unable to retrieve full content for analysis"],
        summary="Limited content available for analysis",
        entity_match=EntityMatch(is_exact_match=False, confidence=0, reason="Insufficient content"),
        relationships=[],
    )


def error_judgment(label: str, reason: str) -> AnalysisJudgment:
    return AnalysisJudgment(
        risk_score=0,
        adverse_content=[label],
        summary=label,
        entity_match=EntityMatch(is_exact_match=False, confidence=0, reason=f"Error in analysis: {reason}"),
        relationships=[],
    )


def parse_judgment(text: str) -> AnalysisJudgment:
    """Extract, validate and gate a judgment from raw model output.

    Raises:
        AnalysisError: When no JSON object is found or it violates the schema.
    """
    data = extract_json_from_text(text)
    if data is None:
        raise AnalysisError(reason="no JSON object in model output")

    try:
        judgment = AnalysisJudgment.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
        raise AnalysisError(reason=f"invalid judgment fields: {fields}") from e

    return judgment.gated()


async def _run_analysis(prompt: str, *, agent: Agent[None, str], error_label: str, url: str) -> AnalysisJudgment:
    try:
        run_result = await agent.run(prompt)
        text = run_result.output
    except Exception as e:
        log.error("analysis.llm_failed", url=url, error=str(e), error_type=type(e).__name__)
        return error_judgment(error_label, str(e))

    try:
        judgment = parse_judgment(text)
    except AnalysisError as e:
        log.error("analysis.parse_failed", url=url, reason=e.reason, raw_text=text)
        return error_judgment(error_label, e.reason)

    log.info(
        "analysis.completed",
        url=url,
        risk_score=judgment.risk_score,
        is_exact_match=judgment.entity_match.is_exact_match,
        confidence=judgment.entity_match.confidence,
    )
    return judgment


async def analyze_content(
    content: str,
    target: ScreeningTarget,
    *,
    url: str = "",
    agent: Agent[None, str] | None = None,
) -> AnalysisJudgment:
    """Judge full scraped page content."""
    if not content or len(content) < MIN_ANALYZABLE_CONTENT_LENGTH:
        log.info("analysis.insufficient_content", url=url, content_length=len(content or ""))
        return insufficient_content_judgment()

    try:
        _agent = agent or get_analysis_agent()
    except Exception as e:
        log.error("analysis.agent_unavailable", error=str(e))
        return error_judgment(CONTENT_ERROR_LABEL, str(e))

    return await _run_analysis(
        build_content_prompt(content, target),
        agent=_agent,
        error_label=CONTENT_ERROR_LABEL,
        url=url,
    )


async def analyze_search_snippet(
    hit: SearchHit,
    target: ScreeningTarget,
    *,
    agent: Agent[None, str] | None = None,
) -> AnalysisJudgment:
    """Judge a search hit's title/description/url when the page is unavailable."""
    try:
        _agent = agent or get_analysis_agent()
    except Exception as e:
        log.error("analysis.agent_unavailable", error=str(e))
        return error_judgment(SNIPPET_ERROR_LABEL, str(e))

    return await _run_analysis(
        build_snippet_prompt(hit, target),
        agent=_agent,
        error_label=SNIPPET_ERROR_LABEL,
        url=hit.url,
    )
