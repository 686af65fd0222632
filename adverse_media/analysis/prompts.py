"""Prompt construction for the two analyzer variants.

Both variants share one rubric: entity verification, adverse media
categories, relationship extraction. They differ only in the material shown
to the model.
"""

from adverse_media.models import SearchHit, ScreeningTarget

ADVERSE_MEDIA_CATEGORIES = (
    "Criminal activities or allegations",
    "Fraud or financial misconduct",
    "Sanctions or watchlist appearances",
    "Political exposure or corruption",
    "Negative press or reputation issues",
    "Litigation or legal troubles",
    "Regulatory violations",
)

RESPONSE_FORMAT = """Return a JSON object with:
- riskScore: number from 0-100 indicating the level of risk (0 if not about the target individual)
- adverseContent: array of strings with specific adverse media mentions found (empty if not about the target individual)
- summary: brief summary of findings
- entityMatch: {
    isExactMatch: boolean indicating if this is definitely about the target individual,
    confidence: number from 0-100 indicating confidence in the match,
    reason: string explaining the match assessment
  }
- relationships: array of {
    name: name of the connected person or organization,
    type: one of "family", "business", "political", "criminal", "other",
    description: how they are connected to the target individual,
    confidence: number from 0-100
  } (empty if not about the target individual)

IMPORTANT: Return ONLY the JSON object with no markdown formatting, code blocks, or additional text."""


def _target_block(target: ScreeningTarget) -> str:
    lines = [f'TARGET INDIVIDUAL: "{target.individual_name}"']
    if target.additional_info:
        lines.append(f"ADDITIONAL CONTEXT: {target.additional_info}")
    if target.company_name:
        lines.append(f"ASSOCIATED COMPANY: {target.company_name}")
    if target.keywords:
        lines.append(f"SPECIFIC KEYWORDS TO LOOK FOR: {', '.join(target.keywords)}")
    return "\n".join(lines)


def _rubric(target: ScreeningTarget, subject: str) -> str:
    categories = [f"- {category}" for category in ADVERSE_MEDIA_CATEGORIES]
    if target.keywords:
        categories.append(f"- Specific mentions of any of these keywords: {', '.join(target.keywords)}")

    return "\n".join(
        [
            "STEP 1: ENTITY VERIFICATION",
            f"First, determine if the {subject} is definitely about the target individual. Consider:",
            "- Full name match (exact match is strongest)",
            "- Context alignment (location, profession, company, etc.)",
            "- Uniqueness of the name",
            "- Temporal relevance (recent vs. old information)",
            "",
            "STEP 2: ADVERSE MEDIA ANALYSIS",
            f"Only if the {subject} is about the target individual, analyze for adverse media such as:",
            *categories,
            "",
            "STEP 3: RELATIONSHIP EXTRACTION",
            f"Only if the {subject} is about the target individual, list people and organizations",
            "connected to them (family, business partners, political ties, criminal associates).",
        ]
    )


def build_content_prompt(content: str, target: ScreeningTarget) -> str:
    """Prompt for full scraped page content."""
    return "\n\n".join(
        [
            "You are performing an adverse media check for KYC (Know Your Customer) compliance.",
            _target_block(target),
            _rubric(target, "content"),
            f"CONTENT TO ANALYZE:\n{content}",
            RESPONSE_FORMAT,
        ]
    )


def build_snippet_prompt(hit: SearchHit, target: ScreeningTarget) -> str:
    """Prompt for search metadata only, used when the page could not be fetched."""
    snippet = f"SEARCH RESULT:\nTitle: {hit.title}\nDescription: {hit.description}\nURL: {hit.url}"
    return "\n\n".join(
        [
            "You are performing an adverse media check for KYC (Know Your Customer) compliance.",
            _target_block(target),
            _rubric(target, "search result"),
            snippet,
            RESPONSE_FORMAT,
        ]
    )
