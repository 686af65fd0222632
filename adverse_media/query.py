"""Search query construction from a screening identity and keyword tags."""

from collections.abc import Iterable, Mapping

from adverse_media.keywords import DEFAULT_KEYWORDS


def resolve_keyword_terms(keyword_tags: Iterable[str], dictionary: Mapping[str, str] = DEFAULT_KEYWORDS) -> list[str]:
    """Map tag IDs to search terms in input order; unknown IDs are dropped."""
    return [dictionary[tag] for tag in keyword_tags if tag in dictionary]


def build_search_query(
    individual_name: str,
    company_name: str | None = None,
    additional_info: str | None = None,
    keyword_tags: Iterable[str] = (),
    *,
    dictionary: Mapping[str, str] = DEFAULT_KEYWORDS,
) -> str:
    """Build a boolean-style web search query.

    ``Jane Doe AND (bedrägeri* OR sanktion*) OR (Acme AND (bedrägeri* OR sanktion*)) Stockholm``

    Additional info is appended as loose trailing terms rather than combined
    into the boolean expression.
    """
    terms = resolve_keyword_terms(keyword_tags, dictionary)
    term_clause = f"({' OR '.join(terms)})" if terms else ""

    query = individual_name
    if term_clause:
        query += f" AND {term_clause}"

    if company_name:
        if term_clause:
            query += f" OR ({company_name} AND {term_clause})"
        else:
            query += f" OR {company_name}"

    if additional_info:
        query += f" {additional_info}"

    return query


def build_fallback_query(
    individual_name: str,
    company_name: str | None = None,
    additional_info: str | None = None,
) -> str:
    """Plain space-joined query used when the full pipeline is unavailable."""
    return " ".join(part for part in (individual_name, company_name, additional_info) if part)
