"""Keyword tag dictionary mapping tag IDs to locale-specific search terms."""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from pydantic import BaseModel, Field


class KeywordCategory(BaseModel):
    """A named group of keyword tags, as shown in a keyword picker."""

    id: str
    name: str
    tags: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class KeywordDictionary(Mapping[str, str]):
    """Immutable tag ID -> search term mapping with optional categories.

    Terms may carry a trailing ``*`` wildcard which is passed through to the
    search provider unchanged.
    """

    locale: str
    terms: Mapping[str, str]
    categories: tuple[KeywordCategory, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", MappingProxyType(dict(self.terms)))

    def __getitem__(self, tag_id: str) -> str:
        return self.terms[tag_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def resolve(self, tag_ids: Iterable[str]) -> list[str]:
        """Map tag IDs to terms in input order, silently dropping unknown IDs."""
        return [self.terms[tag_id] for tag_id in tag_ids if tag_id in self.terms]

    def catalogue(self) -> list[dict[str, object]]:
        """Categories with their tag IDs and terms, for API consumers."""
        return [
            {
                "id": category.id,
                "name": category.name,
                "keywords": [{"id": tag, "term": self.terms[tag]} for tag in category.tags if tag in self.terms],
            }
            for category in self.categories
        ]


SWEDISH_TERMS: dict[str, str] = {
    "corruption": "korruption",
    "sanctions": "sanktion*",
    "economic-crime": "ekonomisk brottslighet",
    "prosecution": "åtal*",
    "bribery": "mut*",
    "crime": "brott*",
    "business-ban": "näringsförbud*",
    "fraud": "bedrägeri*",
    "scandal": "skandal*",
    "terrorism": "terrorism*",
    "criminal-networks": "kriminella nätverk*",
    "crypto": "krypto",
    "narcotics": "narkotika",
    "weapons": "vapen",
    "accounting-crime": "bokföringsbrott*",
    "money-laundering": "penningtvätt",
}

DEFAULT_KEYWORDS = KeywordDictionary(
    locale="sv",
    terms=SWEDISH_TERMS,
    categories=(
        KeywordCategory(
            id="economic-crime",
            name="Economic Crime",
            tags=[
                "corruption",
                "sanctions",
                "economic-crime",
                "prosecution",
                "bribery",
                "crime",
                "business-ban",
                "fraud",
                "scandal",
                "accounting-crime",
                "money-laundering",
            ],
        ),
        KeywordCategory(
            id="security-threats",
            name="Security Threats",
            tags=["terrorism", "criminal-networks", "crypto", "narcotics", "weapons"],
        ),
    ),
)
