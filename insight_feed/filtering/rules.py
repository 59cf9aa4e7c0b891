"""
Keyword rule filtering.

A keyword rule is a comma-separated list of terms. Content passes when it
contains any term as a case-insensitive substring; an empty rule passes
everything.
"""

from dataclasses import dataclass

from insight_feed.ingestion.schemas import IngestionRecord
from insight_feed.sources.schemas import Source


@dataclass(frozen=True)
class FilterDecision:
    """Result of evaluating content against a keyword rule."""

    passed: bool
    keywords: tuple[str, ...]
    matched: tuple[str, ...] = ()

    @property
    def match_all(self) -> bool:
        """True when the rule had no keywords."""
        return not self.keywords


def parse_keyword_rule(rule: str | None) -> list[str]:
    """Split a rule on commas, trimming whitespace and dropping empty terms.

    >>> parse_keyword_rule(" jordan, ,nike ")
    ['jordan', 'nike']
    """
    if not rule:
        return []
    return [term.strip() for term in rule.split(",") if term.strip()]


def evaluate(content: str, rule: str | None) -> FilterDecision:
    """Evaluate content against a keyword rule."""
    keywords = tuple(parse_keyword_rule(rule))
    if not keywords:
        return FilterDecision(passed=True, keywords=())

    lowered = content.lower()
    matched = tuple(k for k in keywords if k.lower() in lowered)
    return FilterDecision(passed=bool(matched), keywords=keywords, matched=matched)


class KeywordFilter:
    """Applies a source's keyword rule to an ingestion record."""

    def decide(self, record: IngestionRecord, source: Source) -> FilterDecision:
        return evaluate(record.result, source.keyword_rule)

    def matches(self, record: IngestionRecord, source: Source) -> bool:
        return self.decide(record, source).passed
