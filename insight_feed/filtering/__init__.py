"""Rule-based filtering of raw content."""

from insight_feed.filtering.rules import (
    FilterDecision,
    KeywordFilter,
    evaluate,
    parse_keyword_rule,
)

__all__ = ["FilterDecision", "KeywordFilter", "evaluate", "parse_keyword_rule"]
