"""Offline analysis client for development and tests.

Produces a deterministic analysis payload from simple text heuristics, so
that the whole pipeline can run without an API key. Content containing one
of the configured malformed markers gets a broken payload back, which
exercises the enricher's error path.
"""

import json
import re

POSITIVE_WORDS = frozenset({
    "iconic", "classic", "fresh", "return", "returns", "major", "best",
    "love", "hyped", "success", "win", "wins", "strong", "popular", "launch",
})
NEGATIVE_WORDS = frozenset({
    "delay", "delayed", "recall", "lawsuit", "cancel", "cancelled", "fake",
    "drop", "decline", "weak", "worst", "problem", "shortage",
})
STOPWORDS = frozenset({
    "A", "An", "The", "This", "That", "These", "Those", "It", "Its", "In",
    "On", "At", "For", "With", "And", "But", "Or", "Of", "To", "Is",
})

_PHRASE_RE = re.compile(r"[A-Z][\w-]*(?:\s+[A-Z0-9][\w-]*)*")
_WORD_RE = re.compile(r"[a-z]+")

MALFORMED_PAYLOAD = "{'summary': 'unterminated analysis', 'sentiment': Positive"


def _extract_entities(content: str) -> list[str]:
    entities: list[str] = []
    for match in _PHRASE_RE.finditer(content):
        words = match.group(0).split()
        while words and words[0] in STOPWORDS:
            words.pop(0)
        phrase = " ".join(words)
        if phrase and phrase not in entities:
            entities.append(phrase)
    return entities


def _score_sentiment(content: str) -> str:
    lowered = content.lower()
    tokens = set(_WORD_RE.findall(lowered))
    positive = len(tokens & POSITIVE_WORDS)
    negative = len(tokens & NEGATIVE_WORDS)
    if positive > negative:
        return "Positive"
    if negative > positive:
        return "Negative"
    return "Neutral"


def _summarize(content: str, max_chars: int = 160) -> str:
    first = re.split(r"(?<=[.!?])\s+", content.strip(), maxsplit=1)[0]
    if len(first) > max_chars:
        first = first[: max_chars - 3].rstrip() + "..."
    return first


class MockAnalysisClient:
    """Heuristic analysis client; always configured."""

    name = "mock"

    def __init__(self, malformed_markers: list[str] | None = None) -> None:
        self.malformed_markers = [m.lower() for m in (malformed_markers or []) if m]
        self.calls: list[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def analyze(self, content: str) -> str | None:
        self.calls.append(content)

        lowered = content.lower()
        if any(marker in lowered for marker in self.malformed_markers):
            return MALFORMED_PAYLOAD

        return json.dumps({
            "summary": _summarize(content),
            "sentiment": _score_sentiment(content),
            "entities": _extract_entities(content),
        })

    async def close(self) -> None:
        return None
