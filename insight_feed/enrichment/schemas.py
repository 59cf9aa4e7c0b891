"""Schemas for AI enrichment results and errors.

AnalysisResult is the validated shape of an analysis payload. Anything the
model returns is untrusted until it has been parsed into this model.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Sentiment = Literal["Positive", "Negative", "Neutral"]
SENTIMENT_LABELS: tuple[str, ...] = ("Positive", "Negative", "Neutral")


class AnalysisResult(BaseModel):
    """Structured analysis of one piece of content."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    summary: str = Field(..., min_length=1, description="One-sentence summary")
    sentiment: Sentiment
    entities: tuple[str, ...] = Field(
        ...,
        description="Brands, products and people mentioned, in order of appearance",
    )

    @field_validator("summary", mode="before")
    @classmethod
    def _strip_summary(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("sentiment", mode="before")
    @classmethod
    def _normalize_sentiment(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().title()
        return v

    @field_validator("entities", mode="before")
    @classmethod
    def _dedupe_entities(cls, v: object) -> object:
        if not isinstance(v, (list, tuple)):
            return v
        seen: dict[str, None] = {}
        for item in v:
            if not isinstance(item, str):
                # Leave it for the str validator to reject
                return v
            cleaned = item.strip()
            if cleaned:
                seen.setdefault(cleaned, None)
        return tuple(seen)


# JSON schema sent to providers that support structured output
ANALYSIS_JSON_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "summary": {"type": "string", "description": "One-sentence summary of the content"},
        "sentiment": {"type": "string", "enum": list(SENTIMENT_LABELS)},
        "entities": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Brands, products and people mentioned",
        },
    },
    "required": ["summary", "sentiment", "entities"],
    "additionalProperties": False,
}


class EnrichmentErrorKind(str, Enum):
    MALFORMED_RESPONSE = "malformed_response"
    EMPTY_RESPONSE = "empty_response"
    CLIENT_ERROR = "client_error"


class EnrichmentError(Exception):
    """Per-item enrichment failure.

    Attributes:
        kind: What went wrong
        cause: Human-readable detail (parser message, API error)
    """

    def __init__(self, kind: EnrichmentErrorKind, cause: str):
        super().__init__(cause)
        self.kind = kind
        self.cause = cause

    def __repr__(self) -> str:
        return f"EnrichmentError(kind={self.kind.value!r}, cause={self.cause!r})"


class EnrichmentUnavailableError(Exception):
    """The analysis capability is not configured; no run can proceed."""


T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False


EnrichmentOutcome = Union[Ok[AnalysisResult], Err[EnrichmentError]]
