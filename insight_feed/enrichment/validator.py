"""Parsing of untrusted analysis payloads into AnalysisResult."""

import json
import re

from pydantic import ValidationError

from insight_feed.enrichment.schemas import (
    AnalysisResult,
    EnrichmentError,
    EnrichmentErrorKind,
)

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence, if present."""
    text = raw.strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item["loc"]) or "payload"
        parts.append(f"{loc}: {item['msg']}")
    return "; ".join(parts)


def parse_analysis(raw: object) -> AnalysisResult:
    """
    Parse a raw analysis payload.

    Raises:
        EnrichmentError: EMPTY_RESPONSE when nothing came back,
            MALFORMED_RESPONSE on non-text payloads, invalid JSON or a
            schema violation.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise EnrichmentError(EnrichmentErrorKind.EMPTY_RESPONSE, "Empty response from analysis client")

    if not isinstance(raw, str):
        raise EnrichmentError(
            EnrichmentErrorKind.MALFORMED_RESPONSE,
            f"Expected a text payload, got {type(raw).__name__}",
        )

    text = strip_code_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise EnrichmentError(
            EnrichmentErrorKind.MALFORMED_RESPONSE,
            f"Invalid JSON: {e.msg} (line {e.lineno} column {e.colno})",
        ) from e
    except (ValueError, RecursionError) as e:
        # Oversized integer literals and deeply nested arrays
        raise EnrichmentError(EnrichmentErrorKind.MALFORMED_RESPONSE, f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise EnrichmentError(
            EnrichmentErrorKind.MALFORMED_RESPONSE,
            f"Expected a JSON object, got {type(data).__name__}",
        )

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise EnrichmentError(
            EnrichmentErrorKind.MALFORMED_RESPONSE,
            f"Schema violation: {_describe_validation_error(e)}",
        ) from e
