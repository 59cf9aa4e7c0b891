"""AI enrichment of filtered content.

Components:
- AnalysisResult: validated summary / sentiment / entities
- AnalysisClient implementations: OpenAI, Anthropic and an offline mock
- Enricher: calls the client and validates its payload
"""

from insight_feed.enrichment.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
)
from insight_feed.enrichment.clients import (
    AnalysisClient,
    AnthropicAnalysisClient,
    OpenAIAnalysisClient,
    create_analysis_client,
)
from insight_feed.enrichment.config import EnrichmentConfig
from insight_feed.enrichment.enricher import Enricher
from insight_feed.enrichment.mock_client import MockAnalysisClient
from insight_feed.enrichment.schemas import (
    AnalysisResult,
    EnrichmentError,
    EnrichmentErrorKind,
    EnrichmentOutcome,
    EnrichmentUnavailableError,
    Err,
    Ok,
)
from insight_feed.enrichment.validator import parse_analysis

__all__ = [
    "AnalysisClient",
    "AnalysisResult",
    "AnthropicAnalysisClient",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "Enricher",
    "EnrichmentConfig",
    "EnrichmentError",
    "EnrichmentErrorKind",
    "EnrichmentOutcome",
    "EnrichmentUnavailableError",
    "Err",
    "MockAnalysisClient",
    "Ok",
    "OpenAIAnalysisClient",
    "create_analysis_client",
    "parse_analysis",
]
