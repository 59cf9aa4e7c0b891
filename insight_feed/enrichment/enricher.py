"""
Enricher: turn filtered content into a validated AnalysisResult.

Flow per item:
1. Truncate content to max_content_chars
2. Ask the analysis client for a structured payload
3. Parse and validate the payload (see validator.parse_analysis)

Client failures (API errors, timeouts, open circuit) become CLIENT_ERROR;
payload problems become MALFORMED_RESPONSE or EMPTY_RESPONSE. All of these
are per-item: the caller decides whether to continue.
"""

import time

import structlog

from insight_feed.enrichment.clients import AnalysisClient, create_analysis_client
from insight_feed.enrichment.config import EnrichmentConfig
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
from insight_feed.observability.metrics import MetricsCollector, get_metrics

logger = structlog.get_logger(__name__)


class Enricher:
    """
    Sends content to an AnalysisClient and validates what comes back.

    Usage:
        enricher = Enricher.from_config(EnrichmentConfig())
        enricher.ensure_available()
        outcome = await enricher.try_enrich(content)
        if outcome.ok:
            print(outcome.value.summary)
    """

    def __init__(
        self,
        client: AnalysisClient,
        config: EnrichmentConfig | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.client = client
        self.config = config or EnrichmentConfig()
        self._metrics = metrics

    @classmethod
    def from_config(cls, config: EnrichmentConfig | None = None) -> "Enricher":
        config = config or EnrichmentConfig()
        return cls(create_analysis_client(config), config)

    @property
    def metrics(self) -> MetricsCollector:
        if self._metrics is None:
            self._metrics = get_metrics()
        return self._metrics

    @property
    def is_available(self) -> bool:
        return self.client.is_configured

    def ensure_available(self) -> None:
        """
        Raises:
            EnrichmentUnavailableError: If the analysis client is not configured.
        """
        if not self.is_available:
            raise EnrichmentUnavailableError(
                f"Analysis provider '{self.client.name}' is not configured "
                f"(missing API key)"
            )

    async def enrich(self, content: str) -> AnalysisResult:
        """
        Analyze content.

        Raises:
            EnrichmentError: On any per-item failure.
        """
        prepared = self._prepare(content)
        start = time.perf_counter()
        attempt = 0

        try:
            while True:
                attempt += 1
                raw = await self._call_client(prepared)
                try:
                    result = parse_analysis(raw)
                    break
                except EnrichmentError as e:
                    retryable = e.kind == EnrichmentErrorKind.MALFORMED_RESPONSE
                    if not retryable or attempt > self.config.malformed_retries:
                        raise
                    logger.info(
                        "Retrying malformed analysis response",
                        attempt=attempt,
                        cause=e.cause,
                    )
        except EnrichmentError as e:
            self.metrics.record_enrichment(time.perf_counter() - start, error_kind=e.kind.value)
            logger.warning("Enrichment failed", kind=e.kind.value, cause=e.cause)
            raise

        self.metrics.record_enrichment(time.perf_counter() - start)
        return result

    async def try_enrich(self, content: str) -> EnrichmentOutcome:
        """Like enrich(), but returns Ok(result) or Err(error) instead of raising."""
        try:
            return Ok(await self.enrich(content))
        except EnrichmentError as e:
            return Err(e)

    async def close(self) -> None:
        await self.client.close()

    def _prepare(self, content: str) -> str:
        limit = self.config.max_content_chars
        text = content.strip()
        if len(text) > limit:
            text = text[:limit]
        return text

    async def _call_client(self, content: str) -> str | None:
        try:
            return await self.client.analyze(content)
        except Exception as e:
            detail = str(e).strip() or type(e).__name__
            raise EnrichmentError(EnrichmentErrorKind.CLIENT_ERROR, detail) from e
