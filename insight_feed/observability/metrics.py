"""
Prometheus metrics for monitoring the insight pipeline.

Defines and exposes metrics for:
- Source fetch outcomes and latency
- Processing item outcomes
- Enrichment latency and errors
- Run durations and insight collection size

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import structlog
from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from insight_feed.config.settings import get_settings

logger = structlog.get_logger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the insight-feed pipeline.

    Usage:
        metrics = get_metrics()
        metrics.record_fetch(kind="feed", status="success", latency=0.7)
        metrics.record_item(status="skipped")
    """

    def __init__(self) -> None:
        """Initialize Prometheus metrics."""

        self.sources_fetched = Counter(
            "insight_feed_sources_fetched_total",
            "Total source fetches by outcome",
            ["kind", "status"],  # status: success, failure
        )

        self.fetch_latency = Histogram(
            "insight_feed_fetch_latency_seconds",
            "Time to fetch raw content from a source",
            ["kind"],
            buckets=LATENCY_BUCKETS,
        )

        self.items_processed = Counter(
            "insight_feed_items_processed_total",
            "Processing items by terminal status",
            ["status"],  # success, skipped, failure
        )

        self.enrichment_latency = Histogram(
            "insight_feed_enrichment_latency_seconds",
            "Time spent in the analysis capability per item",
            buckets=LATENCY_BUCKETS,
        )

        self.enrichment_errors = Counter(
            "insight_feed_enrichment_errors_total",
            "Enrichment failures by kind",
            ["kind"],
        )

        self.run_duration = Histogram(
            "insight_feed_run_duration_seconds",
            "Duration of ingestion and processing runs",
            ["run"],  # ingestion, processing
            buckets=LATENCY_BUCKETS,
        )

        self.runs_rejected = Counter(
            "insight_feed_runs_rejected_total",
            "Run triggers rejected because another run was active",
            ["run"],
        )

        self.insights_total = Gauge(
            "insight_feed_insights",
            "Number of insights in the accumulated collection",
        )

        logger.debug("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info("Prometheus metrics server started", port=port)

    # Convenience methods

    def record_fetch(self, kind: str, status: str, latency: float | None = None) -> None:
        """
        Record the outcome of a single source fetch.

        Args:
            kind: Source kind (feed, endpoint)
            status: Fetch outcome (success, failure)
            latency: Optional fetch latency in seconds
        """
        self.sources_fetched.labels(kind=kind, status=status).inc()
        if latency is not None:
            self.fetch_latency.labels(kind=kind).observe(latency)

    def record_item(self, status: str) -> None:
        """Record a processing item reaching a terminal status."""
        self.items_processed.labels(status=status).inc()

    def record_enrichment(self, latency: float, error_kind: str | None = None) -> None:
        """
        Record one enrichment attempt.

        Args:
            latency: Time spent in the enricher in seconds
            error_kind: EnrichmentErrorKind value when the attempt failed
        """
        self.enrichment_latency.observe(latency)
        if error_kind is not None:
            self.enrichment_errors.labels(kind=error_kind).inc()

    def record_run(self, run: str, duration: float) -> None:
        """Record the duration of a completed run."""
        self.run_duration.labels(run=run).observe(duration)

    def record_rejected_run(self, run: str) -> None:
        """Record a run trigger that was rejected by the re-entrancy guard."""
        self.runs_rejected.labels(run=run).inc()

    def set_insight_count(self, count: int) -> None:
        """Set the size of the accumulated insight collection."""
        self.insights_total.set(count)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
