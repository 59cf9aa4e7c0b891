"""Observability layer - logging and metrics."""

from insight_feed.observability.logging import setup_logging
from insight_feed.observability.metrics import MetricsCollector, get_metrics

__all__ = ["setup_logging", "MetricsCollector", "get_metrics"]
