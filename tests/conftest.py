"""Pytest fixtures for insight-feed tests."""

from unittest.mock import MagicMock

import pytest

from insight_feed.config.settings import Settings
from insight_feed.enrichment.config import EnrichmentConfig
from insight_feed.enrichment.enricher import Enricher
from insight_feed.enrichment.mock_client import MockAnalysisClient
from insight_feed.ingestion.config import IngestionConfig
from insight_feed.ingestion.content_sources import StaticContentSource
from insight_feed.ingestion.fetcher import Fetcher
from insight_feed.observability.metrics import MetricsCollector
from insight_feed.pipeline.orchestrator import PipelineOrchestrator
from insight_feed.sources.registry import SourceRegistry
from insight_feed.sources.schemas import SourceKind, SourceStatus

SNEAKERNEWS_URL = "https://sneakernews.com/feed/"
HYPEBEAST_URL = "https://hypebeast.com/footwear/feed"
STOCKX_URL = "https://api.stockx.com/v2/sneakers"
COMPLEX_URL = "https://www.complex.com/sneakers/rss"

JORDAN_CONTENT = (
    "The iconic Nike Air Jordan 1 'UNC Toe' is releasing soon. "
    "This classic sneaker has a fresh colorway."
)
COMPLEXCON_CONTENT = "ComplexCon announces its return with major brand partners."
NEW_BALANCE_CONTENT = "A review of the latest New Balance 990v6."


@pytest.fixture
def test_settings() -> Settings:
    """Settings configured for testing."""
    return Settings(environment="development", log_level="DEBUG", dedupe_insights=True)


@pytest.fixture
def mock_metrics() -> MagicMock:
    """Metrics collector that records calls instead of touching the Prometheus registry."""
    return MagicMock(spec=MetricsCollector)


@pytest.fixture
def registry() -> SourceRegistry:
    """Registry mirroring the bundled seed list."""
    reg = SourceRegistry()
    reg.add(SourceKind.FEED, SNEAKERNEWS_URL, "jordan, nike, unc", source_id="src-1")
    reg.add(SourceKind.FEED, HYPEBEAST_URL, "adidas, yeezy", source_id="src-2")
    reg.add(
        SourceKind.ENDPOINT, STOCKX_URL, "", status=SourceStatus.PAUSED, source_id="src-3"
    )
    reg.add(SourceKind.FEED, COMPLEX_URL, "", source_id="src-4")
    return reg


@pytest.fixture
def static_content() -> StaticContentSource:
    """Content source returning the canned text for each seeded location."""
    return StaticContentSource({
        SNEAKERNEWS_URL: JORDAN_CONTENT,
        HYPEBEAST_URL: NEW_BALANCE_CONTENT,
        STOCKX_URL: "StockX price index update.",
        COMPLEX_URL: COMPLEXCON_CONTENT,
    })


@pytest.fixture
def ingestion_config() -> IngestionConfig:
    return IngestionConfig(fetch_timeout_seconds=1.0)


@pytest.fixture
def fetcher(static_content, ingestion_config, mock_metrics) -> Fetcher:
    return Fetcher(static_content, config=ingestion_config, metrics=mock_metrics)


@pytest.fixture
def mock_client() -> MockAnalysisClient:
    return MockAnalysisClient()


@pytest.fixture
def enricher(mock_client, mock_metrics) -> Enricher:
    return Enricher(mock_client, EnrichmentConfig(provider="mock"), metrics=mock_metrics)


@pytest.fixture
def orchestrator(registry, fetcher, enricher, test_settings, mock_metrics) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        registry,
        fetcher,
        enricher,
        settings=test_settings,
        metrics=mock_metrics,
    )
