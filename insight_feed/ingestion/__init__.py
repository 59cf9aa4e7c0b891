"""Ingestion: concurrent retrieval of raw content from monitored sources."""

from insight_feed.ingestion.config import IngestionConfig
from insight_feed.ingestion.content_sources import (
    ContentSource,
    FetchError,
    HTTPContentSource,
    SimulatedContentSource,
    StaticContentSource,
    create_content_source,
)
from insight_feed.ingestion.fetcher import Fetcher
from insight_feed.ingestion.http_client import (
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RetryConfig,
)
from insight_feed.ingestion.schemas import IngestionRecord, IngestionStatus

__all__ = [
    "ContentSource",
    "FetchError",
    "Fetcher",
    "HTTPClient",
    "HTTPClientError",
    "HTTPContentSource",
    "IngestionConfig",
    "IngestionRecord",
    "IngestionStatus",
    "RateLimitError",
    "RetryConfig",
    "SimulatedContentSource",
    "StaticContentSource",
    "create_content_source",
]
