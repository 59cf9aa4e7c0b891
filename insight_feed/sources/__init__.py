"""Sources: the registry of monitored feeds and endpoints."""

from insight_feed.sources.config import SourcesConfig
from insight_feed.sources.registry import InvalidSourceError, SourceRegistry
from insight_feed.sources.schemas import Source, SourceKind, SourceStatus

__all__ = [
    "InvalidSourceError",
    "Source",
    "SourceKind",
    "SourceRegistry",
    "SourceStatus",
    "SourcesConfig",
]
