"""insight-feed: monitored-source ingestion, keyword filtering and AI enrichment."""

__version__ = "0.1.0"
