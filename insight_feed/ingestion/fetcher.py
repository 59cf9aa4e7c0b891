"""
Concurrent retrieval of raw content from monitored sources.

The Fetcher is the containment boundary for retrieval faults: whatever the
content source raises, including a stall past the per-fetch timeout, is
turned into a failure IngestionRecord. fetch_all() fans out over all given
sources and waits for every one of them before returning.
"""

import asyncio
import time
from collections.abc import Sequence

import structlog

from insight_feed.ingestion.config import IngestionConfig
from insight_feed.ingestion.content_sources import (
    ContentSource,
    FetchError,
    create_content_source,
)
from insight_feed.ingestion.schemas import IngestionRecord, IngestionStatus
from insight_feed.observability.metrics import MetricsCollector, get_metrics
from insight_feed.sources.schemas import Source

logger = structlog.get_logger(__name__)


def describe_error(error: BaseException) -> str:
    """Render an exception as a one-line log detail."""
    message = str(error).strip()
    if not message:
        return type(error).__name__
    return message


class Fetcher:
    """
    Retrieves raw content for sources through a ContentSource.

    Usage:
        fetcher = Fetcher(SimulatedContentSource())
        records = await fetcher.fetch_all(registry.list_active())
    """

    def __init__(
        self,
        content_source: ContentSource | None = None,
        config: IngestionConfig | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self.config = config or IngestionConfig()
        self.content_source = content_source or create_content_source(config=self.config)
        self._metrics = metrics

    @property
    def metrics(self) -> MetricsCollector:
        if self._metrics is None:
            self._metrics = get_metrics()
        return self._metrics

    async def fetch(self, source: Source) -> IngestionRecord:
        """
        Fetch one source. Never raises; always returns exactly one record.
        """
        timeout = self.config.fetch_timeout_seconds
        start = time.perf_counter()

        try:
            content = await asyncio.wait_for(
                self.content_source.fetch(source.location),
                timeout=timeout,
            )
            if not isinstance(content, str):
                raise FetchError(
                    f"Content source returned {type(content).__name__}, expected text"
                )
        except asyncio.TimeoutError:
            status = IngestionStatus.FAILURE
            result = f"Fetch timed out after {timeout:g}s"
        except Exception as e:
            status = IngestionStatus.FAILURE
            result = describe_error(e)
        else:
            status = IngestionStatus.SUCCESS
            result = content

        elapsed = time.perf_counter() - start
        self.metrics.record_fetch(kind=source.kind.value, status=status.value, latency=elapsed)

        if status == IngestionStatus.SUCCESS:
            logger.debug(
                "Source fetched",
                source_id=source.id,
                location=source.location,
                chars=len(result),
                elapsed=round(elapsed, 3),
            )
        else:
            logger.warning(
                "Source fetch failed",
                source_id=source.id,
                location=source.location,
                error=result,
            )

        return IngestionRecord(
            source_id=source.id,
            source_location=source.location,
            status=status,
            result=result,
            elapsed_seconds=elapsed,
        )

    async def fetch_all(self, sources: Sequence[Source]) -> list[IngestionRecord]:
        """
        Fetch all sources concurrently.

        Returns one record per source, in the same order as `sources`, once
        every fetch has resolved.
        """
        if not sources:
            return []

        records = await asyncio.gather(*(self.fetch(source) for source in sources))

        succeeded = sum(1 for r in records if r.ok)
        logger.info(
            "Fetched sources",
            total=len(records),
            succeeded=succeeded,
            failed=len(records) - succeeded,
        )
        return list(records)
