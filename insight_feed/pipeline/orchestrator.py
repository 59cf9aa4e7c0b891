"""
Pipeline orchestrator - coordinates ingestion and processing runs.

Two independently triggered runs:
- Ingestion: fetch every active source concurrently and replace the
  ingestion log (and clear the processing log) with the results.
- Processing: walk the successful ingestion records one at a time through
  the keyword filter and the enricher, tracking each item in the
  processing log, then merge new insights into the feed.

Only one run may be active at a time; a trigger while another run is in
flight is ignored. Every state change produces a new PipelineState that is
pushed to subscribers.
"""

import time
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone

import structlog

from insight_feed.config.settings import Settings, get_settings
from insight_feed.enrichment.config import EnrichmentConfig
from insight_feed.enrichment.enricher import Enricher
from insight_feed.enrichment.schemas import Ok
from insight_feed.filtering.rules import KeywordFilter
from insight_feed.ingestion.config import IngestionConfig
from insight_feed.ingestion.content_sources import create_content_source
from insight_feed.ingestion.fetcher import Fetcher, describe_error
from insight_feed.ingestion.schemas import IngestionRecord
from insight_feed.observability.logging import bind_context, clear_context
from insight_feed.observability.metrics import MetricsCollector, get_metrics
from insight_feed.pipeline.errors import IngestionRequiredError
from insight_feed.pipeline.schemas import (
    Insight,
    PipelineState,
    ProcessingRecord,
    ProcessingStatus,
    SENDING_DETAIL,
    content_fingerprint,
)
from insight_feed.sources.config import SourcesConfig
from insight_feed.sources.registry import SourceRegistry

logger = structlog.get_logger(__name__)

StateListener = Callable[[PipelineState], None]

SOURCE_NOT_FOUND_DETAIL = "Source configuration not found."
SUCCESS_DETAIL = "Successfully processed and saved."


class PipelineOrchestrator:
    """
    Owns the pipeline state and runs ingestion and processing.

    Usage:
        orchestrator = PipelineOrchestrator(registry, Fetcher(), Enricher.from_config())
        orchestrator.subscribe(lambda state: print(state.processing_counts()))
        await orchestrator.run_ingestion()
        state = await orchestrator.run_processing()
    """

    def __init__(
        self,
        registry: SourceRegistry,
        fetcher: Fetcher,
        enricher: Enricher,
        keyword_filter: KeywordFilter | None = None,
        settings: Settings | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Source registry to read active sources from
            fetcher: Fetcher used for ingestion runs
            enricher: Enricher used for processing runs
            keyword_filter: Keyword filter (default KeywordFilter())
            settings: Application settings (default get_settings())
            metrics: Metrics collector (default global collector)
        """
        self.registry = registry
        self.fetcher = fetcher
        self.enricher = enricher
        self.keyword_filter = keyword_filter or KeywordFilter()
        self._settings = settings or get_settings()
        self._metrics = metrics or get_metrics()

        self._state = PipelineState()
        self._listeners: list[StateListener] = []
        self._active_run: str | None = None

    @classmethod
    def from_config(
        cls,
        live: bool = False,
        sources_config: SourcesConfig | None = None,
        ingestion_config: IngestionConfig | None = None,
        enrichment_config: EnrichmentConfig | None = None,
    ) -> "PipelineOrchestrator":
        """
        Build an orchestrator from module configs.

        Args:
            live: Fetch over HTTP instead of using the simulated content source
        """
        ingestion_config = ingestion_config or IngestionConfig()
        registry = SourceRegistry.from_config(sources_config)
        fetcher = Fetcher(
            create_content_source(live=live, config=ingestion_config),
            config=ingestion_config,
        )
        enricher = Enricher.from_config(enrichment_config)
        return cls(registry, fetcher, enricher)

    @property
    def state(self) -> PipelineState:
        """Current state snapshot."""
        return self._state

    @property
    def active_run(self) -> str | None:
        """Name of the run in flight ("ingestion" / "processing"), if any."""
        return self._active_run

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a callback invoked with every new PipelineState.

        Returns:
            A function that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Runs

    async def run_ingestion(self) -> PipelineState | None:
        """
        Fetch all active sources and replace the ingestion log.

        Returns:
            The resulting state, or None if another run was active.
        """
        if not self._acquire("ingestion"):
            return None

        run_id = uuid.uuid4().hex[:8]
        bind_context(run="ingestion", run_id=run_id)
        start = time.perf_counter()
        try:
            self._update(
                ingestion_log=(),
                processing_log=(),
                last_ingestion_at=None,
                ingestion_running=True,
            )

            sources = self.registry.list_active()
            logger.info("Ingestion run started", sources=len(sources))

            records = await self.fetcher.fetch_all(sources)

            self._update(
                ingestion_log=tuple(records),
                last_ingestion_at=datetime.now(timezone.utc),
                ingestion_completed=True,
                ingestion_running=False,
            )

            succeeded = sum(1 for r in records if r.ok)
            logger.info(
                "Ingestion run completed",
                total=len(records),
                succeeded=succeeded,
                failed=len(records) - succeeded,
            )
            return self._state
        finally:
            if self._state.ingestion_running:
                self._update(ingestion_running=False)
            self._metrics.record_run("ingestion", time.perf_counter() - start)
            self._release()
            clear_context()

    async def run_processing(self) -> PipelineState | None:
        """
        Filter and enrich every successfully ingested item.

        Returns:
            The resulting state, or None if another run was active.

        Raises:
            IngestionRequiredError: If no ingestion run has completed yet.
            EnrichmentUnavailableError: If the enricher is not configured.
        """
        if self._active_run is not None:
            self._reject("processing")
            return None

        if not self._state.ingestion_completed:
            raise IngestionRequiredError()
        self.enricher.ensure_available()

        self._acquire("processing")
        run_id = uuid.uuid4().hex[:8]
        bind_context(run="processing", run_id=run_id)
        start = time.perf_counter()
        try:
            self._update(processing_log=(), processing_running=True)

            items = self._state.successful_ingestions()
            logger.info("Processing run started", items=len(items))

            known: dict[tuple[str, str], Insight] = {}
            if self._settings.dedupe_insights:
                known = {
                    (i.source_location, i.content_fingerprint): i for i in self._state.insights
                }

            staged: list[Insight] = []
            for record in items:
                insight = await self._process_item(record, known)
                if insight is not None:
                    staged.append(insight)
                    known[(insight.source_location, insight.content_fingerprint)] = insight

            merged = sorted(
                self._state.insights + tuple(staged),
                key=lambda i: i.ingested_at,
                reverse=True,
            )
            self._update(insights=tuple(merged), processing_running=False)
            self._metrics.set_insight_count(len(merged))

            logger.info(
                "Processing run completed",
                new_insights=len(staged),
                total_insights=len(merged),
                **self._state.processing_counts(),
            )
            return self._state
        finally:
            if self._state.processing_running:
                self._update(processing_running=False)
            self._metrics.record_run("processing", time.perf_counter() - start)
            self._release()
            clear_context()

    # Per-item processing

    async def _process_item(
        self,
        record: IngestionRecord,
        known: dict[tuple[str, str], Insight],
    ) -> Insight | None:
        """Run one item through filter and enricher. Returns the new insight on success."""
        entry = ProcessingRecord.start(record)
        self._update(processing_log=self._state.processing_log + (entry,))

        try:
            return await self._evaluate_item(entry, record, known)
        except Exception as e:
            logger.exception("Item processing failed", source_id=record.source_id)
            current = self._record(entry.id)
            if current is not None and not current.status.is_terminal:
                self._finish(entry, ProcessingStatus.FAILURE, f"AI analysis failed: {describe_error(e)}")
            return None

    async def _evaluate_item(
        self,
        entry: ProcessingRecord,
        record: IngestionRecord,
        known: dict[tuple[str, str], Insight],
    ) -> Insight | None:
        source = self.registry.get(record.source_id)
        if source is None:
            self._finish(entry, ProcessingStatus.FAILURE, SOURCE_NOT_FOUND_DETAIL)
            return None

        decision = self.keyword_filter.decide(record, source)
        if not decision.passed:
            self._finish(
                entry,
                ProcessingStatus.SKIPPED,
                f"No matching keywords found ({source.keyword_rule}).",
            )
            return None

        existing = known.get((record.source_location, content_fingerprint(record.result)))
        if existing is not None:
            self._finish(
                entry,
                ProcessingStatus.SKIPPED,
                f"Already processed (insight {existing.id}).",
            )
            return None

        self._replace_record(self._record(entry.id).with_detail(SENDING_DETAIL))
        outcome = await self.enricher.try_enrich(record.result)
        if isinstance(outcome, Ok):
            insight = Insight.from_record(record, outcome.value)
            self._finish(entry, ProcessingStatus.SUCCESS, SUCCESS_DETAIL)
            return insight

        self._finish(entry, ProcessingStatus.FAILURE, f"AI analysis failed: {outcome.error.cause}")
        return None

    def _record(self, record_id: str) -> ProcessingRecord | None:
        for r in self._state.processing_log:
            if r.id == record_id:
                return r
        return None

    def _replace_record(self, updated: ProcessingRecord) -> None:
        log = tuple(updated if r.id == updated.id else r for r in self._state.processing_log)
        self._update(processing_log=log)

    def _finish(self, entry: ProcessingRecord, status: ProcessingStatus, detail: str) -> None:
        current = self._record(entry.id) or entry
        self._replace_record(current.advance(status, detail))
        self._metrics.record_item(status.value)
        logger.debug(
            "Item processed",
            source_id=entry.source_id,
            status=status.value,
            detail=detail,
        )

    # State handling

    def _acquire(self, run: str) -> bool:
        if self._active_run is not None:
            self._reject(run)
            return False
        self._active_run = run
        return True

    def _release(self) -> None:
        self._active_run = None

    def _reject(self, run: str) -> None:
        logger.warning("Run trigger ignored", requested=run, active=self._active_run)
        self._metrics.record_rejected_run(run)

    def _update(self, **changes) -> None:
        self._state = replace(self._state, updated_at=datetime.now(timezone.utc), **changes)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                logger.exception("State listener failed", listener=repr(listener))
