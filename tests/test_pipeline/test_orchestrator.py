"""Tests for the pipeline orchestrator."""

import asyncio

import pytest

from insight_feed.config.settings import Settings
from insight_feed.enrichment.config import EnrichmentConfig
from insight_feed.enrichment.enricher import Enricher
from insight_feed.enrichment.mock_client import MockAnalysisClient
from insight_feed.enrichment.schemas import EnrichmentUnavailableError
from insight_feed.filtering.rules import KeywordFilter
from insight_feed.ingestion.content_sources import StaticContentSource
from insight_feed.ingestion.fetcher import Fetcher
from insight_feed.ingestion.schemas import IngestionStatus
from insight_feed.pipeline.errors import IngestionRequiredError
from insight_feed.pipeline.orchestrator import PipelineOrchestrator
from insight_feed.pipeline.schemas import SENDING_DETAIL, PipelineState, ProcessingStatus
from insight_feed.sources.registry import SourceRegistry
from insight_feed.sources.schemas import SourceKind

SNEAKERNEWS_URL = "https://sneakernews.com/feed/"
HYPEBEAST_URL = "https://hypebeast.com/footwear/feed"
COMPLEX_URL = "https://www.complex.com/sneakers/rss"

JORDAN_CONTENT = (
    "The iconic Nike Air Jordan 1 'UNC Toe' is releasing soon. "
    "This classic sneaker has a fresh colorway."
)
COMPLEXCON_CONTENT = "ComplexCon announces its return with major brand partners."


class GatedClient(MockAnalysisClient):
    """Mock client that blocks each call until the gate opens."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    async def analyze(self, content: str) -> str | None:
        self.entered.set()
        await self.gate.wait()
        return await super().analyze(content)


class UnconfiguredClient(MockAnalysisClient):
    name = "openai"

    @property
    def is_configured(self) -> bool:
        return False


def build(registry, content, client, mock_metrics, dedupe: bool = True) -> PipelineOrchestrator:
    return PipelineOrchestrator(
        registry,
        Fetcher(content, metrics=mock_metrics),
        Enricher(client, EnrichmentConfig(provider="mock"), metrics=mock_metrics),
        settings=Settings(dedupe_insights=dedupe),
        metrics=mock_metrics,
    )


def assert_sorted_desc(state: PipelineState) -> None:
    stamps = [i.ingested_at for i in state.insights]
    assert stamps == sorted(stamps, reverse=True)


class TestIngestionRun:
    """Tests for run_ingestion()."""

    async def test_one_record_per_active_source(self, orchestrator, registry):
        state = await orchestrator.run_ingestion()

        assert len(state.ingestion_log) == len(registry.list_active()) == 3
        assert [r.source_id for r in state.ingestion_log] == ["src-1", "src-2", "src-4"]
        assert state.ingestion_completed
        assert state.last_ingestion_at is not None
        assert not state.ingestion_running

    async def test_failures_recorded(self, registry, mock_metrics):
        content = StaticContentSource({
            SNEAKERNEWS_URL: JORDAN_CONTENT,
            HYPEBEAST_URL: ConnectionError("Simulated network error"),
            COMPLEX_URL: COMPLEXCON_CONTENT,
        })
        orchestrator = build(registry, content, MockAnalysisClient(), mock_metrics)

        state = await orchestrator.run_ingestion()

        assert [r.status for r in state.ingestion_log] == [
            IngestionStatus.SUCCESS,
            IngestionStatus.FAILURE,
            IngestionStatus.SUCCESS,
        ]
        assert state.ingestion_log[1].result == "Simulated network error"

    async def test_no_active_sources(self, mock_metrics):
        orchestrator = build(
            SourceRegistry(), StaticContentSource({}), MockAnalysisClient(), mock_metrics
        )

        state = await orchestrator.run_ingestion()

        assert state.ingestion_log == ()
        assert state.ingestion_completed

    async def test_clears_processing_log_keeps_insights(self, orchestrator):
        await orchestrator.run_ingestion()
        processed = await orchestrator.run_processing()
        assert processed.processing_log
        assert processed.insights

        state = await orchestrator.run_ingestion()

        assert state.processing_log == ()
        assert state.insights == processed.insights

    async def test_snapshot_ignores_later_registry_changes(self, orchestrator, registry):
        state = await orchestrator.run_ingestion()

        registry.add(SourceKind.FEED, "https://new.test")

        assert len(state.ingestion_log) == 3
        assert len(orchestrator.state.ingestion_log) == 3


class TestProcessingRun:
    """Tests for run_processing()."""

    async def test_requires_ingestion(self, orchestrator):
        with pytest.raises(IngestionRequiredError):
            await orchestrator.run_processing()

        assert orchestrator.active_run is None

    async def test_every_record_terminal(self, orchestrator):
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        assert len(state.processing_log) == len(state.successful_ingestions())
        assert all(r.status.is_terminal for r in state.processing_log)
        assert not state.processing_running

    async def test_insight_bijection(self, orchestrator):
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        successes = [r for r in state.processing_log if r.status == ProcessingStatus.SUCCESS]
        assert len(state.insights) == len(successes)
        assert {i.source_id for i in state.insights} == {r.source_id for r in successes}

    async def test_failed_fetches_not_processed(self, registry, mock_metrics):
        content = StaticContentSource({
            SNEAKERNEWS_URL: JORDAN_CONTENT,
            HYPEBEAST_URL: RuntimeError("down"),
            COMPLEX_URL: COMPLEXCON_CONTENT,
        })
        orchestrator = build(registry, content, MockAnalysisClient(), mock_metrics)
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        assert [r.source_id for r in state.processing_log] == ["src-1", "src-4"]

    async def test_keyword_match_succeeds(self, mock_metrics):
        registry = SourceRegistry()
        registry.add(SourceKind.FEED, SNEAKERNEWS_URL, "jordan,nike", source_id="src-a")
        client = MockAnalysisClient()
        orchestrator = build(
            registry, StaticContentSource({SNEAKERNEWS_URL: JORDAN_CONTENT}), client, mock_metrics
        )
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        (record,) = state.processing_log
        assert record.status == ProcessingStatus.SUCCESS
        assert record.detail == "Successfully processed and saved."
        assert client.calls == [JORDAN_CONTENT]
        (insight,) = state.insights
        assert insight.source_location == SNEAKERNEWS_URL
        assert insight.original_content == JORDAN_CONTENT
        assert insight.analysis.sentiment == "Positive"
        assert "Nike Air Jordan 1" in insight.analysis.entities

    async def test_no_keyword_match_skipped(self, mock_metrics):
        registry = SourceRegistry()
        registry.add(SourceKind.FEED, COMPLEX_URL, "adidas,yeezy", source_id="src-b")
        client = MockAnalysisClient()
        orchestrator = build(
            registry, StaticContentSource({COMPLEX_URL: COMPLEXCON_CONTENT}), client, mock_metrics
        )
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        (record,) = state.processing_log
        assert record.status == ProcessingStatus.SKIPPED
        assert record.detail == "No matching keywords found (adidas,yeezy)."
        assert client.calls == []
        assert state.insights == ()

    async def test_malformed_response_fails_item_only(
        self, registry, static_content, mock_metrics
    ):
        client = MockAnalysisClient(malformed_markers=["UNC Toe"])
        orchestrator = build(registry, static_content, client, mock_metrics)
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        by_source = {r.source_id: r for r in state.processing_log}
        assert by_source["src-1"].status == ProcessingStatus.FAILURE
        assert by_source["src-1"].detail.startswith("AI analysis failed: Invalid JSON")
        # Later items still run
        assert by_source["src-4"].status == ProcessingStatus.SUCCESS
        assert [i.source_id for i in state.insights] == ["src-4"]

    async def test_source_removed_before_processing(self, orchestrator, registry):
        await orchestrator.run_ingestion()
        registry.remove("src-1")

        state = await orchestrator.run_processing()

        by_source = {r.source_id: r for r in state.processing_log}
        assert by_source["src-1"].status == ProcessingStatus.FAILURE
        assert by_source["src-1"].detail == "Source configuration not found."
        assert "src-1" not in {i.source_id for i in state.insights}
        assert by_source["src-4"].status == ProcessingStatus.SUCCESS

    async def test_second_trigger_rejected(
        self, registry, static_content, mock_metrics
    ):
        client = GatedClient()
        orchestrator = build(registry, static_content, client, mock_metrics)
        await orchestrator.run_ingestion()

        first = asyncio.create_task(orchestrator.run_processing())
        await client.entered.wait()

        assert await orchestrator.run_processing() is None
        assert await orchestrator.run_ingestion() is None
        mock_metrics.record_rejected_run.assert_any_call("processing")
        mock_metrics.record_rejected_run.assert_any_call("ingestion")

        client.gate.set()
        state = await first

        # Only the first run's items: src-1 and src-4 enriched, src-2 skipped
        assert len(state.processing_log) == 3
        assert [r.source_id for r in state.processing_log] == ["src-1", "src-2", "src-4"]
        assert orchestrator.active_run is None

    async def test_processing_rejected_during_ingestion(self, registry, mock_metrics):
        content = StaticContentSource({}, default="nike", delay=0.05)
        orchestrator = build(registry, content, MockAnalysisClient(), mock_metrics)
        await orchestrator.run_ingestion()

        ingestion = asyncio.create_task(orchestrator.run_ingestion())
        await asyncio.sleep(0)

        assert orchestrator.active_run == "ingestion"
        assert await orchestrator.run_processing() is None
        await ingestion

    async def test_insights_sorted_desc(self, registry, static_content, mock_metrics):
        orchestrator = build(registry, static_content, MockAnalysisClient(), mock_metrics, dedupe=False)

        for _ in range(3):
            await orchestrator.run_ingestion()
            state = await orchestrator.run_processing()
            assert_sorted_desc(state)

        assert len(state.insights) == 6

    async def test_insight_ids_unique(self, orchestrator):
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        ids = [i.id for i in state.insights]
        assert len(ids) == len(set(ids))


class TestDuplicatePolicy:
    """Re-processing the same ingestion log."""

    async def test_dedupe_skips_known_content(self, orchestrator):
        await orchestrator.run_ingestion()
        first = await orchestrator.run_processing()

        second = await orchestrator.run_processing()

        assert second.insights == first.insights
        skipped = [
            r for r in second.processing_log if r.detail.startswith("Already processed")
        ]
        assert len(skipped) == len(first.insights)
        known_ids = {i.id for i in first.insights}
        for record in skipped:
            assert record.status == ProcessingStatus.SKIPPED
            assert record.detail.removeprefix("Already processed (insight ").rstrip(").") in known_ids

    async def test_dedupe_does_not_call_enricher(self, registry, static_content, mock_metrics):
        client = MockAnalysisClient()
        orchestrator = build(registry, static_content, client, mock_metrics)
        await orchestrator.run_ingestion()
        await orchestrator.run_processing()
        calls = len(client.calls)

        await orchestrator.run_processing()

        assert len(client.calls) == calls

    async def test_without_dedupe_insights_accumulate(
        self, registry, static_content, mock_metrics
    ):
        orchestrator = build(registry, static_content, MockAnalysisClient(), mock_metrics, dedupe=False)
        await orchestrator.run_ingestion()
        first = await orchestrator.run_processing()

        second = await orchestrator.run_processing()

        assert len(second.insights) == 2 * len(first.insights)


class TestPreconditions:
    async def test_unavailable_enricher_raises_before_clearing_log(
        self, registry, static_content, mock_metrics
    ):
        orchestrator = build(registry, static_content, MockAnalysisClient(), mock_metrics)
        await orchestrator.run_ingestion()
        processed = await orchestrator.run_processing()

        orchestrator.enricher = Enricher(
            UnconfiguredClient(), EnrichmentConfig(provider="mock"), metrics=mock_metrics
        )
        with pytest.raises(EnrichmentUnavailableError):
            await orchestrator.run_processing()

        assert orchestrator.state.processing_log == processed.processing_log
        assert orchestrator.active_run is None

    async def test_unavailable_enricher_no_records_emitted(self, registry, static_content, mock_metrics):
        orchestrator = build(registry, static_content, UnconfiguredClient(), mock_metrics)
        await orchestrator.run_ingestion()
        seen: list[PipelineState] = []
        orchestrator.subscribe(seen.append)

        with pytest.raises(EnrichmentUnavailableError):
            await orchestrator.run_processing()

        assert seen == []


class TestSubscribers:
    async def test_listener_sees_every_update(self, orchestrator):
        seen: list[PipelineState] = []
        orchestrator.subscribe(seen.append)

        await orchestrator.run_ingestion()

        assert seen[0].ingestion_running
        assert seen[0].ingestion_log == ()
        assert seen[-1] is orchestrator.state
        assert seen[-1].ingestion_completed

    async def test_processing_updates_show_progress(self, orchestrator):
        await orchestrator.run_ingestion()
        seen: list[PipelineState] = []
        orchestrator.subscribe(seen.append)

        await orchestrator.run_processing()

        in_flight = [
            s for s in seen
            if any(r.status == ProcessingStatus.PROCESSING for r in s.processing_log)
        ]
        assert in_flight
        # Insights only change once, at the end of the run
        assert len({s.insights for s in seen}) == 2

    async def test_unsubscribe(self, orchestrator):
        seen: list[PipelineState] = []
        unsubscribe = orchestrator.subscribe(seen.append)
        unsubscribe()

        await orchestrator.run_ingestion()

        assert seen == []

    async def test_failing_listener_does_not_break_run(self, orchestrator):
        def broken(state: PipelineState) -> None:
            raise RuntimeError("listener bug")

        orchestrator.subscribe(broken)

        state = await orchestrator.run_ingestion()

        assert state.ingestion_completed


class TestMetrics:
    async def test_runs_and_items_recorded(self, orchestrator, mock_metrics):
        await orchestrator.run_ingestion()
        await orchestrator.run_processing()

        runs = [c.args[0] for c in mock_metrics.record_run.call_args_list]
        assert runs == ["ingestion", "processing"]
        statuses = sorted(c.args[0] for c in mock_metrics.record_item.call_args_list)
        assert statuses == ["skipped", "success", "success"]
        mock_metrics.set_insight_count.assert_called_with(2)


class ScriptedClient(MockAnalysisClient):
    """Mock client that returns a fixed payload for chosen content."""

    def __init__(self, payloads: dict[str, object]) -> None:
        super().__init__()
        self.payloads = payloads

    async def analyze(self, content: str):
        if content in self.payloads:
            self.calls.append(content)
            return self.payloads[content]
        return await super().analyze(content)


class ExplodingFilter(KeywordFilter):
    """Keyword filter that raises for one source."""

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id

    def decide(self, record, source):
        if source.id == self.source_id:
            raise RuntimeError("filter crashed")
        return super().decide(record, source)


class TestItemContainment:
    """A fault in one item never aborts the run or loses earlier insights."""

    def assert_all_terminal(self, state: PipelineState) -> None:
        assert all(r.status.is_terminal for r in state.processing_log)

    async def test_non_text_payload_fails_later_item_only(
        self, registry, static_content, mock_metrics
    ):
        client = ScriptedClient({COMPLEXCON_CONTENT: {"summary": "not a string"}})
        orchestrator = build(registry, static_content, client, mock_metrics)
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        by_source = {r.source_id: r for r in state.processing_log}
        assert by_source["src-1"].status == ProcessingStatus.SUCCESS
        assert by_source["src-4"].status == ProcessingStatus.FAILURE
        assert "Expected a text payload" in by_source["src-4"].detail
        assert [i.source_id for i in state.insights] == ["src-1"]
        self.assert_all_terminal(state)

    @pytest.mark.parametrize(
        "payload",
        [
            pytest.param(
                '{"summary": "x", "sentiment": "Positive", "entities": [], "n": ' + "9" * 5000 + "}",
                id="oversized-integer",
            ),
            pytest.param("[" * 200_000, id="deeply-nested"),
        ],
    )
    async def test_hostile_json_fails_item_only(
        self, registry, static_content, mock_metrics, payload
    ):
        client = ScriptedClient({JORDAN_CONTENT: payload})
        orchestrator = build(registry, static_content, client, mock_metrics)
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        by_source = {r.source_id: r for r in state.processing_log}
        assert by_source["src-1"].status == ProcessingStatus.FAILURE
        assert by_source["src-1"].detail.startswith("AI analysis failed: Invalid JSON")
        assert by_source["src-4"].status == ProcessingStatus.SUCCESS
        assert [i.source_id for i in state.insights] == ["src-4"]
        self.assert_all_terminal(state)

    async def test_unexpected_error_keeps_earlier_insights(
        self, registry, static_content, mock_metrics, test_settings
    ):
        orchestrator = PipelineOrchestrator(
            registry,
            Fetcher(static_content, metrics=mock_metrics),
            Enricher(MockAnalysisClient(), EnrichmentConfig(provider="mock"), metrics=mock_metrics),
            keyword_filter=ExplodingFilter("src-4"),
            settings=test_settings,
            metrics=mock_metrics,
        )
        await orchestrator.run_ingestion()

        state = await orchestrator.run_processing()

        by_source = {r.source_id: r for r in state.processing_log}
        assert by_source["src-1"].status == ProcessingStatus.SUCCESS
        assert by_source["src-4"].status == ProcessingStatus.FAILURE
        assert by_source["src-4"].detail == "AI analysis failed: filter crashed"
        assert [i.source_id for i in state.insights] == ["src-1"]
        assert not state.processing_running
        assert orchestrator.active_run is None
        self.assert_all_terminal(state)

    async def test_detail_shows_enrichment_stage(self, orchestrator):
        await orchestrator.run_ingestion()
        seen: list[PipelineState] = []
        orchestrator.subscribe(seen.append)

        await orchestrator.run_processing()

        details = [
            r.detail
            for s in seen
            for r in s.processing_log
            if r.source_id == "src-1" and r.status == ProcessingStatus.PROCESSING
        ]
        assert SENDING_DETAIL in details
        final = {r.source_id: r for r in orchestrator.state.processing_log}
        assert final["src-1"].detail == "Successfully processed and saved."
