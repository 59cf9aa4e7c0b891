"""
Command-line interface for insight-feed.

Usage:
    insight-feed sources          # List monitored sources
    insight-feed ingest           # Run one ingestion run and print the log
    insight-feed run --mock-ai    # Ingest, process and print insights
"""

import asyncio
import json
from pathlib import Path

import click

from insight_feed.config.settings import get_settings
from insight_feed.enrichment.config import EnrichmentConfig
from insight_feed.enrichment.schemas import EnrichmentUnavailableError
from insight_feed.ingestion.schemas import IngestionRecord
from insight_feed.observability.logging import setup_logging
from insight_feed.observability.metrics import get_metrics
from insight_feed.pipeline.orchestrator import PipelineOrchestrator
from insight_feed.pipeline.schemas import Insight, PipelineState, ProcessingStatus
from insight_feed.sources.config import SourcesConfig
from insight_feed.sources.registry import SourceRegistry

STATUS_COLORS = {
    "success": "green",
    "failure": "red",
    "skipped": "yellow",
    "processing": "blue",
    "active": "green",
    "paused": "yellow",
}


def _styled_status(status: str) -> str:
    return click.style(status.upper(), fg=STATUS_COLORS.get(status, "white"))


def _echo_ingestion_log(records: tuple[IngestionRecord, ...]) -> None:
    click.echo("\nIngestion Log:")
    click.echo("-" * 60)
    if not records:
        click.echo("  (no active sources)")
    for record in records:
        click.echo(f"  {_styled_status(record.status.value)} {record.source_location}")
        click.echo(f"      {record.result}")


def _echo_processing_log(state: PipelineState) -> None:
    click.echo("\nProcessing Log:")
    click.echo("-" * 60)
    if not state.processing_log:
        click.echo("  (nothing to process)")
    for record in state.processing_log:
        click.echo(f"  {_styled_status(record.status.value)} {record.source_location}")
        click.echo(f"      {record.detail}")

    counts = state.processing_counts()
    summary = ", ".join(
        f"{counts[s.value]} {s.value}"
        for s in (ProcessingStatus.SUCCESS, ProcessingStatus.SKIPPED, ProcessingStatus.FAILURE)
    )
    click.echo(f"  Totals: {summary}")


def _echo_insights(insights: tuple[Insight, ...]) -> None:
    click.echo("\nInsights:")
    click.echo("-" * 60)
    if not insights:
        click.echo("  (no insights yet)")
    for insight in insights:
        analysis = insight.analysis
        click.echo(f"  [{analysis.sentiment}] {analysis.summary}")
        click.echo(f"      source: {insight.source_location}")
        if analysis.entities:
            click.echo(f"      entities: {', '.join(analysis.entities)}")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Insight Feed - monitor sources, filter by keyword, enrich with AI."""
    setup_logging("DEBUG" if debug else None)


@main.command()
@click.option(
    "--seed-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file of sources (defaults to the bundled seed list)",
)
def sources(seed_file: Path | None) -> None:
    """List the monitored sources."""
    config = SourcesConfig(seed_file=seed_file) if seed_file else SourcesConfig()
    registry = SourceRegistry.from_config(config)

    click.echo(f"\nSources ({len(registry)}):")
    click.echo("-" * 60)
    for source in registry.list_all():
        rule = source.keyword_rule or "(match all)"
        click.echo(
            f"  {source.id:<8} {_styled_status(source.status.value):<8} "
            f"{source.kind.value:<8} {source.location}"
        )
        click.echo(f"      keywords: {rule}")


@main.command()
@click.option("--live", is_flag=True, help="Fetch over HTTP instead of simulated content")
def ingest(live: bool) -> None:
    """Run one ingestion run and print the ingestion log."""

    async def run() -> PipelineState | None:
        orchestrator = PipelineOrchestrator.from_config(live=live)
        try:
            return await orchestrator.run_ingestion()
        finally:
            await orchestrator.enricher.close()

    state = asyncio.run(run())
    if state is not None:
        _echo_ingestion_log(state.ingestion_log)


@main.command()
@click.option("--live", is_flag=True, help="Fetch over HTTP instead of simulated content")
@click.option("--mock-ai", is_flag=True, help="Use the offline mock analysis client")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    default=None,
    help="Write insights as JSON to this file",
)
@click.option("--metrics/--no-metrics", default=None, help="Expose Prometheus metrics")
def run(live: bool, mock_ai: bool, output: Path | None, metrics: bool | None) -> None:
    """Ingest all active sources, then filter and enrich the results."""
    metrics_enabled = get_settings().metrics_enabled if metrics is None else metrics
    if metrics_enabled:
        get_metrics().start_server()

    enrichment_config = EnrichmentConfig(provider="mock") if mock_ai else EnrichmentConfig()

    async def run_pipeline() -> PipelineState | None:
        orchestrator = PipelineOrchestrator.from_config(
            live=live,
            enrichment_config=enrichment_config,
        )
        try:
            await orchestrator.run_ingestion()
            return await orchestrator.run_processing()
        finally:
            await orchestrator.enricher.close()

    try:
        state = asyncio.run(run_pipeline())
    except EnrichmentUnavailableError as e:
        raise click.ClickException(
            f"{e}. Set the provider API key or pass --mock-ai."
        ) from e

    if state is None:
        return

    _echo_ingestion_log(state.ingestion_log)
    _echo_processing_log(state)
    _echo_insights(state.insights)

    if output is not None:
        payload = [insight.model_dump(mode="json") for insight in state.insights]
        output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        click.echo(f"\nWrote {len(payload)} insights to {output}")


if __name__ == "__main__":
    main()
