"""Pipeline orchestration: ingestion runs, processing runs and the insight feed."""

from insight_feed.pipeline.errors import (
    IngestionRequiredError,
    InvalidTransitionError,
    PipelineError,
)
from insight_feed.pipeline.orchestrator import PipelineOrchestrator
from insight_feed.pipeline.schemas import (
    Insight,
    PipelineState,
    ProcessingRecord,
    ProcessingStatus,
    content_fingerprint,
)

__all__ = [
    "IngestionRequiredError",
    "Insight",
    "InvalidTransitionError",
    "PipelineError",
    "PipelineOrchestrator",
    "PipelineState",
    "ProcessingRecord",
    "ProcessingStatus",
    "content_fingerprint",
]
