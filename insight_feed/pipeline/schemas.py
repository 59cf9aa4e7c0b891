"""
Pipeline records, insights and state snapshots.

ProcessingRecord status follows a small state machine:

    processing -> skipped | success | failure

Terminal statuses never change. PipelineState is an immutable snapshot;
the orchestrator replaces it wholesale on every update.
"""

import hashlib
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from insight_feed.enrichment.schemas import AnalysisResult
from insight_feed.ingestion.schemas import IngestionRecord
from insight_feed.pipeline.errors import InvalidTransitionError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def content_fingerprint(content: str) -> str:
    """Stable hash of content, insensitive to surrounding and repeated whitespace."""
    normalized = " ".join(content.split())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


class ProcessingStatus(str, Enum):
    PROCESSING = "processing"
    SKIPPED = "skipped"
    SUCCESS = "success"
    FAILURE = "failure"

    @property
    def is_terminal(self) -> bool:
        return self != ProcessingStatus.PROCESSING


ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.PROCESSING: frozenset({
        ProcessingStatus.SKIPPED,
        ProcessingStatus.SUCCESS,
        ProcessingStatus.FAILURE,
    }),
    ProcessingStatus.SKIPPED: frozenset(),
    ProcessingStatus.SUCCESS: frozenset(),
    ProcessingStatus.FAILURE: frozenset(),
}

STARTING_DETAIL = "Starting analysis..."
SENDING_DETAIL = "Keyword match found. Sending to AI..."


@dataclass(frozen=True)
class ProcessingRecord:
    """Status of one successfully ingested item during a processing run."""

    id: str
    source_id: str
    source_location: str
    status: ProcessingStatus
    detail: str

    @classmethod
    def start(cls, record: IngestionRecord) -> "ProcessingRecord":
        """Create the initial record for an ingested item."""
        return cls(
            id=f"proc-{uuid.uuid4().hex[:12]}",
            source_id=record.source_id,
            source_location=record.source_location,
            status=ProcessingStatus.PROCESSING,
            detail=STARTING_DETAIL,
        )

    def advance(self, status: ProcessingStatus, detail: str) -> "ProcessingRecord":
        """
        Return a copy moved to `status`.

        Raises:
            InvalidTransitionError: If the move is not allowed from the current status.
        """
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(self.status.value, status.value)
        return replace(self, status=status, detail=detail)

    def with_detail(self, detail: str) -> "ProcessingRecord":
        """
        Return a copy with a new in-progress detail.

        Raises:
            InvalidTransitionError: If the record is already terminal.
        """
        if self.status.is_terminal:
            raise InvalidTransitionError(self.status.value, self.status.value)
        return replace(self, detail=detail)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "source_id": self.source_id,
            "source_location": self.source_location,
            "status": self.status.value,
            "detail": self.detail,
        }


class Insight(BaseModel):
    """An enriched item in the insight feed."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"ins-{uuid.uuid4().hex[:12]}")
    source_id: str
    source_location: str
    ingested_at: datetime = Field(default_factory=_utc_now)
    original_content: str
    content_fingerprint: str
    analysis: AnalysisResult

    @classmethod
    def from_record(cls, record: IngestionRecord, analysis: AnalysisResult) -> "Insight":
        return cls(
            source_id=record.source_id,
            source_location=record.source_location,
            original_content=record.result,
            content_fingerprint=content_fingerprint(record.result),
            analysis=analysis,
        )


@dataclass(frozen=True)
class PipelineState:
    """Snapshot of everything the orchestrator exposes to readers."""

    ingestion_log: tuple[IngestionRecord, ...] = ()
    processing_log: tuple[ProcessingRecord, ...] = ()
    insights: tuple[Insight, ...] = ()
    last_ingestion_at: datetime | None = None
    ingestion_completed: bool = False
    ingestion_running: bool = False
    processing_running: bool = False
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def is_running(self) -> bool:
        return self.ingestion_running or self.processing_running

    def successful_ingestions(self) -> list[IngestionRecord]:
        return [r for r in self.ingestion_log if r.ok]

    def processing_counts(self) -> dict[str, int]:
        """Number of processing records per status."""
        counts = {status.value: 0 for status in ProcessingStatus}
        for record in self.processing_log:
            counts[record.status.value] += 1
        return counts
