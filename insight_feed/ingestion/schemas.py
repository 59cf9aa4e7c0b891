"""Ingestion log records."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class IngestionStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class IngestionRecord:
    """Outcome of fetching one source during one ingestion run.

    The record is a snapshot: source_id refers to the source as it existed
    at dispatch time and may no longer be present in the registry.
    `result` holds the raw text on success and an error description on
    failure.
    """

    source_id: str
    source_location: str
    status: IngestionStatus
    result: str
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == IngestionStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "source_location": self.source_location,
            "status": self.status.value,
            "result": self.result,
            "fetched_at": self.fetched_at.isoformat(),
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }
