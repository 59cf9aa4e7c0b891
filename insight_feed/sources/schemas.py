"""Data models for the sources module."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class SourceKind(str, Enum):
    """How a monitored source is read."""

    FEED = "feed"
    ENDPOINT = "endpoint"


class SourceStatus(str, Enum):
    """Whether a source takes part in ingestion runs."""

    ACTIVE = "active"
    PAUSED = "paused"


@dataclass
class Source:
    """A monitored source (RSS/Atom feed or JSON endpoint).

    The keyword rule is a comma-separated list of terms. An empty rule
    matches every item fetched from the source.
    """

    id: str
    kind: SourceKind
    location: str
    status: SourceStatus = SourceStatus.ACTIVE
    keyword_rule: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_active(self) -> bool:
        return self.status == SourceStatus.ACTIVE

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.id,
            "kind": self.kind.value,
            "location": self.location,
            "status": self.status.value,
            "keyword_rule": self.keyword_rule,
            "created_at": self.created_at.isoformat(),
        }
