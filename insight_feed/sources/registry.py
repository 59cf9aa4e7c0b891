"""In-memory registry of monitored sources with seed file support."""

import json
import uuid
from pathlib import Path

import structlog

from insight_feed.sources.config import SourcesConfig
from insight_feed.sources.schemas import Source, SourceKind, SourceStatus

logger = structlog.get_logger(__name__)


class InvalidSourceError(ValueError):
    """Raised when a source definition is rejected by the registry."""


def _new_source_id() -> str:
    return f"src-{uuid.uuid4().hex[:12]}"


def _parse_seed_entry(entry: dict) -> dict:
    """Convert a JSON seed entry to keyword arguments for SourceRegistry.add()."""
    if not isinstance(entry, dict):
        raise InvalidSourceError(f"Invalid seed entry {entry!r}: expected an object")
    try:
        return {
            "kind": SourceKind(entry.get("kind", SourceKind.FEED.value)),
            "location": entry["location"],
            "keyword_rule": entry.get("keyword_rule", ""),
            "status": SourceStatus(entry.get("status", SourceStatus.ACTIVE.value)),
            "source_id": entry.get("id"),
        }
    except (KeyError, ValueError) as e:
        raise InvalidSourceError(f"Invalid seed entry {entry!r}: {e}") from e


class SourceRegistry:
    """Owns the set of monitored sources.

    Sources are kept in insertion order. The registry is the only writer;
    callers get Source objects back but should treat them as read-only and
    go through toggle_status()/remove() for changes.

    Usage:
        registry = SourceRegistry()
        source = registry.add(SourceKind.FEED, "https://sneakernews.com/feed/", "jordan, nike")
        registry.toggle_status(source.id)
        active = registry.list_active()
    """

    def __init__(self) -> None:
        self._sources: dict[str, Source] = {}

    @classmethod
    def from_seed_file(cls, path: Path | str) -> "SourceRegistry":
        """Build a registry pre-populated from a JSON seed file."""
        registry = cls()
        registry.load_seed(path)
        return registry

    @classmethod
    def from_config(cls, config: SourcesConfig | None = None) -> "SourceRegistry":
        """Build a registry according to SourcesConfig."""
        config = config or SourcesConfig()
        if config.seed_on_init:
            return cls.from_seed_file(config.seed_file)
        return cls()

    def load_seed(self, path: Path | str) -> int:
        """Add every source listed in a JSON seed file.

        Returns the number of sources added. Nothing is added if any entry
        is invalid.

        Raises:
            InvalidSourceError: If the file or any entry is invalid.
        """
        path = Path(path)
        with path.open("r", encoding="utf-8") as handle:
            entries = json.load(handle)

        if not isinstance(entries, list):
            raise InvalidSourceError(f"Seed file {path} must contain a JSON list")

        sources = [self._build(**_parse_seed_entry(entry)) for entry in entries]
        seen: set[str] = set()
        for source in sources:
            if source.id in seen:
                raise InvalidSourceError(f"Duplicate source id: {source.id}")
            seen.add(source.id)

        for source in sources:
            self._insert(source)

        logger.info("Seeded sources", path=str(path), count=len(entries))
        return len(entries)

    def add(
        self,
        kind: SourceKind | str,
        location: str,
        keyword_rule: str = "",
        status: SourceStatus | str = SourceStatus.ACTIVE,
        source_id: str | None = None,
    ) -> Source:
        """Register a new source and return it.

        Raises:
            InvalidSourceError: If the location is empty or the id is taken.
        """
        source = self._build(kind, location, keyword_rule, status, source_id)
        self._insert(source)
        return source

    def _build(
        self,
        kind: SourceKind | str,
        location: str,
        keyword_rule: str = "",
        status: SourceStatus | str = SourceStatus.ACTIVE,
        source_id: str | None = None,
    ) -> Source:
        if not location or not location.strip():
            raise InvalidSourceError("Source location cannot be empty")

        source_id = source_id or _new_source_id()
        if source_id in self._sources:
            raise InvalidSourceError(f"Duplicate source id: {source_id}")

        return Source(
            id=source_id,
            kind=SourceKind(kind),
            location=location.strip(),
            status=SourceStatus(status),
            keyword_rule=keyword_rule or "",
        )

    def _insert(self, source: Source) -> None:
        self._sources[source.id] = source
        logger.debug("Source added", source_id=source.id, location=source.location)

    def toggle_status(self, source_id: str) -> Source | None:
        """Flip a source between active and paused. No-op for unknown ids."""
        source = self._sources.get(source_id)
        if source is None:
            return None

        source.status = (
            SourceStatus.PAUSED if source.status == SourceStatus.ACTIVE else SourceStatus.ACTIVE
        )
        logger.info("Source status toggled", source_id=source_id, status=source.status.value)
        return source

    def remove(self, source_id: str) -> bool:
        """Delete a source. Returns True if it existed."""
        removed = self._sources.pop(source_id, None)
        if removed is not None:
            logger.info("Source removed", source_id=source_id)
        return removed is not None

    def get(self, source_id: str) -> Source | None:
        return self._sources.get(source_id)

    def list_all(self) -> list[Source]:
        return list(self._sources.values())

    def list_active(self) -> list[Source]:
        """Return active sources in insertion order."""
        return [s for s in self._sources.values() if s.is_active]

    def __len__(self) -> int:
        return len(self._sources)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources
