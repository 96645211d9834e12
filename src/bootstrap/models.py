# src/bootstrap/models.py — v1
"""Bootstrap domain models: Snapshot, SnapshotState, SnapshotIndex, load progress."""

from __future__ import annotations

import base64
from datetime import datetime, timezone

from pydantic import BaseModel, Field

SNAPSHOT_FORMAT_VERSION = "1.0.0"
DEFAULT_THRESHOLDS: tuple[int, ...] = (20, 40, 60, 80, 100)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Snapshot(BaseModel):
    """Index record describing one persisted load-progress snapshot."""

    route_id: str
    percentage: int = Field(ge=1, le=100)
    timestamp: datetime
    size_bytes: int = Field(ge=0)
    module_count: int = Field(ge=0)
    format_version: str = SNAPSHOT_FORMAT_VERSION


class SnapshotState(BaseModel):
    """Serialized load state stored in a snapshot blob.

    ``modules`` maps bundle URL to base64-encoded bundle source, enough to
    re-materialize every module without fetching it again.
    """

    route_id: str
    percentage: int = Field(ge=1, le=100)
    timestamp: datetime = Field(default_factory=_utcnow)
    format_version: str = SNAPSHOT_FORMAT_VERSION
    modules: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_sources(
        cls, route_id: str, percentage: int, sources: dict[str, bytes]
    ) -> SnapshotState:
        return cls(
            route_id=route_id,
            percentage=percentage,
            modules={
                url: base64.b64encode(src).decode("ascii") for url, src in sources.items()
            },
        )

    def sources(self) -> dict[str, bytes]:
        """Decoded bundle sources keyed by URL."""
        return {url: base64.b64decode(data) for url, data in self.modules.items()}


class SnapshotIndex(BaseModel):
    """The ``metadata.json`` document listing snapshots per route."""

    version: str = SNAPSHOT_FORMAT_VERSION
    snapshots: dict[str, list[Snapshot]] = Field(default_factory=dict)


class LoadProgressState(BaseModel):
    """Per-bootstrap progress; mutated monotonically while modules load."""

    total_modules: int = 0
    loaded_modules: int = 0
    remaining_thresholds: list[int] = Field(default_factory=lambda: list(DEFAULT_THRESHOLDS))
    last_cached_threshold: int = 0
    loaded_keys: set[str] = Field(default_factory=set)

    @property
    def progress(self) -> int:
        """Integer percentage of modules loaded (floor)."""
        if self.total_modules <= 0:
            return 0
        return self.loaded_modules * 100 // self.total_modules


class LoadMetrics(BaseModel):
    """Observability counters retained for the life of the process."""

    started_at: datetime = Field(default_factory=_utcnow)
    total_bytes: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    snapshots_created: int = 0
    load_times_ms: list[int] = Field(default_factory=list)
