# src/bootstrap/snapshot_store.py — v1
"""Remote record of load-progress snapshots.

Layout on the backing object storage::

    <prefix>/metadata.json                       index of snapshots per route
    <prefix>/<route_id>/<percentage>pct.snapshot serialized SnapshotState

Blobs are written before the index so that an index entry never points at a
missing blob. The index update is read-modify-write; concurrent replicas can
lose each other's entries, which only costs a slower cold start.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from edgecache.bootstrap.models import (
    SNAPSHOT_FORMAT_VERSION,
    Snapshot,
    SnapshotIndex,
    SnapshotState,
)
from edgecache.storage.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"


class SnapshotError(Exception):
    """A snapshot blob or the snapshot index is missing or unreadable."""


class SnapshotStore:
    """Snapshot blobs plus their index on a BaseArtifactStore."""

    def __init__(self, backend: BaseArtifactStore, prefix: str = "bytecode-cache") -> None:
        self._backend = backend
        self._prefix = prefix.strip("/")

    def _key(self, *parts: str) -> str:
        return "/".join(p for p in (self._prefix, *parts) if p)

    def blob_key(self, route_id: str, percentage: int) -> str:
        return self._key(route_id.strip("/") or "home", f"{percentage}pct.snapshot")

    async def read_index(self) -> SnapshotIndex:
        """Fetch the index; an absent index is an empty one.

        Raises:
            SnapshotError: If the stored index cannot be parsed.
        """
        raw = await self._backend.get(self._key(METADATA_FILE))
        if raw is None:
            return SnapshotIndex()
        try:
            return SnapshotIndex.model_validate_json(raw)
        except ValidationError as e:
            raise SnapshotError(f"Malformed snapshot index: {e}") from e

    async def list_snapshots(self, route_id: str) -> list[Snapshot]:
        index = await self.read_index()
        return list(index.snapshots.get(route_id, []))

    async def find_best(self, route_id: str) -> Snapshot | None:
        """Snapshot with the highest percentage for the route, if any."""
        snapshots = await self.list_snapshots(route_id)
        if not snapshots:
            logger.info("No snapshots found for %s", route_id)
            return None
        best = max(snapshots, key=lambda s: s.percentage)
        logger.info(
            "Found snapshot for %s: %d%% (%d modules, %.2fMB)",
            route_id, best.percentage, best.module_count, best.size_bytes / 1024 / 1024,
        )
        return best

    async def save(self, route_id: str, percentage: int, sources: dict[str, bytes]) -> Snapshot:
        """Upload a snapshot blob and register it in the index."""
        state = SnapshotState.from_sources(route_id, percentage, sources)
        blob = state.model_dump_json().encode("utf-8")
        await self._backend.put(self.blob_key(route_id, percentage), blob)

        snapshot = Snapshot(
            route_id=route_id,
            percentage=percentage,
            timestamp=state.timestamp,
            size_bytes=len(blob),
            module_count=len(state.modules),
            format_version=state.format_version,
        )

        index = await self.read_index()
        entries = [s for s in index.snapshots.get(route_id, []) if s.percentage != percentage]
        entries.append(snapshot)
        entries.sort(key=lambda s: s.percentage)
        index.snapshots[route_id] = entries
        await self._backend.put(
            self._key(METADATA_FILE), index.model_dump_json(indent=2).encode("utf-8")
        )

        logger.info(
            "Created %d%% snapshot for %s: %.2fMB", percentage, route_id, len(blob) / 1024 / 1024
        )
        return snapshot

    async def load(self, snapshot: Snapshot) -> SnapshotState:
        """Download and validate a snapshot blob.

        Raises:
            SnapshotError: If the blob is missing, malformed, or of an unknown format.
        """
        key = self.blob_key(snapshot.route_id, snapshot.percentage)
        raw = await self._backend.get(key)
        if raw is None:
            raise SnapshotError(f"Snapshot blob missing: {key}")
        try:
            state = SnapshotState.model_validate_json(raw)
        except ValidationError as e:
            raise SnapshotError(f"Malformed snapshot {key}: {e}") from e
        if state.format_version != SNAPSHOT_FORMAT_VERSION:
            raise SnapshotError(
                f"Unsupported snapshot format {state.format_version!r} in {key}"
            )
        return state
