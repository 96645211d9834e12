# src/bootstrap/load_monitor.py — v1
"""Progressive load monitor: drive bundle loading and snapshot progress.

Per bootstrap attempt the monitor starts from a fresh LoadProgressState
(Init) or seeds it from the best stored snapshot (Restore), then loads the
requested bundles one by one. Each time the integer progress reaches the
next threshold, that threshold is popped and, if it is above the last one
cached, a snapshot of the loaded bundle sources is written. Snapshots are
an optimization only: failures are logged and loading continues.

With a poll interval configured, each threshold crossing is queued with the
sources loaded at that moment and a background PeriodicTask writes the
snapshots off the load path; ``aclose()`` stops it and flushes whatever is
still queued.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Iterable

from edgecache.bootstrap.models import DEFAULT_THRESHOLDS, LoadMetrics, LoadProgressState
from edgecache.bootstrap.module_loader import ModuleLoader, ModuleLoadError, normalize_url
from edgecache.bootstrap.poller import PeriodicTask
from edgecache.bootstrap.snapshot_store import SnapshotStore

if TYPE_CHECKING:
    from edgecache.bootstrap.metrics import BootstrapMetrics

logger = logging.getLogger(__name__)


class ProgressiveLoadMonitor:
    """Tracks bundle loading progress and snapshots it at fixed thresholds."""

    def __init__(
        self,
        loader: ModuleLoader,
        snapshot_store: SnapshotStore | None,
        *,
        route_id: str,
        thresholds: Iterable[int] = DEFAULT_THRESHOLDS,
        snapshot_poll_interval_s: float = 0.0,
        cache_metrics: BootstrapMetrics | None = None,
    ) -> None:
        self._loader = loader
        self._snapshots = snapshot_store
        self._route_id = route_id
        self._state = LoadProgressState(remaining_thresholds=sorted(set(thresholds)))
        self._restored: set[str] = set()
        self._pending: list[tuple[int, dict[str, bytes]]] = []
        self._snapshot_lock = asyncio.Lock()
        self._flush_lock = asyncio.Lock()
        self._poller = (
            PeriodicTask(self.flush_snapshots, snapshot_poll_interval_s, name="snapshot-poller")
            if snapshot_poll_interval_s > 0
            else None
        )
        self.metrics = LoadMetrics()
        self.cache_metrics = cache_metrics

    @property
    def state(self) -> LoadProgressState:
        return self._state

    @property
    def progress(self) -> int:
        return self._state.progress

    @property
    def pending_snapshots(self) -> list[int]:
        return [threshold for threshold, _ in self._pending]

    @property
    def is_terminal(self) -> bool:
        state = self._state
        return not state.remaining_thresholds or (
            state.total_modules > 0 and state.loaded_modules >= state.total_modules
        )

    async def restore(self) -> int | None:
        """Seed state from the highest stored snapshot for this route.

        Returns the restored percentage, or None when no usable snapshot
        exists or the store is unreachable (normal loading then starts from
        scratch).
        """
        if self._snapshots is None:
            return None
        try:
            best = await self._snapshots.find_best(self._route_id)
            if best is None:
                return None
            snapshot_state = await self._snapshots.load(best)
        except Exception as e:
            logger.warning("Snapshot restore failed for %s, doing a full load: %s", self._route_id, e)
            return None

        self._loader.seed(snapshot_state.sources())
        self._restored = {
            key
            for key in (normalize_url(u) for u in snapshot_state.modules)
            if self._loader.is_loaded(key)
        }

        percentage = snapshot_state.percentage
        state = self._state
        state.remaining_thresholds = [t for t in state.remaining_thresholds if t > percentage]
        state.last_cached_threshold = max(state.last_cached_threshold, percentage)
        logger.info(
            "Restored %d modules from %d%% snapshot for %s",
            len(self._restored), percentage, self._route_id,
        )
        return percentage

    async def load_with_progress(self, urls: Iterable[str]) -> None:
        """Load every bundle in ``urls`` in order, snapshotting at thresholds.

        Raises:
            ModuleLoadError: If a required bundle cannot be loaded.
        """
        state = self._state
        keys: list[str] = []
        for url in urls:
            key = normalize_url(url)
            if key not in state.loaded_keys and key not in keys:
                keys.append(key)
        state.total_modules += len(keys)
        logger.info("Loading %d modules (total: %d)", len(keys), state.total_modules)

        if self._poller is not None:
            self._poller.start()

        for key in keys:
            if key in self._restored:
                self.metrics.cache_hits += 1
            else:
                start = time.perf_counter()
                try:
                    await self._loader.load(key)
                except ModuleLoadError:
                    self.metrics.cache_misses += 1
                    raise
                self.metrics.load_times_ms.append(int((time.perf_counter() - start) * 1000))
                loaded = self._loader.get(key)
                if loaded is not None:
                    self.metrics.total_bytes += len(loaded.source)

            state.loaded_modules += 1
            state.loaded_keys.add(key)
            await self._check_thresholds()

    async def _check_thresholds(self) -> None:
        state = self._state
        progress = state.progress
        while state.remaining_thresholds and progress >= state.remaining_thresholds[0]:
            threshold = state.remaining_thresholds.pop(0)
            if threshold <= state.last_cached_threshold:
                continue
            state.last_cached_threshold = threshold
            logger.info("%d%% modules loaded, creating snapshot", threshold)
            sources = self._loader.export_sources()
            if self._poller is not None:
                self._pending.append((threshold, sources))
            else:
                await self._create_snapshot(threshold, sources)

    async def _create_snapshot(self, threshold: int, sources: dict[str, bytes]) -> None:
        if self._snapshots is None:
            return
        async with self._snapshot_lock:
            try:
                snapshot = await self._snapshots.save(self._route_id, threshold, sources)
            except Exception as e:
                logger.warning("Failed to create %d%% snapshot: %s", threshold, e)
                if self.cache_metrics is not None:
                    self.cache_metrics.record_snapshot_failure()
                return
            self.metrics.snapshots_created += 1
            if self.cache_metrics is not None:
                self.cache_metrics.record_snapshot_write(snapshot.size_bytes)

    async def flush_snapshots(self) -> None:
        """Write every queued snapshot, oldest first.

        An entry leaves the queue only once its save has returned, so a flush
        cancelled mid-save leaves that entry for the next flush.
        """
        async with self._flush_lock:
            while self._pending:
                threshold, sources = self._pending[0]
                await self._create_snapshot(threshold, sources)
                self._pending.pop(0)

    async def aclose(self) -> None:
        """Stop the background poller and flush queued snapshots."""
        if self._poller is not None:
            await self._poller.stop()
        await self.flush_snapshots()

    def get_stats(self) -> dict[str, Any]:
        state = self._state
        return {
            **self.metrics.model_dump(),
            "loaded": state.loaded_modules,
            "total": state.total_modules,
            "percentage": state.progress,
            "cached": state.last_cached_threshold,
        }
