# src/bootstrap/metrics.py — v1
"""Prometheus metrics for cold-start bootstrap and the snapshot cache.

Every BootstrapMetrics owns a dedicated CollectorRegistry (process metrics
included), so several instances can live in one process and tests read
values straight from ``registry``.

Metrics (labels ``app`` and ``build_id`` on all of them):
- edgecache_startup_duration_seconds  histogram, plus ``cache_status`` warm|cold
- edgecache_snapshot_warm_start       1 if snapshots existed at startup
- edgecache_snapshot_files            snapshots registered for the route
- edgecache_snapshot_size_bytes       total size of those snapshots
- edgecache_snapshot_write_count_total new snapshots seen by the watcher
- edgecache_snapshot_writes_total     saves from this process, ``result`` ok|error
- edgecache_snapshot_write_bytes_total bytes written by successful saves

The watcher re-reads the snapshot index on a PeriodicTask, so it also sees
snapshots written by other replicas. It runs until ``stop_watcher()``.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    ProcessCollector,
    generate_latest,
)

from edgecache.bootstrap.poller import PeriodicTask
from edgecache.bootstrap.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

STARTUP_BUCKETS = (0.1, 0.25, 0.5, 1, 2, 5, 10, 30)


class SnapshotScan(NamedTuple):
    file_count: int
    total_bytes: int

    @property
    def is_warm(self) -> bool:
        return self.file_count > 0


class BootstrapMetrics:
    """Startup and snapshot-cache metrics on a private registry."""

    def __init__(
        self,
        app: str = "edgecache",
        build_id: str = "",
        registry: CollectorRegistry | None = None,
    ) -> None:
        self.app = app
        self.build_id = build_id or "unknown"
        self.registry = registry or CollectorRegistry()
        self._watcher: PeriodicTask | None = None
        self._last_file_count = 0
        self._setup_metrics()

    def _setup_metrics(self) -> None:
        ProcessCollector(registry=self.registry)
        labels = ["app", "build_id"]

        self.startup_duration = Histogram(
            "edgecache_startup_duration_seconds",
            "Time from bootstrap start to all required modules loaded (seconds)",
            labels + ["cache_status"],
            buckets=STARTUP_BUCKETS,
            registry=self.registry,
        )
        self.warm_start = Gauge(
            "edgecache_snapshot_warm_start",
            "1 if the process started with existing snapshots, 0 if cold",
            labels,
            registry=self.registry,
        )
        self.files = Gauge(
            "edgecache_snapshot_files",
            "Snapshots registered for the route",
            labels,
            registry=self.registry,
        )
        self.size_bytes = Gauge(
            "edgecache_snapshot_size_bytes",
            "Total size of the route's snapshots (bytes)",
            labels,
            registry=self.registry,
        )
        self.write_count = Counter(
            "edgecache_snapshot_write_count",
            "New snapshots observed during the process lifetime",
            labels,
            registry=self.registry,
        )
        self.writes = Counter(
            "edgecache_snapshot_writes",
            "Snapshot saves attempted by this process",
            labels + ["result"],
            registry=self.registry,
        )
        self.write_bytes = Counter(
            "edgecache_snapshot_write_bytes",
            "Bytes written by successful snapshot saves",
            labels,
            registry=self.registry,
        )

    def _labels(self) -> dict[str, str]:
        return {"app": self.app, "build_id": self.build_id}

    # --- Startup ---

    async def scan(self, store: SnapshotStore | None, route_id: str) -> SnapshotScan:
        """Count the route's snapshots and set the startup gauges.

        An unreadable or missing store counts as a cold start.
        """
        result = SnapshotScan(0, 0)
        if store is not None:
            try:
                snapshots = await store.list_snapshots(route_id)
            except Exception as e:
                logger.debug("Snapshot scan failed for %s: %s", route_id, e)
            else:
                result = SnapshotScan(len(snapshots), sum(s.size_bytes for s in snapshots))

        labels = self._labels()
        self.files.labels(**labels).set(result.file_count)
        self.size_bytes.labels(**labels).set(result.total_bytes)
        self.warm_start.labels(**labels).set(1 if result.is_warm else 0)
        self._last_file_count = result.file_count

        logger.info(
            "Snapshot cache: %s start (%d files, %.1f KB)",
            "warm" if result.is_warm else "cold", result.file_count, result.total_bytes / 1024,
        )
        return result

    def record_startup(self, duration_s: float, *, warm: bool) -> None:
        cache_status = "warm" if warm else "cold"
        self.startup_duration.labels(**self._labels(), cache_status=cache_status).observe(duration_s)
        logger.info("Ready in %dms (%s cache)", int(duration_s * 1000), cache_status)

    # --- Snapshot writes ---

    def record_snapshot_write(self, size_bytes: int) -> None:
        self.writes.labels(**self._labels(), result="ok").inc()
        self.write_bytes.labels(**self._labels()).inc(size_bytes)

    def record_snapshot_failure(self) -> None:
        self.writes.labels(**self._labels(), result="error").inc()

    # --- Watcher ---

    async def poll_writes(self, store: SnapshotStore, route_id: str) -> int:
        """Count snapshots added since the last scan; returns how many."""
        try:
            snapshots = await store.list_snapshots(route_id)
        except Exception as e:
            logger.debug("Snapshot watch failed for %s: %s", route_id, e)
            return 0

        new_files = len(snapshots) - self._last_file_count
        if new_files > 0:
            labels = self._labels()
            self.write_count.labels(**labels).inc(new_files)
            self.files.labels(**labels).set(len(snapshots))
            self.size_bytes.labels(**labels).set(sum(s.size_bytes for s in snapshots))
            self._last_file_count = len(snapshots)
            return new_files
        return 0

    def start_watcher(self, store: SnapshotStore, route_id: str, interval_s: float = 10.0) -> None:
        if self._watcher is not None:
            return

        async def tick() -> None:
            await self.poll_writes(store, route_id)

        self._watcher = PeriodicTask(tick, interval_s, name="snapshot-watcher")
        self._watcher.start()

    @property
    def watching(self) -> bool:
        return self._watcher is not None and self._watcher.running

    async def stop_watcher(self) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            await watcher.stop()

    def render(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)
