# src/bootstrap/runner.py — v1
"""Process bootstrap entry point.

Usage:
    from edgecache.bootstrap.runner import bootstrap
    monitor = await bootstrap(bundle_urls, settings=settings)
    ...
    await monitor.cache_metrics.stop_watcher()   # on shutdown

Tries to restore from the best snapshot for the configured route, then loads
the remaining bundles with progress tracking. A required bundle that cannot
be loaded aborts bootstrap with ModuleLoadError.

Startup duration, warm/cold state and snapshot writes are recorded on a
BootstrapMetrics. With ``metrics_watch_interval_s > 0`` its snapshot watcher
keeps running after bootstrap returns; the caller stops it on shutdown.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable

from edgecache.bootstrap.load_monitor import ProgressiveLoadMonitor
from edgecache.bootstrap.metrics import BootstrapMetrics
from edgecache.bootstrap.module_loader import HttpBundleFetcher, ModuleLoader
from edgecache.bootstrap.snapshot_store import SnapshotStore
from edgecache.config.settings import Settings
from edgecache.logging.context import set_route_context
from edgecache.storage.store_factory import create_snapshot_backend

logger = logging.getLogger(__name__)


def create_snapshot_store(settings: Settings) -> SnapshotStore:
    """Snapshot store on the configured snapshot backend."""
    return SnapshotStore(create_snapshot_backend(settings), prefix=settings.snapshot_prefix)


async def bootstrap(
    urls: Iterable[str],
    *,
    settings: Settings | None = None,
    snapshot_store: SnapshotStore | None = None,
    loader: ModuleLoader | None = None,
    cache_metrics: BootstrapMetrics | None = None,
) -> ProgressiveLoadMonitor:
    """Restore what a previous cold start saved, then load ``urls``.

    Args:
        urls: Bundle URLs required before the process is ready.
        settings: Application settings. Loaded from environment if None.
        snapshot_store: Snapshot store; built from settings when omitted.
        loader: Module loader; an HTTP-backed one is built when omitted.
        cache_metrics: Metrics sink; a fresh one on its own registry when omitted.

    Returns:
        The monitor, whose stats and ``cache_metrics`` stay available for the
        life of the process.

    Raises:
        ModuleLoadError: If a required bundle cannot be loaded.
    """
    settings = settings or Settings()
    set_route_context(settings.route_id)
    started = time.perf_counter()

    if cache_metrics is None:
        cache_metrics = BootstrapMetrics(app=settings.app_name, build_id=settings.build_version)

    if snapshot_store is None:
        try:
            snapshot_store = create_snapshot_store(settings)
        except Exception as e:
            logger.warning("Snapshot store unavailable, snapshots disabled: %s", e)

    await cache_metrics.scan(snapshot_store, settings.route_id)

    fetcher: HttpBundleFetcher | None = None
    if loader is None:
        fetcher = HttpBundleFetcher(timeout_s=settings.bundle_fetch_timeout_s)
        loader = ModuleLoader(fetcher)

    monitor = ProgressiveLoadMonitor(
        loader,
        snapshot_store,
        route_id=settings.route_id,
        thresholds=settings.snapshot_thresholds_list,
        snapshot_poll_interval_s=settings.snapshot_poll_interval_s,
        cache_metrics=cache_metrics,
    )

    try:
        restored = await monitor.restore()
        if restored is not None:
            logger.info("Resuming bootstrap from %d%%", restored)
        await monitor.load_with_progress(urls)
    finally:
        await monitor.aclose()
        if fetcher is not None:
            await fetcher.aclose()

    duration_s = time.perf_counter() - started
    cache_metrics.record_startup(duration_s, warm=restored is not None)
    if snapshot_store is not None and settings.metrics_watch_interval_s > 0:
        cache_metrics.start_watcher(
            snapshot_store, settings.route_id, settings.metrics_watch_interval_s
        )

    logger.info(
        "Bootstrap complete in %dms",
        int(duration_s * 1000),
        extra={"data": monitor.get_stats()},
    )
    return monitor
