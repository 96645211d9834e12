# tests/unit/bootstrap/test_unit_metrics.py — v1
"""Tests for bootstrap/metrics.py: startup gauges, write watcher, exposition."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from edgecache.bootstrap.metrics import BootstrapMetrics

LABELS = {"app": "web", "build_id": "b1"}


@pytest.fixture
def cache_metrics() -> BootstrapMetrics:
    return BootstrapMetrics(app="web", build_id="b1")


def sample(cache_metrics: BootstrapMetrics, name: str, **extra: str) -> float | None:
    return cache_metrics.registry.get_sample_value(name, {**LABELS, **extra})


class TestScan:
    @pytest.mark.asyncio
    async def test_cold_start(self, cache_metrics, snapshot_store):
        result = await cache_metrics.scan(snapshot_store, "home")

        assert result.file_count == 0
        assert not result.is_warm
        assert sample(cache_metrics, "edgecache_snapshot_warm_start") == 0
        assert sample(cache_metrics, "edgecache_snapshot_files") == 0

    @pytest.mark.asyncio
    async def test_warm_start(self, cache_metrics, snapshot_store):
        await snapshot_store.save("home", 20, {"https://cdn/a.py": b"A = 1\n"})
        await snapshot_store.save("home", 40, {"https://cdn/b.py": b"B = 1\n"})
        await snapshot_store.save("blog", 20, {"https://cdn/c.py": b"C = 1\n"})
        sizes = [s.size_bytes for s in await snapshot_store.list_snapshots("home")]

        result = await cache_metrics.scan(snapshot_store, "home")

        assert result.is_warm
        assert sample(cache_metrics, "edgecache_snapshot_warm_start") == 1
        assert sample(cache_metrics, "edgecache_snapshot_files") == 2
        assert sample(cache_metrics, "edgecache_snapshot_size_bytes") == sum(sizes)

    @pytest.mark.asyncio
    async def test_unreadable_store_is_cold(self, cache_metrics, snapshot_store):
        snapshot_store.list_snapshots = AsyncMock(side_effect=ConnectionError("down"))
        result = await cache_metrics.scan(snapshot_store, "home")
        assert result.file_count == 0
        assert sample(cache_metrics, "edgecache_snapshot_warm_start") == 0

    @pytest.mark.asyncio
    async def test_no_store_is_cold(self, cache_metrics):
        result = await cache_metrics.scan(None, "home")
        assert not result.is_warm


class TestStartup:
    def test_duration_labelled_by_cache_status(self, cache_metrics):
        cache_metrics.record_startup(0.3, warm=True)
        cache_metrics.record_startup(4.0, warm=False)

        assert sample(cache_metrics, "edgecache_startup_duration_seconds_count", cache_status="warm") == 1
        assert sample(cache_metrics, "edgecache_startup_duration_seconds_sum", cache_status="cold") == 4.0
        assert sample(
            cache_metrics, "edgecache_startup_duration_seconds_bucket", cache_status="warm", le="0.5"
        ) == 1

    def test_unknown_build_id(self):
        assert BootstrapMetrics().build_id == "unknown"

    def test_instances_do_not_share_registry(self):
        first, second = BootstrapMetrics(), BootstrapMetrics()
        first.record_snapshot_write(10)
        assert second.registry.get_sample_value(
            "edgecache_snapshot_writes_total", {"app": "edgecache", "build_id": "unknown", "result": "ok"}
        ) is None


class TestWatcher:
    @pytest.mark.asyncio
    async def test_poll_counts_new_snapshots_only(self, cache_metrics, snapshot_store):
        await snapshot_store.save("home", 20, {"https://cdn/a.py": b"A = 1\n"})
        await cache_metrics.scan(snapshot_store, "home")

        assert await cache_metrics.poll_writes(snapshot_store, "home") == 0
        await snapshot_store.save("home", 40, {"https://cdn/b.py": b"B = 1\n"})
        await snapshot_store.save("home", 60, {"https://cdn/c.py": b"C = 1\n"})
        assert await cache_metrics.poll_writes(snapshot_store, "home") == 2

        assert sample(cache_metrics, "edgecache_snapshot_write_count_total") == 2
        assert sample(cache_metrics, "edgecache_snapshot_files") == 3

    @pytest.mark.asyncio
    async def test_poll_failure_ignored(self, cache_metrics, snapshot_store):
        snapshot_store.list_snapshots = AsyncMock(side_effect=ConnectionError("down"))
        assert await cache_metrics.poll_writes(snapshot_store, "home") == 0

    @pytest.mark.asyncio
    async def test_background_watcher(self, cache_metrics, snapshot_store):
        await cache_metrics.scan(snapshot_store, "home")
        cache_metrics.start_watcher(snapshot_store, "home", interval_s=0.01)
        assert cache_metrics.watching

        await snapshot_store.save("home", 20, {"https://cdn/a.py": b"A = 1\n"})
        for _ in range(100):
            if sample(cache_metrics, "edgecache_snapshot_write_count_total") == 1:
                break
            await asyncio.sleep(0.01)

        await cache_metrics.stop_watcher()
        assert not cache_metrics.watching
        assert sample(cache_metrics, "edgecache_snapshot_write_count_total") == 1

    @pytest.mark.asyncio
    async def test_stop_without_start(self, cache_metrics):
        await cache_metrics.stop_watcher()
        assert not cache_metrics.watching


class TestRender:
    def test_exposition_text(self, cache_metrics):
        cache_metrics.record_snapshot_write(2048)
        text = cache_metrics.render().decode("utf-8")
        assert 'edgecache_snapshot_write_bytes_total{app="web",build_id="b1"} 2048.0' in text
        assert "# TYPE edgecache_startup_duration_seconds histogram" in text
