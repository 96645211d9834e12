# tests/unit/cache/test_unit_incremental_cache.py — v1
"""Tests for cache/incremental_cache.py: versioned get/set/delete with events."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from edgecache.cache.events import EventRecorder
from edgecache.cache.incremental_cache import IncrementalCache
from edgecache.cache.models import CacheEventType
from edgecache.storage.base_artifact_store import BaseArtifactStore
from edgecache.storage.memory_store import MemoryArtifactStore


class FailingStore(BaseArtifactStore):
    name = "broken"

    async def get(self, key):
        raise ConnectionError("backend down")

    async def put(self, key, data, *, ttl_seconds=None):
        raise ConnectionError("backend down")

    async def delete(self, key):
        raise ConnectionError("backend down")


class SlowStore(MemoryArtifactStore):
    name = "slow"

    async def get(self, key):
        await asyncio.sleep(1)
        return await super().get(key)


class TestGetSet:
    @pytest.mark.asyncio
    async def test_miss_then_hit(self, content_cache: IncrementalCache, recorder: EventRecorder):
        assert await content_cache.get("/home") is None
        await content_cache.set("/home", {"html": "<h1>Home</h1>"})
        entry = await content_cache.get("/home")

        assert entry is not None
        assert entry.value == {"html": "<h1>Home</h1>"}
        assert entry.last_modified > 0
        types = [e.type for e in reversed(recorder.events())]
        assert types == [CacheEventType.MISS, CacheEventType.SET, CacheEventType.HIT]

    @pytest.mark.asyncio
    async def test_event_details(self, content_cache: IncrementalCache, recorder: EventRecorder):
        await content_cache.get("/home", "composable")
        event = recorder.events()[0]
        assert event.details == "Type: composable"
        assert event.source == "memory"
        assert event.key == "/home"
        assert event.duration_ms is not None

    @pytest.mark.asyncio
    async def test_entry_types_are_separate(self, content_cache: IncrementalCache):
        await content_cache.set("/home", "page", "cache")
        await content_cache.set("/home", "fragment", "composable")
        assert (await content_cache.get("/home", "cache")).value == "page"
        assert (await content_cache.get("/home", "composable")).value == "fragment"
        assert await content_cache.get("/home", "fetch") is None

    @pytest.mark.asyncio
    async def test_stored_under_versioned_key(
        self, content_cache: IncrementalCache, artifact_store: MemoryArtifactStore
    ):
        await content_cache.set("/blog", "x")
        await content_cache.set("f1", "y", "fetch")
        assert artifact_store.keys() == ["site/cache/__fetch/b1/f1", "site/cache/b1/blog.cache"]

    @pytest.mark.asyncio
    async def test_bytes_payload(self, content_cache: IncrementalCache):
        await content_cache.set("/rsc", {"rscData": b"\x00payload"})
        entry = await content_cache.get("/rsc")
        assert entry.value["rscData"] == b"\x00payload"

    @pytest.mark.asyncio
    async def test_set_none_deletes(self, content_cache: IncrementalCache, recorder: EventRecorder):
        await content_cache.set("/home", "x")
        await content_cache.set("/home", None)
        assert await content_cache.get("/home") is None
        assert recorder.events()[1].type == CacheEventType.DELETE

    @pytest.mark.asyncio
    async def test_ttl_passed_to_store(self, recorder: EventRecorder):
        store = AsyncMock(spec=BaseArtifactStore)
        store.name = "mock"
        cache = IncrementalCache(store, recorder, prefix="site", build_version="b1", ttl_seconds=90)
        await cache.set("/a", 1)
        assert store.put.await_args.kwargs["ttl_seconds"] == 90


class TestBuildVersionIsolation:
    @pytest.mark.asyncio
    async def test_redeploy_starts_cold(self, artifact_store: MemoryArtifactStore, recorder: EventRecorder):
        old = IncrementalCache(artifact_store, recorder, prefix="site", build_version="b1")
        new = IncrementalCache(artifact_store, recorder, prefix="site", build_version="b2")

        await old.set("/home", "v1 page")
        assert await new.get("/home") is None
        await new.set("/home", "v2 page")

        assert (await old.get("/home")).value == "v1 page"
        assert (await new.get("/home")).value == "v2 page"


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_missing_is_ok(self, content_cache: IncrementalCache, recorder: EventRecorder):
        await content_cache.delete("/never")
        event = recorder.events()[0]
        assert event.type == CacheEventType.DELETE
        assert event.details is None


class TestDegradation:
    @pytest.mark.asyncio
    async def test_get_failure_is_miss(self, recorder: EventRecorder):
        cache = IncrementalCache(FailingStore(), recorder, prefix="site", build_version="b1")
        assert await cache.get("/home") is None
        event = recorder.events()[0]
        assert event.type == CacheEventType.MISS
        assert event.details == "Error: backend down"
        assert event.source == "broken"

    @pytest.mark.asyncio
    async def test_set_and_delete_failures_swallowed(self, recorder: EventRecorder):
        cache = IncrementalCache(FailingStore(), recorder, prefix="site", build_version="b1")
        await cache.set("/home", "x")
        await cache.delete("/home")
        set_event, delete_event = reversed(recorder.events())
        assert set_event.type == CacheEventType.SET
        assert set_event.details.startswith("Error:")
        assert delete_event.type == CacheEventType.DELETE
        assert delete_event.details.startswith("Error:")

    @pytest.mark.asyncio
    async def test_corrupt_payload_is_miss(
        self, content_cache: IncrementalCache, artifact_store: MemoryArtifactStore, recorder: EventRecorder
    ):
        await artifact_store.put(content_cache.key_for("/home"), b"{garbage")
        assert await content_cache.get("/home") is None
        assert recorder.events()[0].details.startswith("Error: Malformed")

    @pytest.mark.asyncio
    async def test_timeout_is_miss(self, recorder: EventRecorder):
        cache = IncrementalCache(
            SlowStore(), recorder, prefix="site", build_version="b1", operation_timeout_s=0.01
        )
        assert await cache.get("/home") is None
        assert recorder.events()[0].type == CacheEventType.MISS

    @pytest.mark.asyncio
    async def test_one_event_per_operation(self, content_cache: IncrementalCache, recorder: EventRecorder):
        await content_cache.get("/a")
        await content_cache.set("/a", 1)
        await content_cache.get("/a")
        await content_cache.delete("/a")
        assert len(recorder) == 4
