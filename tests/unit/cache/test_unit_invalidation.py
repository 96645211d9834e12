# tests/unit/cache/test_unit_invalidation.py — v1
"""Tests for cache/invalidation.py: invalidate_tags across both cache tiers."""

from __future__ import annotations

import pytest

from edgecache.cache.events import EventRecorder
from edgecache.cache.incremental_cache import IncrementalCache
from edgecache.cache.invalidation import invalidate_tags
from edgecache.cache.models import CacheEventType, TagWrite
from edgecache.cache.tag_index import TagIndex


async def _seed(content_cache: IncrementalCache, tag_index: TagIndex) -> None:
    for path in ("/blog", "/blog/1", "/about"):
        await content_cache.set(path, f"page {path}")
    await tag_index.write_tags([
        TagWrite(tag="posts", path="/blog"),
        TagWrite(tag="posts", path="/blog/1"),
        TagWrite(tag="static", path="/about"),
    ])


class TestInvalidateTags:
    @pytest.mark.asyncio
    async def test_deletes_tagged_paths_only(
        self, content_cache: IncrementalCache, tag_index: TagIndex, recorder: EventRecorder
    ):
        await _seed(content_cache, tag_index)

        counts = await invalidate_tags(
            "posts", tag_index=tag_index, content_cache=content_cache, recorder=recorder
        )

        assert counts == {"posts": 2}
        assert await content_cache.get("/blog") is None
        assert await content_cache.get("/blog/1") is None
        assert (await content_cache.get("/about")).value == "page /about"
        assert await tag_index.get_paths_by_tag("posts") == []

    @pytest.mark.asyncio
    async def test_records_invalidate_event(
        self, content_cache: IncrementalCache, tag_index: TagIndex, recorder: EventRecorder
    ):
        await _seed(content_cache, tag_index)
        await invalidate_tags(
            ["posts"], tag_index=tag_index, content_cache=content_cache, recorder=recorder
        )
        event = next(e for e in recorder.events() if e.type == CacheEventType.INVALIDATE)
        assert event.key == "tag:posts"
        assert event.tag == "posts"
        assert event.details == "Invalidated 2 keys"

    @pytest.mark.asyncio
    async def test_multiple_tags_and_unknown_tag(
        self, content_cache: IncrementalCache, tag_index: TagIndex, recorder: EventRecorder
    ):
        await _seed(content_cache, tag_index)
        counts = await invalidate_tags(
            ["posts", "static", "missing"],
            tag_index=tag_index, content_cache=content_cache, recorder=recorder,
        )
        assert counts == {"posts": 2, "static": 1, "missing": 0}
        assert recorder.stats().invalidations == 3

    @pytest.mark.asyncio
    async def test_extra_entry_types(
        self, content_cache: IncrementalCache, tag_index: TagIndex, recorder: EventRecorder
    ):
        await content_cache.set("/blog", "page")
        await content_cache.set("/blog", "fragment", "composable")
        await tag_index.write_tags([TagWrite(tag="posts", path="/blog")])

        await invalidate_tags(
            "posts", tag_index=tag_index, content_cache=content_cache,
            recorder=recorder, entry_types=("cache", "composable"),
        )
        assert await content_cache.get("/blog") is None
        assert await content_cache.get("/blog", "composable") is None
