# src/cache/invalidation.py — v1
"""Operator-triggered "invalidate everything tagged X".

Composition of the two cache tiers: look up the tag's paths, delete their
current-build artifacts, then drop the tag's path set. Best-effort per tag.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable

from edgecache.cache.events import EventRecorder
from edgecache.cache.incremental_cache import IncrementalCache
from edgecache.cache.models import CacheEventType, EntryType
from edgecache.cache.tag_index import TagIndex

logger = logging.getLogger(__name__)


async def invalidate_tags(
    tags: str | Iterable[str],
    *,
    tag_index: TagIndex,
    content_cache: IncrementalCache,
    recorder: EventRecorder,
    entry_types: Iterable[EntryType] = ("cache",),
) -> dict[str, int]:
    """Invalidate every cached artifact associated with ``tags``.

    Args:
        tags: One tag or several.
        tag_index: Index used to resolve tag -> paths.
        content_cache: Cache whose entries are deleted.
        recorder: Receives one INVALIDATE event per tag.
        entry_types: Entry types to delete for each path.

    Returns:
        Number of paths invalidated, per tag.
    """
    tag_list = [tags] if isinstance(tags, str) else list(tags)
    types = tuple(entry_types)
    counts: dict[str, int] = {}

    for tag in tag_list:
        start = time.perf_counter()
        paths = await tag_index.get_paths_by_tag(tag)
        for path in paths:
            for entry_type in types:
                await content_cache.delete(path, entry_type)
        await tag_index.clear_tag(tag, paths)

        counts[tag] = len(paths)
        recorder.record(
            CacheEventType.INVALIDATE,
            tag_index.source,
            f"tag:{tag}",
            tag=tag,
            duration_ms=int((time.perf_counter() - start) * 1000),
            details=f"Invalidated {len(paths)} keys",
        )
        logger.info("Invalidated tag %s (%d paths)", tag, len(paths))

    return counts
