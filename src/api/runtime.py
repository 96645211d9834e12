# src/api/runtime.py — v1
"""Service root: one explicitly constructed owner for every shared cache object.

Usage:
    from edgecache.api.runtime import CacheRuntime
    runtime = CacheRuntime.from_settings(settings)
    entry = await runtime.content_cache.get("/home")
    ...
    await runtime.aclose()

Built once at process start and passed by reference to the rendering
pipeline. It owns the event recorder, the shared Redis connection (when a
redis backend is configured), the artifact store with the incremental cache
on top, and the tag store with the tag index on top.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from edgecache.cache.base_tag_store import BaseTagStore
from edgecache.cache.cache_factory import create_tag_store
from edgecache.cache.events import EventRecorder
from edgecache.cache.incremental_cache import IncrementalCache
from edgecache.cache.invalidation import invalidate_tags
from edgecache.cache.models import CacheStats, EntryType
from edgecache.cache.tag_index import TagIndex
from edgecache.config.settings import Settings
from edgecache.logging.context import set_cache_context
from edgecache.storage.base_artifact_store import BaseArtifactStore
from edgecache.storage.connection import RedisConnection
from edgecache.storage.store_factory import create_artifact_store

logger = logging.getLogger(__name__)


@dataclass
class CacheRuntime:
    """Owner of the recorder, stores, caches and connection."""

    settings: Settings
    recorder: EventRecorder
    artifact_store: BaseArtifactStore
    content_cache: IncrementalCache
    tag_store: BaseTagStore
    tag_index: TagIndex
    connection: RedisConnection | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> CacheRuntime:
        """Build every component from settings, sharing one Redis connection."""
        settings = settings or Settings()
        set_cache_context(settings.build_version)

        connection: RedisConnection | None = None
        if "redis" in (settings.artifact_backend, settings.tag_backend):
            connection = RedisConnection.from_settings(settings)

        recorder = EventRecorder(settings.event_buffer_size)
        artifact_store = create_artifact_store(settings, connection)
        tag_store = create_tag_store(settings, connection)

        content_cache = IncrementalCache(
            artifact_store,
            recorder,
            prefix=settings.cache_key_prefix,
            build_version=settings.build_version,
            ttl_seconds=settings.cache_ttl_seconds,
            operation_timeout_s=settings.cache_operation_timeout_s,
        )
        tag_index = TagIndex(
            tag_store,
            recorder,
            prefix=settings.cache_key_prefix,
            operation_timeout_s=settings.cache_operation_timeout_s,
        )

        logger.info(
            "Cache runtime ready (artifacts=%s, tags=%s, build=%s)",
            artifact_store.name, tag_store.name, settings.build_version or "-",
        )
        return cls(
            settings=settings,
            recorder=recorder,
            artifact_store=artifact_store,
            content_cache=content_cache,
            tag_store=tag_store,
            tag_index=tag_index,
            connection=connection,
        )

    async def invalidate_tags(
        self,
        tags: str | Iterable[str],
        entry_types: Iterable[EntryType] = ("cache",),
    ) -> dict[str, int]:
        """Delete every artifact tagged with ``tags`` and clear the tags."""
        return await invalidate_tags(
            tags,
            tag_index=self.tag_index,
            content_cache=self.content_cache,
            recorder=self.recorder,
            entry_types=entry_types,
        )

    def stats(self) -> CacheStats:
        return self.recorder.stats()

    async def aclose(self) -> None:
        """Release stores and the shared connection."""
        try:
            await self.artifact_store.close()
        finally:
            try:
                await self.tag_store.close()
            finally:
                if self.connection is not None:
                    await self.connection.close()
