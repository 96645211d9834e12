# src/cache/tag_index.py — v1
"""Deploy-stable mapping between invalidation tags and content paths.

For every (tag, path) pair two sets are kept, ``tag -> {paths}`` and
``path -> {tags}``, plus an optional ``tag -> revalidatedAt`` marker. Both
sets are written in the same batch; a partial failure leaves a stale member
that costs at most one extra miss or invalidation and heals on the next
write. Keys never contain the build version, so markers written under one
deployment still invalidate artifacts rendered by the next.

Reads degrade to "no tags" / "not stale" and writes are logged and dropped
when the backend misbehaves.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Iterable, Mapping, TypeVar

from pydantic import ValidationError

from edgecache.cache.base_tag_store import BaseTagStore
from edgecache.cache.events import EventRecorder
from edgecache.cache.keys import path_tags_key, tag_paths_key, tag_revalidated_key
from edgecache.cache.models import FORCE_REGENERATE, CacheEventType, TagWrite, now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TagIndex:
    """Tag/path index with revalidation markers on a BaseTagStore."""

    def __init__(
        self,
        store: BaseTagStore,
        recorder: EventRecorder,
        *,
        prefix: str,
        operation_timeout_s: float | None = None,
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._prefix = prefix
        self._timeout = operation_timeout_s or None

    @property
    def source(self) -> str:
        return self._store.name

    async def get_paths_by_tag(self, tag: str) -> list[str]:
        """All paths currently associated with ``tag``; empty is not an error."""
        start = time.perf_counter()
        event_key = f"tag:{tag}"
        try:
            paths = sorted(await self._bounded(self._store.smembers(tag_paths_key(self._prefix, tag))))
        except Exception as e:
            logger.warning("get_paths_by_tag failed for %s: %s", tag, e)
            self._record(CacheEventType.MISS, event_key, start, tag=tag, details=f"Error: {e}")
            return []

        self._record(
            CacheEventType.HIT if paths else CacheEventType.MISS,
            event_key,
            start,
            tag=tag,
            details=f"Found {len(paths)} paths",
        )
        return paths

    async def get_tags_by_path(self, path: str) -> list[str]:
        """All tags attached to ``path``."""
        try:
            return sorted(await self._bounded(self._store.smembers(path_tags_key(self._prefix, path))))
        except Exception as e:
            logger.warning("get_tags_by_path failed for %s: %s", path, e)
            return []

    async def get_last_modified(self, path: str, baseline: int | None = None) -> int:
        """Check whether the artifact cached for ``path`` at ``baseline`` is stale.

        Returns ``baseline`` (or now, when no baseline is given) if nothing
        invalidated the path since, and FORCE_REGENERATE if any of its tags
        was revalidated after ``baseline``. Stale markers are cleared in the
        same call so the next fresh write is not flagged again; a failure to
        clear them does not change the result.
        """
        fallback = baseline if baseline is not None else now_ms()
        try:
            tags = sorted(await self._bounded(self._store.smembers(path_tags_key(self._prefix, path))))
            if not tags:
                return fallback

            batch = self._store.batch()
            for tag in tags:
                batch.get(tag_revalidated_key(self._prefix, tag))
            results = await self._bounded(batch.execute())
        except Exception as e:
            logger.warning("get_last_modified failed for %s: %s", path, e)
            return fallback

        reference = baseline or 0
        stale = [
            tag
            for tag, marker in zip(tags, results)
            if _marker_value(marker) > reference
        ]
        if not stale:
            return fallback

        logger.info("Path %s is stale (tags: %s)", path, ", ".join(stale))
        try:
            clear = self._store.batch()
            for tag in stale:
                clear.delete(tag_revalidated_key(self._prefix, tag))
            for result in await self._bounded(clear.execute()):
                if isinstance(result, Exception):
                    logger.warning("Failed to clear revalidation marker for %s: %s", path, result)
        except Exception as e:
            logger.warning("Failed to clear revalidation markers for %s: %s", path, e)
        return FORCE_REGENERATE

    async def write_tags(self, entries: Iterable[TagWrite | Mapping[str, Any]]) -> None:
        """Associate tags with paths and record revalidation markers.

        Entries that do not validate as TagWrite are logged and skipped.
        """
        writes: list[TagWrite] = []
        for e in entries:
            if isinstance(e, TagWrite):
                writes.append(e)
                continue
            try:
                writes.append(TagWrite.model_validate(e))
            except ValidationError as err:
                logger.warning("write_tags: skipping invalid entry %r: %s", e, err)
        if not writes:
            return

        start = time.perf_counter()
        try:
            batch = self._store.batch()
            marker_slots: list[tuple[int, TagWrite]] = []
            for w in writes:
                batch.sadd(tag_paths_key(self._prefix, w.tag), w.path)
                batch.sadd(path_tags_key(self._prefix, w.path), w.tag)
                if w.revalidated_at:
                    marker_slots.append((len(batch), w))
                    batch.set(tag_revalidated_key(self._prefix, w.tag), str(w.revalidated_at))
            results = await self._bounded(batch.execute())
        except Exception as e:
            logger.warning("write_tags failed for %d entries: %s", len(writes), e)
            return

        failures = [r for r in results if isinstance(r, Exception)]
        if failures:
            logger.warning(
                "write_tags: %d of %d operations failed (first: %s)",
                len(failures), len(results), failures[0],
            )

        for slot, w in marker_slots:
            if not isinstance(results[slot], Exception):
                self._recorder.record(
                    CacheEventType.REVALIDATE,
                    self._store.name,
                    w.path,
                    tag=w.tag,
                    details=f"RevalidatedAt: {w.revalidated_at}",
                )

        self._record(
            CacheEventType.SET,
            f"{len(writes)} tags",
            start,
            details="Tags: " + ", ".join(w.tag for w in writes),
        )

    async def clear_tag(self, tag: str, paths: Iterable[str] | None = None) -> None:
        """Drop the tag's path set and remove the tag from each path's tag set.

        The revalidation marker is left alone; only get_last_modified clears it.
        """
        try:
            if paths is None:
                paths = await self._bounded(self._store.smembers(tag_paths_key(self._prefix, tag)))
            batch = self._store.batch()
            batch.delete(tag_paths_key(self._prefix, tag))
            for path in paths:
                batch.srem(path_tags_key(self._prefix, path), tag)
            for result in await self._bounded(batch.execute()):
                if isinstance(result, Exception):
                    logger.warning("clear_tag %s: operation failed: %s", tag, result)
        except Exception as e:
            logger.warning("clear_tag failed for %s: %s", tag, e)

    async def _bounded(self, aw: Awaitable[T]) -> T:
        if self._timeout is None:
            return await aw
        return await asyncio.wait_for(aw, timeout=self._timeout)

    def _record(
        self,
        type: CacheEventType,
        key: str,
        start: float,
        *,
        tag: str | None = None,
        details: str | None = None,
    ) -> None:
        self._recorder.record(
            type,
            self._store.name,
            key,
            tag=tag,
            duration_ms=int((time.perf_counter() - start) * 1000),
            details=details,
        )


def _marker_value(marker: Any) -> int:
    """Parse a revalidatedAt marker; missing, failed or malformed reads count as 0."""
    if marker is None or isinstance(marker, Exception):
        return 0
    try:
        return int(marker)
    except (TypeError, ValueError):
        return 0
