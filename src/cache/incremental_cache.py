# src/cache/incremental_cache.py — v1
"""Build-version scoped cache of rendered pages and fetch responses.

The rendering pipeline decides when to call get/set/delete; this class never
initiates rendering. No operation raises: backend outages, timeouts and
corrupt payloads degrade to a miss (get) or a no-op (set/delete), and every
call records exactly one CacheEvent with its elapsed time.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, TypeVar

from edgecache.cache.events import EventRecorder
from edgecache.cache.keys import build_cache_key
from edgecache.cache.models import CacheEntry, CacheEventType, EntryType, now_ms
from edgecache.cache.serialization import decode_entry, encode_entry
from edgecache.storage.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class IncrementalCache:
    """Versioned artifact cache on top of a BaseArtifactStore."""

    def __init__(
        self,
        store: BaseArtifactStore,
        recorder: EventRecorder,
        *,
        prefix: str,
        build_version: str,
        ttl_seconds: int | None = None,
        operation_timeout_s: float | None = None,
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._prefix = prefix
        self._build_version = build_version
        self._ttl_seconds = ttl_seconds or None
        self._timeout = operation_timeout_s or None

    @property
    def build_version(self) -> str:
        return self._build_version

    @property
    def source(self) -> str:
        return self._store.name

    def key_for(self, key: str, entry_type: EntryType = "cache") -> str:
        """Backend key for a logical cache key."""
        return build_cache_key(self._prefix, key, entry_type, self._build_version)

    async def get(self, key: str, entry_type: EntryType = "cache") -> CacheEntry | None:
        """Look up an artifact; any failure is reported as a miss."""
        start = time.perf_counter()
        try:
            raw = await self._bounded(self._store.get(self.key_for(key, entry_type)))
            if raw is None:
                self._record(CacheEventType.MISS, key, start, f"Type: {entry_type}")
                return None
            entry = decode_entry(raw)
        except Exception as e:
            logger.warning("Cache get failed for %s (%s): %s", key, entry_type, e)
            self._record(CacheEventType.MISS, key, start, f"Error: {e}")
            return None

        self._record(CacheEventType.HIT, key, start, f"Type: {entry_type}")
        return entry

    async def set(self, key: str, value: Any, entry_type: EntryType = "cache") -> None:
        """Write an artifact stamped with the current time.

        A ``None`` value deletes the entry instead.
        """
        if value is None:
            await self.delete(key, entry_type)
            return

        start = time.perf_counter()
        try:
            data = encode_entry(CacheEntry(value=value, last_modified=now_ms()))
            await self._bounded(
                self._store.put(
                    self.key_for(key, entry_type), data, ttl_seconds=self._ttl_seconds
                )
            )
        except Exception as e:
            logger.warning("Cache set failed for %s (%s): %s", key, entry_type, e)
            self._record(CacheEventType.SET, key, start, f"Error: {e}")
            return

        self._record(CacheEventType.SET, key, start, f"Type: {entry_type}")

    async def delete(self, key: str, entry_type: EntryType = "cache") -> None:
        """Best-effort removal; a missing key is not an error."""
        start = time.perf_counter()
        try:
            await self._bounded(self._store.delete(self.key_for(key, entry_type)))
        except Exception as e:
            logger.warning("Cache delete failed for %s (%s): %s", key, entry_type, e)
            self._record(CacheEventType.DELETE, key, start, f"Error: {e}")
            return

        self._record(CacheEventType.DELETE, key, start)

    async def _bounded(self, aw: Awaitable[T]) -> T:
        if self._timeout is None:
            return await aw
        return await asyncio.wait_for(aw, timeout=self._timeout)

    def _record(
        self,
        type: CacheEventType,
        key: str,
        start: float,
        details: str | None = None,
    ) -> None:
        self._recorder.record(
            type,
            self._store.name,
            key,
            duration_ms=int((time.perf_counter() - start) * 1000),
            details=details,
        )
