# src/storage/memory_store.py — v1
"""In-process artifact store (ARTIFACT_BACKEND=memory).

Used in development and tests, and as the fallback when no shared backend
is configured. Not shared between replicas.
"""

from __future__ import annotations

import time

from edgecache.storage.base_artifact_store import BaseArtifactStore


class MemoryArtifactStore(BaseArtifactStore):
    """Dict-backed artifact store with optional per-key expiry."""

    name = "memory"

    def __init__(self) -> None:
        self._data: dict[str, tuple[bytes, float | None]] = {}

    async def get(self, key: str) -> bytes | None:
        item = self._data.get(key)
        if item is None:
            return None
        data, expires_at = item
        if expires_at is not None and expires_at <= time.monotonic():
            del self._data[key]
            return None
        return data

    async def put(self, key: str, data: bytes, *, ttl_seconds: int | None = None) -> None:
        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        self._data[key] = (bytes(data), expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Return all stored keys (expired ones included until next read)."""
        return sorted(self._data)
