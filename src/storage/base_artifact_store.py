# src/storage/base_artifact_store.py — v1
"""Abstract artifact store interface.

Backends hold raw serialized bytes under opaque keys. They may raise on
transport failures; callers in the cache tier decide how to degrade.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseArtifactStore(ABC):
    """Unified interface for artifact storage backends."""

    #: Short backend name, reported as the ``source`` of cache events.
    name: str = "store"

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored bytes, or None if the key does not exist."""

    @abstractmethod
    async def put(self, key: str, data: bytes, *, ttl_seconds: int | None = None) -> None:
        """Store bytes under key, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""

    async def close(self) -> None:
        """Release backend resources."""
