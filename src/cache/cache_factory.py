# src/cache/cache_factory.py — v1
"""Factory for tag store instantiation."""

from __future__ import annotations

from edgecache.cache.base_tag_store import BaseTagStore
from edgecache.config.settings import Settings
from edgecache.storage.connection import RedisConnection


def create_tag_store(
    settings: Settings | None = None,
    connection: RedisConnection | None = None,
) -> BaseTagStore:
    """Instantiate the configured tag index backend.

    Args:
        settings: Application settings. Defaults to the memory backend.
        connection: Shared Redis connection for the redis backend; built from
            settings when omitted.

    Returns:
        Configured BaseTagStore implementation.
    """
    backend = "memory" if settings is None else settings.tag_backend

    if backend == "memory":
        from edgecache.cache.memory_tag_store import MemoryTagStore
        return MemoryTagStore()

    if backend == "redis":
        from edgecache.cache.redis_tag_store import RedisTagStore
        if connection is None:
            if settings is None or not settings.redis_url:
                raise ValueError("REDIS_URL must be set when TAG_BACKEND=redis")
            connection = RedisConnection.from_settings(settings)
        return RedisTagStore(connection)

    raise ValueError(f"Unsupported tag backend: {backend!r}")
