# src/storage/store_factory.py — v1
"""Factory: instantiate artifact stores from configuration."""

from __future__ import annotations

from pathlib import Path

from edgecache.config.settings import Settings
from edgecache.storage.base_artifact_store import BaseArtifactStore
from edgecache.storage.connection import RedisConnection
from edgecache.storage.memory_store import MemoryArtifactStore


def create_artifact_store(
    settings: Settings,
    connection: RedisConnection | None = None,
) -> BaseArtifactStore:
    """Create the artifact store backing the incremental content cache.

    Args:
        settings: Application settings (ARTIFACT_BACKEND env var).
        connection: Shared Redis connection, required for the redis backend.

    Raises:
        ValueError: If the backend is not supported or is misconfigured.
    """
    return _create(
        settings.artifact_backend,
        settings,
        root=settings.cache_root,
        connection=connection,
    )


def create_snapshot_backend(settings: Settings) -> BaseArtifactStore:
    """Create the object storage that holds bootstrap snapshots."""
    return _create(settings.snapshot_backend, settings, root=settings.snapshot_root)


def _create(
    backend: str,
    settings: Settings,
    *,
    root: Path,
    connection: RedisConnection | None = None,
) -> BaseArtifactStore:
    if backend == "memory":
        return MemoryArtifactStore()

    if backend == "local":
        from edgecache.storage.local_store import LocalArtifactStore
        return LocalArtifactStore(root)

    if backend == "s3":
        from edgecache.storage.s3_store import S3ArtifactStore
        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET must be set when using the s3 backend")
        return S3ArtifactStore(
            bucket=settings.s3_bucket,
            prefix=settings.s3_prefix,
            region=settings.s3_region or None,
            endpoint_url=settings.s3_endpoint_url or None,
        )

    if backend == "redis":
        from edgecache.storage.redis_store import RedisArtifactStore
        if connection is None:
            if not settings.redis_url:
                raise ValueError("REDIS_URL must be set when using the redis backend")
            connection = RedisConnection.from_settings(settings)
        return RedisArtifactStore(connection)

    raise ValueError(f"Unsupported artifact backend: {backend!r}")
