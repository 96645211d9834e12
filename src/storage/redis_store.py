# src/storage/redis_store.py — v1
"""Redis-based artifact store (ARTIFACT_BACKEND=redis).

Suitable for multi-replica deployments. Uses the shared RedisConnection.
"""

from __future__ import annotations

from edgecache.storage.base_artifact_store import BaseArtifactStore
from edgecache.storage.connection import RedisConnection


class RedisArtifactStore(BaseArtifactStore):
    """Redis-backed artifact store; values are raw bytes, TTL via EX."""

    name = "redis"

    def __init__(self, connection: RedisConnection) -> None:
        self._connection = connection

    async def get(self, key: str) -> bytes | None:
        client = await self._connection.get_client()
        data = await client.get(key)
        if data is None:
            return None
        return data if isinstance(data, bytes) else str(data).encode("utf-8")

    async def put(self, key: str, data: bytes, *, ttl_seconds: int | None = None) -> None:
        client = await self._connection.get_client()
        if ttl_seconds:
            await client.set(key, data, ex=ttl_seconds)
        else:
            await client.set(key, data)

    async def delete(self, key: str) -> None:
        client = await self._connection.get_client()
        await client.delete(key)
