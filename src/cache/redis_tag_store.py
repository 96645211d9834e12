# src/cache/redis_tag_store.py — v1
"""Redis tag store (TAG_BACKEND=redis).

Native sets hold tag/path memberships; batches map to a non-transactional
pipeline. Uses the shared RedisConnection, so the client returns bytes that
are decoded here.
"""

from __future__ import annotations

from typing import Any

from edgecache.cache.base_tag_store import BaseTagStore, BatchOp
from edgecache.storage.connection import RedisConnection


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value


class RedisTagStore(BaseTagStore):
    """Redis-backed implementation of BaseTagStore."""

    name = "redis"

    def __init__(self, connection: RedisConnection) -> None:
        self._connection = connection

    async def get(self, key: str) -> str | None:
        client = await self._connection.get_client()
        return _decode(await client.get(key))

    async def set(self, key: str, value: str) -> None:
        client = await self._connection.get_client()
        await client.set(key, value)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        client = await self._connection.get_client()
        return int(await client.delete(*keys))

    async def sadd(self, key: str, *members: str) -> int:
        client = await self._connection.get_client()
        return int(await client.sadd(key, *members))

    async def smembers(self, key: str) -> set[str]:
        client = await self._connection.get_client()
        return {_decode(m) for m in await client.smembers(key)}

    async def srem(self, key: str, *members: str) -> int:
        client = await self._connection.get_client()
        return int(await client.srem(key, *members))

    async def execute_batch(self, ops: list[BatchOp]) -> list[Any]:
        client = await self._connection.get_client()
        async with client.pipeline(transaction=False) as pipe:
            for op in ops:
                getattr(pipe, op.method)(*op.args)
            results = await pipe.execute(raise_on_error=False)
        return [_decode(r) for r in results]
