# src/cache/memory_tag_store.py — v1
"""In-process tag store (TAG_BACKEND=memory). Not shared between replicas."""

from __future__ import annotations

from typing import Any

from edgecache.cache.base_tag_store import BaseTagStore, BatchOp


class MemoryTagStore(BaseTagStore):
    """Dict-of-strings plus dict-of-sets implementation of BaseTagStore."""

    name = "memory"

    def __init__(self) -> None:
        self._values: dict[str, str] = {}
        self._sets: dict[str, set[str]] = {}

    async def get(self, key: str) -> str | None:
        return self._values.get(key)

    async def set(self, key: str, value: str) -> None:
        self._values[key] = value

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._values.pop(key, None) is not None:
                removed += 1
            elif self._sets.pop(key, None) is not None:
                removed += 1
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        bucket = self._sets.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def smembers(self, key: str) -> set[str]:
        return set(self._sets.get(key, ()))

    async def srem(self, key: str, *members: str) -> int:
        bucket = self._sets.get(key)
        if not bucket:
            return 0
        before = len(bucket)
        bucket.difference_update(members)
        if not bucket:
            del self._sets[key]
        return before - len(bucket)

    async def execute_batch(self, ops: list[BatchOp]) -> list[Any]:
        results: list[Any] = []
        for op in ops:
            try:
                results.append(await getattr(self, op.method)(*op.args))
            except Exception as e:
                results.append(e)
        return results
