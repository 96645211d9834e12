# src/cache/base_tag_store.py — v1
"""Abstract key-value store with set membership, backing the tag index.

Batches queue several operations and run them in one round-trip. They are
not transactional: a failing operation yields its exception in the result
list while the others still apply.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BatchOp:
    """One queued operation: method name plus positional arguments."""

    method: str
    args: tuple[Any, ...]


class TagStoreBatch:
    """Queue of operations executed together by ``execute()``."""

    def __init__(self, store: BaseTagStore) -> None:
        self._store = store
        self._ops: list[BatchOp] = []

    def __len__(self) -> int:
        return len(self._ops)

    def get(self, key: str) -> TagStoreBatch:
        self._ops.append(BatchOp("get", (key,)))
        return self

    def set(self, key: str, value: str) -> TagStoreBatch:
        self._ops.append(BatchOp("set", (key, value)))
        return self

    def delete(self, *keys: str) -> TagStoreBatch:
        self._ops.append(BatchOp("delete", keys))
        return self

    def sadd(self, key: str, *members: str) -> TagStoreBatch:
        self._ops.append(BatchOp("sadd", (key, *members)))
        return self

    def srem(self, key: str, *members: str) -> TagStoreBatch:
        self._ops.append(BatchOp("srem", (key, *members)))
        return self

    async def execute(self) -> list[Any]:
        """Run queued operations; results align with queue order.

        A failed operation's slot holds the exception instance.
        """
        ops, self._ops = self._ops, []
        if not ops:
            return []
        return await self._store.execute_batch(ops)


class BaseTagStore(ABC):
    """Unified interface for tag index backends."""

    name: str = "tags"

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return a string value or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a string value."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys of any type; returns how many existed."""

    @abstractmethod
    async def sadd(self, key: str, *members: str) -> int:
        """Add members to a set; returns how many were new."""

    @abstractmethod
    async def smembers(self, key: str) -> set[str]:
        """Members of a set (empty when missing)."""

    @abstractmethod
    async def srem(self, key: str, *members: str) -> int:
        """Remove members from a set; returns how many were removed."""

    @abstractmethod
    async def execute_batch(self, ops: list[BatchOp]) -> list[Any]:
        """Execute queued operations, capturing per-operation errors."""

    def batch(self) -> TagStoreBatch:
        """Start a new batch."""
        return TagStoreBatch(self)

    async def close(self) -> None:
        """Release backend resources."""
