# tests/unit/bootstrap/conftest.py — v1
"""Fixtures for bootstrap tests: fake bundle fetcher and snapshot stores."""

from __future__ import annotations

import asyncio

import pytest

from edgecache.bootstrap.module_loader import ModuleLoader
from edgecache.bootstrap.snapshot_store import SnapshotStore
from edgecache.storage.memory_store import MemoryArtifactStore

BUNDLE_URLS = [f"https://cdn.example.com/chunks/{i}.py" for i in range(10)]


class FakeFetcher:
    """Serves ``NAME = '<url>'`` for every URL; records calls."""

    def __init__(self, failing: set[str] | None = None, gate: asyncio.Event | None = None):
        self.calls: list[str] = []
        self.failing = failing or set()
        self.gate = gate

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if url in self.failing:
            raise ConnectionError(f"cannot reach {url}")
        return f"NAME = {url!r}\n".encode("utf-8")


class RecordingSnapshotStore(SnapshotStore):
    """SnapshotStore that remembers the order of saved percentages."""

    def __init__(self, backend=None, prefix: str = "bytecode-cache"):
        super().__init__(backend or MemoryArtifactStore(), prefix)
        self.saved: list[int] = []

    async def save(self, route_id, percentage, sources):
        snapshot = await super().save(route_id, percentage, sources)
        self.saved.append(percentage)
        return snapshot


@pytest.fixture
def bundle_urls() -> list[str]:
    return list(BUNDLE_URLS)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def loader(fetcher: FakeFetcher) -> ModuleLoader:
    return ModuleLoader(fetcher)


@pytest.fixture
def snapshot_backend() -> MemoryArtifactStore:
    return MemoryArtifactStore()


@pytest.fixture
def snapshot_store(snapshot_backend: MemoryArtifactStore) -> RecordingSnapshotStore:
    return RecordingSnapshotStore(snapshot_backend)


@pytest.fixture
def make_fetcher():
    return FakeFetcher


@pytest.fixture
def make_snapshot_store():
    return RecordingSnapshotStore
