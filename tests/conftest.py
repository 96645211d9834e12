# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides in-memory stores, a fresh event recorder, wired cache components
and settings isolated from the host environment. No external dependencies:
all I/O is in memory or under tmp_path.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from edgecache.cache.events import EventRecorder
from edgecache.cache.incremental_cache import IncrementalCache
from edgecache.cache.memory_tag_store import MemoryTagStore
from edgecache.cache.tag_index import TagIndex
from edgecache.config.settings import Settings
from edgecache.logging.context import clear_context
from edgecache.storage.memory_store import MemoryArtifactStore


# === FIXTURES: Settings ===


@pytest.fixture
def make_settings(tmp_path: Path):
    """Factory for Settings that ignores .env and writes under tmp_path."""

    def _make(**overrides: Any) -> Settings:
        defaults: dict[str, Any] = {
            "cache_root": tmp_path / "artifacts",
            "snapshot_root": tmp_path / "snapshots",
        }
        defaults.update(overrides)
        return Settings(_env_file=None, **defaults)  # type: ignore[call-arg]

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings(artifact_backend="memory", snapshot_backend="memory")


# === FIXTURES: Cache components ===


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder(capacity=100)


@pytest.fixture
def artifact_store() -> MemoryArtifactStore:
    return MemoryArtifactStore()


@pytest.fixture
def tag_store() -> MemoryTagStore:
    return MemoryTagStore()


@pytest.fixture
def content_cache(artifact_store: MemoryArtifactStore, recorder: EventRecorder) -> IncrementalCache:
    """Incremental cache for build 'b1' on a memory store."""
    return IncrementalCache(
        artifact_store, recorder, prefix="site", build_version="b1", ttl_seconds=60
    )


@pytest.fixture
def tag_index(tag_store: MemoryTagStore, recorder: EventRecorder) -> TagIndex:
    return TagIndex(tag_store, recorder, prefix="site")


# === FIXTURES: Logging ===


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()
