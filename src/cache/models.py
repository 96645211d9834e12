# src/cache/models.py — v1
"""Cache domain models: CacheEntry, CacheEvent, TagWrite, CacheStats.

Timestamps that travel through backends (``last_modified``,
``revalidated_at``) are integer epoch milliseconds so that entries written by
other replicas compare directly.
"""

from __future__ import annotations

import time
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

EntryType = Literal["cache", "fetch", "composable"]

#: Returned by TagIndex.get_last_modified when a tag fired after the baseline.
FORCE_REGENERATE = -1


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CacheEventType(str, Enum):
    HIT = "HIT"
    MISS = "MISS"
    SET = "SET"
    DELETE = "DELETE"
    INVALIDATE = "INVALIDATE"
    REVALIDATE = "REVALIDATE"


class CacheEntry(BaseModel):
    """A cached artifact plus the time it was written."""

    model_config = ConfigDict(frozen=True)

    value: Any
    last_modified: int


class CacheEvent(BaseModel):
    """One observed cache operation."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    type: CacheEventType
    source: str
    key: str
    tag: str | None = None
    duration_ms: int | None = None
    details: str | None = None


class TagWrite(BaseModel):
    """Association of a tag with a path, optionally marking a revalidation."""

    tag: str
    path: str
    revalidated_at: int | None = None


class CacheStats(BaseModel):
    """Aggregate counts over the events currently retained."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    invalidations: int = 0
    revalidations: int = 0
    hit_rate: str = "N/A"
    total_events: int = 0
