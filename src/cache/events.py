# src/cache/events.py — v1
"""In-process recorder of cache operations.

Holds the latest N events most-recent-first and derives hit/miss statistics
from them. Purely observational: losing it (restart, clear) never changes
cache behaviour. One recorder is built by the service root and passed to
every component that emits events.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone

from edgecache.cache.models import CacheEvent, CacheEventType, CacheStats

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class EventRecorder:
    """Fixed-capacity ring buffer of CacheEvents."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity = capacity
        self._events: deque[CacheEvent] = deque(maxlen=capacity)
        self._counter = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._events)

    def record(
        self,
        type: CacheEventType,
        source: str,
        key: str,
        *,
        tag: str | None = None,
        duration_ms: int | None = None,
        details: str | None = None,
    ) -> CacheEvent:
        """Append a new event, evicting the oldest one when full."""
        self._counter += 1
        event = CacheEvent(
            id=f"evt-{self._counter}",
            timestamp=datetime.now(timezone.utc),
            type=type,
            source=source,
            key=key,
            tag=tag,
            duration_ms=duration_ms,
            details=details,
        )
        # maxlen deque drops from the right when appending left
        self._events.appendleft(event)

        if logger.isEnabledFor(logging.DEBUG):
            line = f"{event.type.value} | {source} | {key}"
            if tag:
                line += f" | tag:{tag}"
            if duration_ms:
                line += f" | {duration_ms}ms"
            logger.debug(line, extra={"data": event.model_dump(mode="json")})
        return event

    def events(self, limit: int | None = None) -> list[CacheEvent]:
        """Retained events, most recent first."""
        items = list(self._events)
        return items if limit is None else items[:limit]

    def stats(self) -> CacheStats:
        """Aggregate counts per event type and the derived hit rate."""
        counts = {t: 0 for t in CacheEventType}
        for event in self._events:
            counts[event.type] += 1

        hits = counts[CacheEventType.HIT]
        misses = counts[CacheEventType.MISS]
        total = hits + misses
        hit_rate = f"{hits / total * 100:.2f}%" if total > 0 else "N/A"

        return CacheStats(
            hits=hits,
            misses=misses,
            sets=counts[CacheEventType.SET],
            deletes=counts[CacheEventType.DELETE],
            invalidations=counts[CacheEventType.INVALIDATE],
            revalidations=counts[CacheEventType.REVALIDATE],
            hit_rate=hit_rate,
            total_events=len(self._events),
        )

    def clear(self) -> None:
        """Drop all events and restart the id sequence."""
        self._events.clear()
        self._counter = 0
