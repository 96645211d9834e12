# src/bootstrap/poller.py — v1
"""Cancellable periodic background task.

Runs an async callback every ``interval_s`` seconds until ``stop()``. The
owner must stop it on shutdown; nothing here keeps the process alive on its
own, and ``stop()`` waits for the current tick to unwind.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Call ``callback`` periodically on the running event loop."""

    def __init__(
        self,
        callback: Callable[[], Awaitable[None]],
        interval_s: float,
        *,
        name: str = "periodic",
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._callback = callback
        self._interval_s = interval_s
        self._name = name
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval_s)
            self.ticks += 1
            try:
                await self._callback()
            except Exception as e:
                logger.warning("Periodic task %s failed: %s", self._name, e)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
