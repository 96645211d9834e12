# src/storage/retry.py — v1
"""Bounded retry with capped exponential backoff for backend connections."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackendUnavailableError(Exception):
    """All connection attempts to a backend failed."""

    def __init__(self, backend: str, attempts: int, last_error: Exception):
        self.backend = backend
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Backend '{backend}' unavailable after {attempts} attempts: {last_error}"
        )


@dataclass(frozen=True)
class BackoffPolicy:
    """Connection retry policy."""

    max_attempts: int = 3
    base_delay_s: float = 0.05
    max_delay_s: float = 2.0
    backoff_factor: float = 2.0
    jitter: bool = False


def compute_delay(policy: BackoffPolicy, attempt: int) -> float:
    """Delay before retry number ``attempt`` (1-based), clamped to max_delay_s."""
    delay = policy.base_delay_s * (policy.backoff_factor ** (attempt - 1))
    if policy.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, policy.max_delay_s)


async def with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    backend: str,
    policy: BackoffPolicy,
) -> T:
    """Run ``fn`` until it succeeds or attempts are exhausted.

    Raises:
        BackendUnavailableError: If every attempt failed.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn()
        except Exception as e:
            if attempt >= policy.max_attempts:
                raise BackendUnavailableError(backend, attempt, e) from e
            delay = compute_delay(policy, attempt)
            logger.warning(
                "Backend '%s' connect failed (attempt %d/%d): %s; retrying in %.2fs",
                backend, attempt, policy.max_attempts, e, delay,
            )
            await asyncio.sleep(delay)
