# src/logging/context.py — v1
"""Contextual logging support: attach build_version, route_id and request_id to records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_build_version: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "build_version", default=None
)
_route_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "route_id", default=None
)
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    build_version: str | None = None
    route_id: str | None = None
    request_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        build_version=_build_version.get(),
        route_id=_route_id.get(),
        request_id=_request_id.get(),
    )


def set_cache_context(build_version: str | None, request_id: str | None = None) -> None:
    """Set cache-level context (once per process, optionally per request)."""
    _build_version.set(build_version or None)
    if request_id is not None:
        _request_id.set(request_id)


def set_route_context(route_id: str) -> None:
    """Set bootstrap route context."""
    _route_id.set(route_id)


def clear_context() -> None:
    """Reset all context variables."""
    _build_version.set(None)
    _route_id.set(None)
    _request_id.set(None)
