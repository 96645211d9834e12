# src/logging/logger.py — v1
"""Logger factory with JSON and text formatters.

Cache and bootstrap components log through the ``edgecache`` logger tree.
Structured payloads travel in ``extra={"data": {...}}`` and are rendered
under the ``data`` key by the JSON formatter; the current build/route/request
context is attached to every line.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from edgecache.logging.context import get_context

ROOT_LOGGER = "edgecache"


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            payload["context"] = context

        data = getattr(record, "data", None)
        if data:
            payload["data"] = data

        if record.exc_info and record.exc_info[1] is not None:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable single-line formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        prefix = f"{_record_time(record):%Y-%m-%d %H:%M:%S} [{record.levelname:8s}] {record.name}"
        if ctx.route_id:
            prefix += f" [{ctx.route_id}]"
        if ctx.build_version:
            prefix += f" (build {ctx.build_version})"

        line = f"{prefix} - {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


_FORMATTERS: dict[str, type[logging.Formatter]] = {
    "json": JsonFormatter,
    "text": TextFormatter,
}


def get_logger(name: str) -> logging.Logger:
    """Named logger under the edgecache tree; handlers come from setup_logging()."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | Path | None = None,
    rotation: str = "10MB",
    retention: int = 30,
) -> None:
    """Configure the ``edgecache`` logger; calling it again replaces the handlers.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. DEBUG also emits one line per cache event.
        log_format: "json" (production) or "text".
        log_file: Optional file that receives the same lines, size-rotated.
        rotation: Size that triggers rotation, e.g. "10MB".
        retention: Rotated files kept.
    """
    formatter = _FORMATTERS.get(log_format, TextFormatter)()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        from edgecache.logging.handlers import create_rotating_handler

        handlers.append(create_rotating_handler(log_file, rotation=rotation, retention=retention))

    root = logging.getLogger(ROOT_LOGGER)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def setup_logging_from_settings(settings: Any) -> None:
    """Configure logging from a Settings instance."""
    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
