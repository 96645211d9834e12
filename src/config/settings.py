# src/config/settings.py — v1
"""Typed configuration loaded from environment / .env via pydantic-settings.

Single source of truth for every deployment-specific setting: key prefix and
build version, backend selection for artifacts, tags and snapshots, Redis
connection policy, bootstrap thresholds, metrics and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from environment and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Keys ===
    cache_key_prefix: str = "edgecache"
    build_version: str = ""

    # === Incremental content cache ===
    artifact_backend: Literal["memory", "local", "s3", "redis"] = "local"
    cache_root: Path = Path("~/.edgecache/artifacts")
    cache_ttl_seconds: int = 3600
    cache_operation_timeout_s: float = 2.0

    # === Object storage ===
    s3_bucket: str = ""
    s3_prefix: str = ""
    s3_region: str = ""
    s3_endpoint_url: str = ""

    # === Redis ===
    redis_url: str = ""
    redis_connect_timeout_s: float = 5.0
    redis_connect_max_attempts: int = 3
    redis_retry_base_delay_s: float = 0.05
    redis_retry_max_delay_s: float = 2.0

    # === Tag invalidation index ===
    tag_backend: Literal["memory", "redis"] = "memory"

    # === Event recorder ===
    event_buffer_size: int = 100

    # === Snapshots / bootstrap ===
    snapshot_backend: Literal["memory", "local", "s3"] = "local"
    snapshot_root: Path = Path("~/.edgecache/snapshots")
    snapshot_prefix: str = "bytecode-cache"
    route_id: str = "home"
    snapshot_thresholds: str = "20,40,60,80,100"
    snapshot_poll_interval_s: float = 0.0
    bundle_fetch_timeout_s: float = 30.0

    # === Metrics ===
    app_name: str = "edgecache"
    metrics_watch_interval_s: float = 0.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("event_buffer_size")
    @classmethod
    def validate_event_buffer_size(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("event_buffer_size must be >= 1")
        return v

    @field_validator("redis_connect_max_attempts")
    @classmethod
    def validate_connect_attempts(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("redis_connect_max_attempts must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if "redis" in (self.artifact_backend, self.tag_backend) and not self.redis_url:
            errors.append("REDIS_URL must be set when a redis backend is selected")

        if "s3" in (self.artifact_backend, self.snapshot_backend) and not self.s3_bucket:
            errors.append("S3_BUCKET must be set when an s3 backend is selected")

        try:
            thresholds = _parse_thresholds(self.snapshot_thresholds)
        except ValueError:
            errors.append("SNAPSHOT_THRESHOLDS must be comma-separated integers")
        else:
            if not thresholds:
                errors.append("SNAPSHOT_THRESHOLDS must not be empty")
            elif any(t < 1 or t > 100 for t in thresholds):
                errors.append("SNAPSHOT_THRESHOLDS values must be within 1..100")
            elif any(a >= b for a, b in zip(thresholds, thresholds[1:])):
                errors.append("SNAPSHOT_THRESHOLDS must be strictly ascending")

        if self.snapshot_poll_interval_s < 0 or self.metrics_watch_interval_s < 0:
            errors.append("SNAPSHOT_POLL_INTERVAL_S and METRICS_WATCH_INTERVAL_S must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def snapshot_thresholds_list(self) -> list[int]:
        """Parse comma-separated snapshot thresholds."""
        return _parse_thresholds(self.snapshot_thresholds)


def _parse_thresholds(raw: str) -> list[int]:
    return [int(p.strip()) for p in raw.split(",") if p.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment / .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
