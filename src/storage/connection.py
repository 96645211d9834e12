# src/storage/connection.py — v1
"""Process-wide Redis connection handle.

One instance per Redis URL is created by the service root and shared by the
artifact store and the tag store. Concurrent first-use callers await a
single in-flight connect task; a failed connect clears it so a later call
can retry. Requires 'redis' package: pip install redis.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from edgecache.storage.retry import BackoffPolicy, with_backoff

logger = logging.getLogger(__name__)


class RedisConnection:
    """Lazily connected, shared ``redis.asyncio`` client."""

    def __init__(
        self,
        redis_url: str,
        *,
        connect_timeout_s: float = 5.0,
        operation_timeout_s: float | None = None,
        policy: BackoffPolicy | None = None,
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._url = redis_url
        self._connect_timeout_s = connect_timeout_s
        self._operation_timeout_s = operation_timeout_s
        self._policy = policy or BackoffPolicy()
        self._client_factory = client_factory
        self._client: Any = None
        self._ready = False
        self._connecting: asyncio.Task | None = None
        self.connect_attempts = 0

    @classmethod
    def from_settings(cls, settings: Any) -> RedisConnection:
        return cls(
            settings.redis_url,
            connect_timeout_s=settings.redis_connect_timeout_s,
            operation_timeout_s=settings.cache_operation_timeout_s,
            policy=BackoffPolicy(
                max_attempts=settings.redis_connect_max_attempts,
                base_delay_s=settings.redis_retry_base_delay_s,
                max_delay_s=settings.redis_retry_max_delay_s,
            ),
        )

    @property
    def is_ready(self) -> bool:
        return self._ready

    async def get_client(self) -> Any:
        """Return a connected client, connecting on first use.

        Raises:
            BackendUnavailableError: If the connect cycle failed.
        """
        if self._ready:
            return self._client
        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._connect())
        return await asyncio.shield(self._connecting)

    async def _connect(self) -> Any:
        try:
            if self._client is None:
                self._client = self._create_client()
            client = self._client

            async def _ping() -> Any:
                self.connect_attempts += 1
                return await client.ping()

            await with_backoff(_ping, backend="redis", policy=self._policy)
        except BaseException:
            self._connecting = None
            raise
        self._ready = True
        self._connecting = None
        logger.info("Redis connection ready")
        return client

    def _create_client(self) -> Any:
        if self._client_factory is not None:
            return self._client_factory()
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError("redis package required: pip install redis") from e

        return aioredis.from_url(
            self._url,
            decode_responses=False,
            socket_connect_timeout=self._connect_timeout_s,
            socket_timeout=self._operation_timeout_s,
            health_check_interval=30,
        )

    async def close(self) -> None:
        """Close the client and forget the connection state."""
        if self._connecting is not None:
            self._connecting.cancel()
            self._connecting = None
        if self._client is not None:
            await self._client.aclose()
            logger.info("Redis connection closed")
        self._client = None
        self._ready = False
