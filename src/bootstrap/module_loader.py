# src/bootstrap/module_loader.py — v1
"""Deduplicating in-process loader for remote code bundles.

Loaded modules are cached by normalized URL. Concurrent loads of one URL
share a single in-flight task (single-flight), so every caller sees the same
module or the same error. Unlike the cache tier, a bundle that cannot be
fetched or materialized is fatal to bootstrap and the error propagates.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import time
import types
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Protocol

import httpx

logger = logging.getLogger(__name__)


class ModuleLoadError(Exception):
    """A required bundle could not be fetched or materialized."""

    def __init__(self, url: str, cause: Exception):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to load bundle {url}: {cause}")


class BundleFetcher(Protocol):
    async def fetch(self, url: str) -> bytes: ...


class HttpBundleFetcher:
    """Fetch bundle bytes over HTTP(S) with httpx."""

    def __init__(
        self,
        timeout_s: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._client = client
        self._owns_client = client is None

    async def fetch(self, url: str) -> bytes:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s, follow_redirects=True)
        response = await self._client.get(url)
        response.raise_for_status()
        return response.content

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


Materializer = Callable[[str, bytes], Any]


def normalize_url(url: str) -> str:
    """Cache key for a bundle URL."""
    return url.strip().rstrip("/")


def materialize_module(url: str, source: bytes) -> types.ModuleType:
    """Execute Python bundle source in a fresh module namespace."""
    name = "edgecache_bundle_" + hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]  # noqa: S324
    module = types.ModuleType(name)
    module.__file__ = url
    code = compile(source, url, "exec")
    exec(code, module.__dict__)  # noqa: S102
    return module


@dataclass
class LoadedModule:
    module: Any
    source: bytes
    loaded_at: float
    load_time_ms: int


class ModuleLoader:
    """Single-flight, caching loader of remote bundles."""

    def __init__(
        self,
        fetcher: BundleFetcher,
        materializer: Materializer = materialize_module,
    ) -> None:
        self._fetcher = fetcher
        self._materializer = materializer
        self._modules: dict[str, LoadedModule] = {}
        self._in_flight: dict[str, asyncio.Task] = {}
        self.hits = 0
        self.misses = 0
        self.fetches = 0

    def is_loaded(self, url: str) -> bool:
        return normalize_url(url) in self._modules

    def get(self, url: str) -> LoadedModule | None:
        return self._modules.get(normalize_url(url))

    async def load(self, url: str) -> Any:
        """Return the module for ``url``, fetching it at most once.

        Raises:
            ModuleLoadError: If fetching or materializing failed.
        """
        key = normalize_url(url)
        cached = self._modules.get(key)
        if cached is not None:
            self.hits += 1
            logger.debug("Cache hit for %s", key)
            return cached.module

        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(key))
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug("Waiting for in-flight load of %s", key)
        # Shielded: a cancelled waiter must not cancel the shared load.
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled():
            task.exception()

    async def _load(self, key: str) -> Any:
        start = time.perf_counter()
        self.fetches += 1
        try:
            source = await self._fetcher.fetch(key)
            module = self._materializer(key, source)
        except Exception as e:
            self.misses += 1
            logger.error("Failed to load %s: %s", key, e)
            raise ModuleLoadError(key, e) from e

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        self._modules[key] = LoadedModule(
            module=module, source=source, loaded_at=time.time(), load_time_ms=elapsed_ms
        )
        logger.info("Loaded %s (%d bytes, %dms)", key, len(source), elapsed_ms)
        return module

    async def preload(self, urls: Iterable[str]) -> list[Any]:
        """Load a batch concurrently; duplicates collapse onto one fetch."""
        url_list = list(urls)
        logger.info("Preloading %d bundles", len(url_list))
        return list(await asyncio.gather(*(self.load(u) for u in url_list)))

    def seed(self, sources: dict[str, bytes]) -> list[str]:
        """Materialize pre-fetched sources (e.g. from a snapshot).

        Sources that fail to materialize are skipped and will be fetched
        normally later. Returns the normalized URLs that were seeded.
        """
        seeded: list[str] = []
        for url, source in sources.items():
            key = normalize_url(url)
            if key in self._modules:
                continue
            try:
                module = self._materializer(key, source)
            except Exception as e:
                logger.warning("Skipping snapshot module %s: %s", key, e)
                continue
            self._modules[key] = LoadedModule(
                module=module, source=source, loaded_at=time.time(), load_time_ms=0
            )
            seeded.append(key)
        return seeded

    def export_sources(self) -> dict[str, bytes]:
        """Bundle sources of every loaded module, keyed by URL."""
        return {key: loaded.source for key, loaded in self._modules.items()}

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._modules),
            "urls": sorted(self._modules),
            "hits": self.hits,
            "misses": self.misses,
            "fetches": self.fetches,
            "in_flight": len(self._in_flight),
        }

    def clear(self) -> None:
        """Forget every loaded module (in-flight loads are unaffected)."""
        self._modules.clear()
        logger.info("Module cache cleared")
