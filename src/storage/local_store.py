# src/storage/local_store.py — v1
"""Local filesystem artifact store (ARTIFACT_BACKEND=local, the default).

Key segments separated by ``/`` become sub-directories under the root.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

from edgecache.storage.base_artifact_store import BaseArtifactStore


class LocalArtifactStore(BaseArtifactStore):
    """Write artifacts to the local filesystem."""

    name = "local"

    def __init__(self, root: str | Path) -> None:
        """Initialize with a root directory (created if missing).

        Args:
            root: Directory that holds every artifact.
        """
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        """Resolve a key to a path below root, refusing traversal."""
        parts = [p for p in key.split("/") if p not in ("", ".")]
        if not parts or ".." in parts:
            raise ValueError(f"Invalid artifact key: {key!r}")
        return self._root.joinpath(*parts)

    async def get(self, key: str) -> bytes | None:
        path = self._resolve(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None

    async def put(self, key: str, data: bytes, *, ttl_seconds: int | None = None) -> None:
        # Expiry is left to the operator (e.g. a tmpwatch job); ttl is ignored.
        await asyncio.to_thread(self._write_atomic, self._resolve(key), data)

    async def delete(self, key: str) -> None:
        path = self._resolve(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
