# src/storage/s3_store.py — v1
"""S3-compatible artifact store (ARTIFACT_BACKEND=s3 / SNAPSHOT_BACKEND=s3).

Supports AWS S3, MinIO, and other S3-compatible storage (including GCS in
interoperability mode). Requires 'boto3' package: pip install boto3.
boto3 is blocking, so every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging

from edgecache.storage.base_artifact_store import BaseArtifactStore

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3ArtifactStore(BaseArtifactStore):
    """Store artifacts in S3-compatible object storage."""

    name = "s3"

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        """Initialize S3 store.

        Args:
            bucket: S3 bucket name.
            prefix: Key prefix for all objects (e.g. "edgecache/").
            region: AWS region (optional, uses boto3 default if not set).
            endpoint_url: Custom endpoint for MinIO/compatible storage.
        """
        try:
            import boto3
        except ImportError as e:
            raise ImportError(
                "boto3 package required for S3 store: pip install boto3"
            ) from e

        kwargs: dict = {}
        if region:
            kwargs["region_name"] = region
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url

        self._s3 = boto3.client("s3", **kwargs)
        self._bucket = bucket
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""

    def _full_key(self, key: str) -> str:
        """Build the full S3 key from a store key."""
        return f"{self._prefix}{key.lstrip('/')}"

    async def get(self, key: str) -> bytes | None:
        full_key = self._full_key(key)
        try:
            response = await asyncio.to_thread(
                self._s3.get_object, Bucket=self._bucket, Key=full_key
            )
        except Exception as e:
            if _error_code(e) in _MISSING_CODES:
                return None
            raise
        return await asyncio.to_thread(response["Body"].read)

    async def put(self, key: str, data: bytes, *, ttl_seconds: int | None = None) -> None:
        # Object expiry is configured as a bucket lifecycle rule, not per object.
        full_key = self._full_key(key)
        await asyncio.to_thread(
            self._s3.put_object,
            Bucket=self._bucket,
            Key=full_key,
            Body=data,
            ContentType="application/json",
            CacheControl="private, max-age=0",
        )
        logger.debug("S3 write: s3://%s/%s (%d bytes)", self._bucket, full_key, len(data))

    async def delete(self, key: str) -> None:
        # DeleteObject succeeds for missing keys
        await asyncio.to_thread(
            self._s3.delete_object, Bucket=self._bucket, Key=self._full_key(key)
        )

    async def close(self) -> None:
        await asyncio.to_thread(self._s3.close)


def _error_code(error: Exception) -> str:
    """Extract the S3 error code from a botocore ClientError, if any."""
    response = getattr(error, "response", None)
    if isinstance(response, dict):
        return str(response.get("Error", {}).get("Code", ""))
    return ""
