# src/cache/serialization.py — v1
"""JSON envelope codec for cache entries.

Rendered artifacts carry binary payloads (RSC data, segment maps of bytes)
that plain JSON cannot hold. Bytes are tagged as
``{"__type": "bytes", "data": <base64>}`` on the way in and restored on the
way out; everything else must already be JSON-compatible.
"""

from __future__ import annotations

import base64
import json
from typing import Any

from edgecache.cache.models import CacheEntry

_TYPE_KEY = "__type"


class SerializationError(ValueError):
    """Stored payload could not be decoded into a CacheEntry."""


def _encode_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return {_TYPE_KEY: "bytes", "data": base64.b64encode(bytes(value)).decode("ascii")}
    if isinstance(value, dict):
        return {str(k): _encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_value(v) for v in value]
    return value


def _decode_hook(obj: dict[str, Any]) -> Any:
    if obj.get(_TYPE_KEY) == "bytes" and isinstance(obj.get("data"), str):
        return base64.b64decode(obj["data"])
    return obj


def encode_entry(entry: CacheEntry) -> bytes:
    """Serialize an entry into the stored envelope."""
    payload = {"value": _encode_value(entry.value), "lastModified": entry.last_modified}
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def decode_entry(raw: bytes) -> CacheEntry:
    """Deserialize a stored envelope.

    Raises:
        SerializationError: If the payload is not a valid envelope.
    """
    try:
        payload = json.loads(raw.decode("utf-8"), object_hook=_decode_hook)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise SerializationError(f"Malformed cache payload: {e}") from e

    if not isinstance(payload, dict) or "value" not in payload:
        raise SerializationError("Cache payload has no 'value'")
    last_modified = payload.get("lastModified")
    if not isinstance(last_modified, int) or isinstance(last_modified, bool):
        raise SerializationError("Cache payload has no integer 'lastModified'")
    return CacheEntry(value=payload["value"], last_modified=last_modified)
