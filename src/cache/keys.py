# src/cache/keys.py — v1
"""Key builders for the incremental cache and the tag index.

Incremental cache keys embed the build version, so a redeploy makes every
previous artifact unreachable without deleting anything. Tag index keys
never embed it: tags and revalidation markers must outlive deployments.
"""

from __future__ import annotations

from edgecache.cache.models import EntryType

FETCH_MARKER = "__fetch"


def _join(*segments: str) -> str:
    return "/".join(s.strip("/") for s in segments if s and s.strip("/"))


def _prefixed(prefix: str, leaf: str) -> str:
    prefix = prefix.rstrip("/")
    return f"{prefix}/{leaf}" if prefix else leaf


def build_cache_key(
    prefix: str,
    key: str,
    entry_type: EntryType,
    build_version: str,
) -> str:
    """``prefix/cache/[__fetch/]build_version/key[.entry_type]``.

    Fetch responses have no extension; page and composable artifacts are
    suffixed with their entry type.
    """
    is_fetch = entry_type == "fetch"
    leaf = key.lstrip("/") if is_fetch else f"{key.lstrip('/')}.{entry_type}"
    return _join(
        prefix,
        "cache",
        FETCH_MARKER if is_fetch else "",
        build_version,
        leaf,
    )


def tag_paths_key(prefix: str, tag: str) -> str:
    """Set of paths carrying ``tag``."""
    return _prefixed(prefix, f"tag:{tag}")


def path_tags_key(prefix: str, path: str) -> str:
    """Set of tags attached to ``path``."""
    return _prefixed(prefix, f"path:{path}:tags")


def tag_revalidated_key(prefix: str, tag: str) -> str:
    """Epoch-ms marker of the last revalidation of ``tag``."""
    return _prefixed(prefix, f"tag:{tag}:revalidatedAt")
