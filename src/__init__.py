"""edgecache: build-scoped artifact cache, tag invalidation and cold-start snapshots."""

from edgecache.version import __version__

__all__ = ["__version__"]
