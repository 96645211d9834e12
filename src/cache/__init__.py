"""Build-scoped incremental cache, tag index and cache events."""
