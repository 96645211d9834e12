"""Artifact store backends and the shared Redis connection."""
