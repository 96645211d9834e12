"""Structured logging with build/route/request context."""
