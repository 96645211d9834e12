"""Service root wiring the cache tier together."""
