"""Shared services: HTTP session and the cache-aware weather service."""
