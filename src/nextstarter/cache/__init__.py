"""Template cache."""

from .store import DEFAULT_MAX_AGE, TEMPLATE_VERSION, CacheEntry, CacheStore

__all__ = ["DEFAULT_MAX_AGE", "TEMPLATE_VERSION", "CacheEntry", "CacheStore"]
