"""Freshness cache for reference datasets."""

from .service import CacheEntry, CacheService, Clock, InMemoryCacheService

__all__ = [
    "CacheEntry",
    "CacheService",
    "Clock",
    "InMemoryCacheService",
]
