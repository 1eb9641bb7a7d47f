"""Ride Share data layer services.

Service layer components:
- Fetch: authenticated httpx client for the ride share API
- Cache: in-memory freshness cache (TTL + invalidation)
- Views: grouping and ranking derived from cached payloads
- Datasets: consumer adapters (locations, suggestions, notifications)
- Polling: periodic invalidation of user-scoped datasets
"""

from .fetch import ApiClient, RequestError
from .cache import CacheEntry, CacheService, InMemoryCacheService
from .polling import PollingSynchronizer, Subscription
from .datasets import (
    DataLayer,
    DatasetAdapter,
    LocationsAdapter,
    NotificationFeedAdapter,
    ReadResult,
    SuggestionsAdapter,
    UnreadNotificationsAdapter,
    create_data_layer,
)

__all__ = [
    # Fetch
    "ApiClient",
    "RequestError",
    # Cache
    "CacheEntry",
    "CacheService",
    "InMemoryCacheService",
    # Polling
    "PollingSynchronizer",
    "Subscription",
    # Datasets
    "DataLayer",
    "DatasetAdapter",
    "LocationsAdapter",
    "NotificationFeedAdapter",
    "ReadResult",
    "SuggestionsAdapter",
    "UnreadNotificationsAdapter",
    "create_data_layer",
]
