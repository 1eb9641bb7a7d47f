"""Freshness cache implementation.

This module provides an abstract freshness cache interface and a concrete
in-memory implementation. The cache holds the reference collections served to
riders: location catalogs, location suggestions and notification state.

Each entry remembers when it was last fetched and for how long it counts as
fresh. Invalidation only forgets the timestamp. The last payload stays
available so consumers can keep showing it while a refetch runs.

Freshness rule:
- An entry is fresh iff ``now - fetched_at < ttl`` (stale at equality)
- ``ttl=None`` means the entry stays fresh until it is invalidated
- Absent or invalidated entries are never fresh
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """A cached dataset with its derived view and freshness metadata."""
    key: str
    payload: Sequence[Any]
    fetched_at: Optional[float]
    ttl: Optional[float]
    view: Any = None

    def is_fresh(self, now: float) -> bool:
        if self.fetched_at is None:
            return False
        if self.ttl is None:
            return True
        return now - self.fetched_at < self.ttl


class CacheService(ABC):
    """Abstract base class for freshness caches.

    Defines lookup, write and invalidation for dataset keys. Also provides
    static helpers for building consistent dataset keys.
    """

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        """Return the current entry for a key without fetching anything.

        Args:
            key: The dataset key to look up.

        Returns:
            The entry if one was ever stored, None otherwise.
        """
        pass

    @abstractmethod
    def put(
        self,
        key: str,
        payload: Sequence[Any],
        ttl: float | None,
        view: Any = None,
    ) -> CacheEntry:
        """Store a payload with ``fetched_at = now``, replacing any prior entry.

        Args:
            key: The dataset key to store under.
            payload: Ordered records returned by the API.
            ttl: Freshness window in seconds, or None for "until invalidated".
            view: Derived view computed from ``payload``.

        Returns:
            The stored entry.
        """
        pass

    @abstractmethod
    def invalidate(self, key: str) -> bool:
        """Mark an entry stale so the next read refetches it.

        Args:
            key: The dataset key to invalidate.

        Returns:
            True if an entry existed, False otherwise.
        """
        pass

    @abstractmethod
    def is_fresh(self, key: str) -> bool:
        """Check whether the entry for a key is within its freshness window."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove an entry and its payload entirely.

        Args:
            key: The dataset key to delete.

        Returns:
            True if the entry was deleted, False if it didn't exist.
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""
        pass

    @staticmethod
    def build_locations_key(city: str) -> str:
        """Generate the dataset key for a city's location catalog.

        Example:
            >>> CacheService.build_locations_key("Vadodara")
            'locations:Vadodara'
        """
        return f"locations:{city}"

    @staticmethod
    def build_unread_notifications_key(user_id: str) -> str:
        """Generate the dataset key for a user's unread notification state."""
        return f"unread-notifications:{user_id}"

    @staticmethod
    def build_notifications_key(user_id: str) -> str:
        """Generate the dataset key for a user's notification feed."""
        return f"notifications:{user_id}"


class InMemoryCacheService(CacheService):
    """Process-local freshness cache.

    Runs on a single event loop and takes no locks. Entries live until
    ``clear()`` is called or the process exits.

    Attributes:
        _entries: Entries keyed by dataset key.
        _clock: Monotonic time source, injectable for tests.
    """

    def __init__(self, clock: Clock = time.monotonic) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def put(
        self,
        key: str,
        payload: Sequence[Any],
        ttl: float | None,
        view: Any = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            key=key,
            payload=payload,
            fetched_at=self._clock(),
            ttl=ttl,
            view=view,
        )
        self._entries[key] = entry
        logger.debug(f"[CACHE] put {key}: {len(payload)} records")
        return entry

    def invalidate(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        entry.fetched_at = None
        logger.debug(f"[CACHE] invalidated {key}")
        return True

    def invalidate_prefix(self, prefix: str) -> int:
        """Invalidate every entry whose key starts with ``prefix``.

        Returns:
            Number of entries invalidated.
        """
        count = 0
        for key in list(self._entries):
            if key.startswith(prefix) and self.invalidate(key):
                count += 1
        return count

    def is_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        return entry.is_fresh(self._clock())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()
        logger.info("[CACHE] cleared")

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
