"""Consumer adapters over the freshness cache.

Each adapter serves one dataset key through the same contract:

- ``read()``: first read awaits the fetch; a fresh entry is returned as is;
  a stale entry is returned immediately while a background task refetches it
- ``refresh()``: invalidate and refetch regardless of freshness
- ``snapshot()``: current state, never fetches

A failed fetch keeps the last payload and does not advance ``fetched_at``,
so the next read retries. The error message is surfaced on the result.

Datasets:
- Locations: ``locations:<city>``, 5 minute TTL, grouped by category
- Suggestions: ``location-suggestions``, 2 minute TTL, ranked from rides
- Notifications: ``unread-notifications:<user>`` / ``notifications:<user>``,
  no TTL, invalidated by the polling synchronizer
"""

import asyncio
import logging
from collections import OrderedDict
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Generic, Optional, Sequence, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from app.config import Settings
from app.models import (
    LocationAnalytics,
    LocationRecord,
    Notification,
    RideEndpoints,
    SuggestionRecord,
)
from app.services.cache import CacheService, InMemoryCacheService
from app.services.fetch import ApiClient, RequestError
from app.services.polling import PollingSynchronizer
from app.services.views import (
    CATEGORY_ORDER,
    GroupedView,
    build_grouped,
    build_location_analytics,
    build_suggestions,
    count_unread,
    filter_suggestions,
    find_location_by_name,
    latest_notifications,
    select_city_locations,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)

LOCATIONS_TTL = 5 * 60
SUGGESTIONS_TTL = 2 * 60
NOTIFICATIONS_POLL_INTERVAL = 15.0
SUGGESTIONS_KEY = "location-suggestions"


@dataclass
class ReadResult:
    """What a consumer renders: records, derived view and status flags."""
    data: Optional[list[Any]]
    view: Any = None
    loading: bool = False
    error: Optional[str] = None


class DatasetAdapter(ABC, Generic[R]):
    """Base adapter: owns the fetch path for one cache key.

    Subclasses set ``record_model`` and implement ``_path`` and ``_derive``.
    They may override ``_select`` to filter the parsed records.
    """

    record_model: type[BaseModel]

    def __init__(
        self,
        cache: CacheService,
        client: ApiClient,
        key: str,
        ttl: float | None,
        coalesce: bool = False,
    ) -> None:
        self._cache = cache
        self._client = client
        self._key = key
        self._ttl = ttl
        self._coalesce = coalesce
        self._error: str | None = None
        self._inflight = 0
        self._pending: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()
        self._records = TypeAdapter(list[self.record_model])

    @property
    def key(self) -> str:
        return self._key

    @property
    def ttl(self) -> float | None:
        return self._ttl

    @property
    def loading(self) -> bool:
        return self._inflight > 0 and self._cache.get(self._key) is None

    @property
    def error(self) -> str | None:
        return self._error

    @abstractmethod
    def _path(self) -> str:
        """API path the dataset is fetched from."""

    @abstractmethod
    def _derive(self, payload: list[R]) -> Any:
        """Compute the derived view for a freshly fetched payload."""

    def _select(self, records: list[R]) -> list[R]:
        return records

    def _parse(self, raw: Any) -> list[R]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise RequestError(f"Unexpected response shape from {self._path()}")
        try:
            return self._records.validate_python(raw)
        except ValidationError as e:
            raise RequestError(
                f"Unexpected record shape from {self._path()}: {e.error_count()} errors"
            ) from e

    def snapshot(self) -> ReadResult:
        entry = self._cache.get(self._key)
        return ReadResult(
            data=list(entry.payload) if entry is not None else None,
            view=entry.view if entry is not None else None,
            loading=self.loading,
            error=self._error,
        )

    async def read(self) -> ReadResult:
        """Serve the dataset according to its freshness."""
        entry = self._cache.get(self._key)
        if entry is None:
            await self._fetch()
            return self.snapshot()
        if not self._cache.is_fresh(self._key):
            self._schedule_background_refetch()
        return self.snapshot()

    async def refresh(self) -> ReadResult:
        """Refetch now, bypassing the freshness check."""
        self._cache.invalidate(self._key)
        await self._fetch()
        return self.snapshot()

    async def _fetch(self) -> bool:
        if not self._coalesce:
            return await self._fetch_and_store()
        if self._pending is None or self._pending.done():
            self._pending = asyncio.get_running_loop().create_task(self._fetch_and_store())
        # Shield so a cancelled reader does not cancel the fetch others share.
        return await asyncio.shield(self._pending)

    async def _fetch_and_store(self) -> bool:
        self._inflight += 1
        try:
            raw = await self._client.fetch_json(self._path())
            payload = self._select(self._parse(raw))
        except RequestError as e:
            self._error = e.message
            stale = self._cache.get(self._key) is not None
            logger.warning(
                f"[DATA] {self._key}: fetch failed ({e.message}); "
                f"{'keeping last payload' if stale else 'no data yet'}"
            )
            return False
        finally:
            self._inflight -= 1

        self._cache.put(self._key, payload, self._ttl, view=self._derive(payload))
        self._error = None
        logger.info(f"[DATA] {self._key}: {len(payload)} records")
        return True

    def _schedule_background_refetch(self) -> None:
        if any(not t.done() for t in self._background):
            return
        if self._pending is not None and not self._pending.done():
            return
        task = asyncio.get_running_loop().create_task(self._fetch(), name=f"refetch:{self._key}")
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_background(self) -> None:
        """Wait for scheduled background refetches to settle."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def cancel_pending(self) -> list[asyncio.Task]:
        """Cancel background and coalesced fetches; returns the cancelled tasks."""
        tasks = [t for t in self._background if not t.done()]
        if self._pending is not None and not self._pending.done():
            tasks.append(self._pending)
        for task in tasks:
            task.cancel()
        return tasks

    async def close(self) -> None:
        tasks = self.cancel_pending()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)


class LocationsAdapter(DatasetAdapter[LocationRecord]):
    """Reference location catalog of one city, grouped by category."""

    record_model = LocationRecord

    def __init__(
        self,
        cache: CacheService,
        client: ApiClient,
        city: str = "Vadodara",
        ttl: float | None = LOCATIONS_TTL,
        category_order: Sequence[str] = CATEGORY_ORDER,
        coalesce: bool = False,
    ) -> None:
        super().__init__(cache, client, cache.build_locations_key(city), ttl, coalesce)
        self._city = city
        self._category_order = tuple(category_order)

    @property
    def city(self) -> str:
        return self._city

    @property
    def category_order(self) -> tuple[str, ...]:
        return self._category_order

    def _path(self) -> str:
        return "/data/locations"

    def _select(self, records: list[LocationRecord]) -> list[LocationRecord]:
        return select_city_locations(records, self._city)

    def _derive(self, payload: list[LocationRecord]) -> GroupedView:
        return build_grouped(payload, self._category_order)

    def get_location_by_name(self, name: str) -> LocationRecord | None:
        """Look a location up by display name in the cached catalog."""
        entry = self._cache.get(self._key)
        if entry is None:
            return None
        return find_location_by_name(entry.payload, name)


class SuggestionsAdapter(DatasetAdapter[RideEndpoints]):
    """Location names ranked by usage across all posted rides."""

    record_model = RideEndpoints

    def __init__(
        self,
        cache: CacheService,
        client: ApiClient,
        ttl: float | None = SUGGESTIONS_TTL,
        coalesce: bool = False,
    ) -> None:
        super().__init__(cache, client, SUGGESTIONS_KEY, ttl, coalesce)

    def _path(self) -> str:
        return "/data/rides"

    def _derive(self, payload: list[RideEndpoints]) -> list[SuggestionRecord]:
        return build_suggestions(payload)

    async def get_filtered_suggestions(
        self, query: str | None, limit: int = 8
    ) -> list[SuggestionRecord]:
        result = await self.read()
        return filter_suggestions(result.view or [], query, limit)

    async def location_analytics(self, limit: int = 15) -> LocationAnalytics:
        result = await self.read()
        return build_location_analytics(result.data or [], limit)


class NotificationsAdapter(DatasetAdapter[Notification]):
    """Base for the user-scoped notification datasets (no TTL)."""

    record_model = Notification

    def __init__(
        self,
        cache: CacheService,
        client: ApiClient,
        key: str,
        user_id: str,
        coalesce: bool = False,
    ) -> None:
        super().__init__(cache, client, key, None, coalesce)
        self._user_id = user_id

    @property
    def user_id(self) -> str:
        return self._user_id

    def _path(self) -> str:
        return "/data/notifications"


class UnreadNotificationsAdapter(NotificationsAdapter):
    """Unread notification count of one user."""

    def __init__(
        self, cache: CacheService, client: ApiClient, user_id: str, coalesce: bool = False
    ) -> None:
        super().__init__(
            cache, client, cache.build_unread_notifications_key(user_id), user_id, coalesce
        )

    def _derive(self, payload: list[Notification]) -> int:
        return count_unread(payload)


class NotificationFeedAdapter(NotificationsAdapter):
    """Notification list of one user, newest first."""

    def __init__(
        self,
        cache: CacheService,
        client: ApiClient,
        user_id: str,
        limit: int | None = 20,
        coalesce: bool = False,
    ) -> None:
        super().__init__(cache, client, cache.build_notifications_key(user_id), user_id, coalesce)
        self._limit = limit

    def _derive(self, payload: list[Notification]) -> list[Notification]:
        return latest_notifications(payload, self._limit)


class DataLayer:
    """Composition root: one cache, one client, one poller, shared adapters.

    Adapters are created on first use and reused, so every consumer of a
    dataset key goes through the same instance.
    """

    def __init__(
        self,
        client: ApiClient,
        cache: CacheService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.client = client
        self.cache = cache or InMemoryCacheService()
        self.poller = PollingSynchronizer(
            self.cache, interval=self.settings.notifications_poll_interval
        )
        # Least recently used city first
        self._locations: OrderedDict[str, LocationsAdapter] = OrderedDict()
        self._suggestions: SuggestionsAdapter | None = None
        self._unread: dict[str, UnreadNotificationsAdapter] = {}
        self._feeds: dict[str, NotificationFeedAdapter] = {}

    def locations(self, city: str | None = None) -> LocationsAdapter:
        """Catalog adapter for a city.

        At most ``settings.max_cached_cities`` city catalogs are kept; the
        least recently used one is dropped (adapter and cache entry) when a
        new city would exceed the limit.
        """
        city = city or self.settings.default_city
        if city in self._locations:
            self._locations.move_to_end(city)
            return self._locations[city]

        while len(self._locations) >= max(self.settings.max_cached_cities, 1):
            evicted_city, evicted = self._locations.popitem(last=False)
            evicted.cancel_pending()
            self.cache.delete(evicted.key)
            logger.info(f"[DATA] evicted location catalog for {evicted_city}")

        self._locations[city] = LocationsAdapter(
            self.cache,
            self.client,
            city=city,
            ttl=self.settings.locations_ttl,
            coalesce=self.settings.coalesce_fetches,
        )
        return self._locations[city]

    def suggestions(self) -> SuggestionsAdapter:
        if self._suggestions is None:
            self._suggestions = SuggestionsAdapter(
                self.cache,
                self.client,
                ttl=self.settings.suggestions_ttl,
                coalesce=self.settings.coalesce_fetches,
            )
        return self._suggestions

    def unread_notifications(self, user_id: str) -> UnreadNotificationsAdapter:
        if user_id not in self._unread:
            self._unread[user_id] = UnreadNotificationsAdapter(
                self.cache, self.client, user_id, coalesce=self.settings.coalesce_fetches
            )
        return self._unread[user_id]

    def notification_feed(self, user_id: str) -> NotificationFeedAdapter:
        if user_id not in self._feeds:
            self._feeds[user_id] = NotificationFeedAdapter(
                self.cache, self.client, user_id, coalesce=self.settings.coalesce_fetches
            )
        return self._feeds[user_id]

    def notification_keys(self, user_id: str) -> list[str]:
        return [
            self.cache.build_unread_notifications_key(user_id),
            self.cache.build_notifications_key(user_id),
        ]

    async def refresh_notifications(self, user_id: str) -> None:
        await asyncio.gather(
            self.unread_notifications(user_id).refresh(),
            self.notification_feed(user_id).refresh(),
        )

    async def mark_notification_read(self, user_id: str, notification_id: str) -> None:
        """Mark one notification read, then refetch the user's notification datasets.

        Raises:
            RequestError: If the API rejects the update.
        """
        await self.client.fetch_json(f"/data/notifications/{notification_id}", method="PATCH")
        await self.refresh_notifications(user_id)

    async def mark_all_notifications_read(self, user_id: str) -> None:
        await self.client.fetch_json("/data/notifications/read-all", method="PATCH")
        await self.refresh_notifications(user_id)

    async def watch_unread(self, user_id: str) -> AsyncIterator[int]:
        """Yield the unread count now and after every poll tick.

        Holds a poll subscription for the user while iterated; closing the
        generator releases it.
        """
        adapter = self.unread_notifications(user_id)
        subscription = self.poller.subscribe(user_id, self.notification_keys(user_id))
        try:
            result = await adapter.read()
            yield result.view or 0
            while True:
                await asyncio.sleep(self.poller.interval)
                result = await adapter.read()
                if not self.cache.is_fresh(adapter.key):
                    # Stale after the tick: wait for the background refetch.
                    await adapter.wait_background()
                    result = adapter.snapshot()
                yield result.view or 0
        finally:
            subscription.unsubscribe()

    def _adapters(self) -> list[DatasetAdapter]:
        adapters: list[DatasetAdapter] = [*self._locations.values(), *self._unread.values(), *self._feeds.values()]
        if self._suggestions is not None:
            adapters.append(self._suggestions)
        return adapters

    async def close(self) -> None:
        await self.poller.close()
        for adapter in self._adapters():
            await adapter.close()
        await self.client.close()


def create_data_layer(settings: Settings | None = None) -> DataLayer:
    """Build a data layer from settings (environment by default)."""
    settings = settings or Settings.from_env()
    client = ApiClient(
        base_url=settings.api_url,
        token_getter=(lambda: settings.api_token) if settings.api_token else None,
        timeout=settings.request_timeout,
    )
    return DataLayer(client, settings=settings)
