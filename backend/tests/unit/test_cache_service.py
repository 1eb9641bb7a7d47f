"""Unit tests for the freshness cache.

Tests the CacheService key helpers and InMemoryCacheService TTL behaviour.
"""

from app.services.cache import CacheEntry, CacheService, InMemoryCacheService


class TestCacheKeys:
    """Tests for dataset key helpers."""

    def test_locations_key(self) -> None:
        assert CacheService.build_locations_key("Vadodara") == "locations:Vadodara"

    def test_unread_notifications_key(self) -> None:
        assert CacheService.build_unread_notifications_key("u1") == "unread-notifications:u1"

    def test_notifications_key(self) -> None:
        assert CacheService.build_notifications_key("u1") == "notifications:u1"


class TestCacheEntry:
    """Tests for CacheEntry.is_fresh."""

    def test_no_ttl_is_fresh_until_invalidated(self) -> None:
        entry = CacheEntry(key="k", payload=[], fetched_at=0.0, ttl=None)
        assert entry.is_fresh(10_000.0) is True
        entry.fetched_at = None
        assert entry.is_fresh(0.0) is False


class TestInMemoryCacheService:
    """Tests for get/put/invalidate/is_fresh."""

    def test_get_absent(self, cache: InMemoryCacheService) -> None:
        assert cache.get("locations:Vadodara") is None
        assert cache.is_fresh("locations:Vadodara") is False

    def test_put_then_get(self, cache: InMemoryCacheService, clock) -> None:
        entry = cache.put("k", [1, 2, 3], ttl=60, view={"total": 3})
        assert cache.get("k") is entry
        assert entry.payload == [1, 2, 3]
        assert entry.view == {"total": 3}
        assert entry.fetched_at == clock.now

    def test_put_overwrites(self, cache: InMemoryCacheService) -> None:
        cache.put("k", [1], ttl=60)
        cache.put("k", [2], ttl=60)
        assert cache.get("k").payload == [2]
        assert len(cache) == 1

    def test_fresh_immediately_after_put(self, cache: InMemoryCacheService) -> None:
        cache.put("k", [], ttl=300)
        assert cache.is_fresh("k") is True

    def test_stale_exactly_at_ttl(self, cache: InMemoryCacheService, clock) -> None:
        cache.put("k", [], ttl=300)
        clock.advance(299.999)
        assert cache.is_fresh("k") is True
        clock.advance(0.001)
        assert cache.is_fresh("k") is False

    def test_invalidate_keeps_payload(self, cache: InMemoryCacheService) -> None:
        cache.put("k", ["a"], ttl=300)
        assert cache.invalidate("k") is True
        assert cache.is_fresh("k") is False
        entry = cache.get("k")
        assert entry is not None
        assert entry.payload == ["a"]
        assert entry.fetched_at is None

    def test_invalidate_absent(self, cache: InMemoryCacheService) -> None:
        assert cache.invalidate("missing") is False

    def test_put_after_invalidate_is_fresh(self, cache: InMemoryCacheService) -> None:
        cache.put("k", ["a"], ttl=300)
        cache.invalidate("k")
        cache.put("k", ["b"], ttl=300)
        assert cache.is_fresh("k") is True

    def test_invalidate_prefix(self, cache: InMemoryCacheService) -> None:
        cache.put("locations:Vadodara", [], ttl=300)
        cache.put("locations:Surat", [], ttl=300)
        cache.put("location-suggestions", [], ttl=120)
        assert cache.invalidate_prefix("locations:") == 2
        assert cache.is_fresh("location-suggestions") is True
        assert cache.is_fresh("locations:Surat") is False

    def test_delete(self, cache: InMemoryCacheService) -> None:
        cache.put("k", ["a"], ttl=300)
        assert cache.delete("k") is True
        assert cache.get("k") is None
        assert cache.delete("k") is False

    def test_clear(self, cache: InMemoryCacheService) -> None:
        cache.put("a", [], ttl=1)
        cache.put("b", [], ttl=None)
        cache.clear()
        assert len(cache) == 0
        assert cache.keys() == []

    def test_instances_do_not_share_state(self) -> None:
        first = InMemoryCacheService()
        second = InMemoryCacheService()
        first.put("k", [1], ttl=60)
        assert second.get("k") is None
