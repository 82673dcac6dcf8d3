"""Tests for the bounded TTL cache store."""

import pytest

from vitrine.cache.store import DEFAULT_TTL, CacheStore
from vitrine.clock import ManualClock


class TestCacheStoreBasics:
    """Get, set, delete and clear."""

    def test_set_then_get(self, clock: ManualClock) -> None:
        """Stored value is returned."""
        store: CacheStore[dict] = CacheStore(10, clock=clock)
        store.set("a", {"id": 1})

        assert store.get("a") == {"id": 1}

    def test_missing_key_returns_none(self, clock: ManualClock) -> None:
        """Missing key returns None."""
        store: CacheStore[str] = CacheStore(10, clock=clock)

        assert store.get("nope") is None

    def test_delete(self, clock: ManualClock) -> None:
        """Deleted key is gone; deleting again is harmless."""
        store: CacheStore[str] = CacheStore(10, clock=clock)
        store.set("a", "1")

        store.delete("a")
        store.delete("a")

        assert store.get("a") is None
        assert len(store) == 0

    def test_clear(self, clock: ManualClock) -> None:
        """Clear empties the store."""
        store: CacheStore[str] = CacheStore(10, clock=clock)
        for key in "abc":
            store.set(key, key)

        store.clear()

        assert len(store) == 0

    def test_invalid_max_size(self) -> None:
        """Zero capacity is rejected."""
        with pytest.raises(ValueError, match="max_size"):
            CacheStore(0)

    def test_default_ttl_is_five_minutes(self) -> None:
        """Shared TTL constant is 5 minutes."""
        assert DEFAULT_TTL == 300.0
        assert CacheStore(1).ttl == 300.0


class TestCacheStoreExpiry:
    """TTL behaviour."""

    def test_visible_before_ttl(self, clock: ManualClock) -> None:
        """Entry younger than the TTL is returned."""
        store: CacheStore[str] = CacheStore(10, ttl=300, clock=clock)
        store.set("a", "value")

        clock.advance(299.9)

        assert store.get("a") == "value"

    def test_visible_at_exact_ttl(self, clock: ManualClock) -> None:
        """Entry exactly TTL old is still visible (expiry is strictly older)."""
        store: CacheStore[str] = CacheStore(10, ttl=300, clock=clock)
        store.set("a", "value")

        clock.advance(300)

        assert store.get("a") == "value"

    def test_absent_after_ttl(self, clock: ManualClock) -> None:
        """Entry older than the TTL is absent and evicted on access."""
        store: CacheStore[str] = CacheStore(10, ttl=300, clock=clock)
        store.set("a", "value")

        clock.advance(300.001)

        assert store.get("a") is None
        assert len(store) == 0
        assert store.stats().expirations == 1

    def test_read_does_not_extend_ttl(self, clock: ManualClock) -> None:
        """Touching on read moves recency but not the stored time."""
        store: CacheStore[str] = CacheStore(10, ttl=10, clock=clock)
        store.set("a", "value")

        clock.advance(8)
        assert store.get("a") == "value"
        clock.advance(8)

        assert store.get("a") is None

    def test_write_resets_age(self, clock: ManualClock) -> None:
        """Re-setting a key restarts its TTL."""
        store: CacheStore[str] = CacheStore(10, ttl=10, clock=clock)
        store.set("a", "old")
        clock.advance(8)
        store.set("a", "new")
        clock.advance(8)

        assert store.get("a") == "new"

    def test_per_entry_ttl_is_shorter(self, clock: ManualClock) -> None:
        """Per-entry TTL expires the entry early."""
        store: CacheStore[str] = CacheStore(10, ttl=300, clock=clock)
        store.set("a", "value", ttl=0.1)

        assert store.get("a") == "value"
        clock.advance(0.15)
        assert store.get("a") is None

    def test_per_entry_ttl_cannot_extend(self, clock: ManualClock) -> None:
        """Per-entry TTL is capped by the store TTL."""
        store: CacheStore[str] = CacheStore(10, ttl=10, clock=clock)
        store.set("a", "value", ttl=1000)

        clock.advance(11)

        assert store.get("a") is None

    def test_purge_expired(self, clock: ManualClock) -> None:
        """Purge removes only expired entries."""
        store: CacheStore[str] = CacheStore(10, ttl=10, clock=clock)
        store.set("old", "1")
        clock.advance(8)
        store.set("new", "2")
        clock.advance(5)

        assert store.purge_expired() == 1
        assert store.keys() == ["new"]

    def test_contains_respects_expiry(self, clock: ManualClock) -> None:
        """Membership is false for expired entries."""
        store: CacheStore[str] = CacheStore(10, ttl=10, clock=clock)
        store.set("a", "1")

        assert "a" in store
        clock.advance(11)
        assert "a" not in store


class TestCacheStoreCapacity:
    """Capacity bound and eviction order."""

    def test_overflow_evicts_oldest(self, clock: ManualClock) -> None:
        """Inserting N+1 keys leaves N, dropping the first inserted."""
        store: CacheStore[int] = CacheStore(3, clock=clock)
        for i in range(4):
            store.set(f"k{i}", i)

        assert len(store) == 3
        assert store.get("k0") is None
        assert store.keys() == ["k1", "k2", "k3"]
        assert store.stats().evictions == 1

    def test_read_protects_from_eviction(self, clock: ManualClock) -> None:
        """The least recently touched key is the one evicted."""
        store: CacheStore[int] = CacheStore(3, clock=clock)
        store.set("a", 1)
        store.set("b", 2)
        store.set("c", 3)

        store.get("a")
        store.set("d", 4)

        assert store.get("b") is None
        assert store.get("a") == 1
        assert len(store) == 3

    def test_update_existing_key_at_capacity_does_not_evict(self, clock: ManualClock) -> None:
        """Overwriting a present key never evicts another."""
        store: CacheStore[int] = CacheStore(2, clock=clock)
        store.set("a", 1)
        store.set("b", 2)

        store.set("a", 10)

        assert len(store) == 2
        assert store.get("b") == 2
        assert store.keys() == ["b", "a"]

    def test_size_never_exceeds_capacity(self, clock: ManualClock) -> None:
        """Invariant holds across many inserts."""
        store: CacheStore[int] = CacheStore(5, clock=clock)
        for i in range(50):
            store.set(f"k{i % 13}", i)
            assert len(store) <= 5

    def test_contains_does_not_touch(self, clock: ManualClock) -> None:
        """Membership checks leave eviction order unchanged."""
        store: CacheStore[int] = CacheStore(2, clock=clock)
        store.set("a", 1)
        store.set("b", 2)

        assert "a" in store
        store.set("c", 3)

        assert "a" not in store


class TestCacheStats:
    """Hit/miss accounting."""

    def test_hit_rate(self, clock: ManualClock) -> None:
        """Hits and misses are counted."""
        store: CacheStore[int] = CacheStore(2, name="data", clock=clock)
        store.set("a", 1)
        store.get("a")
        store.get("a")
        store.get("b")

        stats = store.stats()

        assert stats.name == "data"
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)

    def test_empty_hit_rate(self) -> None:
        """No lookups means a zero hit rate."""
        assert CacheStore(1).stats().hit_rate == 0.0
