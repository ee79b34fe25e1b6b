"""Tests for the in-memory TTL cache."""

import threading

import pytest

from agro_refdata.infrastructure.cache import CacheEntry, TtlCache
from tests.fakes import FakeClock


class TestTtl:
    def test_value_is_returned_before_ttl_and_absent_after(self) -> None:
        clock = FakeClock()
        cache = TtlCache(clock=clock)
        cache.set("k", "v", ttl_seconds=5)

        clock.advance(4.9)
        assert cache.get("k") == "v"

        clock.advance(0.2)
        assert cache.get("k") is None

    def test_expired_entry_is_purged_on_access(self) -> None:
        clock = FakeClock()
        cache = TtlCache(clock=clock)
        cache.set("k", "v", ttl_seconds=1)
        clock.advance(2)

        assert cache.keys() == ["k"]
        assert cache.get("k") is None
        assert cache.keys() == []
        assert cache.stats().expirations == 1

    def test_default_ttl_applies(self) -> None:
        clock = FakeClock()
        cache = TtlCache(default_ttl_seconds=10, clock=clock)
        cache.set("k", 1)
        clock.advance(10.5)
        assert cache.get("k") is None

    def test_set_refreshes_timestamp(self) -> None:
        clock = FakeClock()
        cache = TtlCache(clock=clock)
        cache.set("k", "old", ttl_seconds=5)
        clock.advance(4)
        cache.set("k", "new", ttl_seconds=5)
        clock.advance(4)
        assert cache.get("k") == "new"

    def test_has_does_not_count_expired(self) -> None:
        clock = FakeClock()
        cache = TtlCache(clock=clock)
        cache.set("k", "v", ttl_seconds=1)
        assert cache.has("k") is True
        clock.advance(1.5)
        assert cache.has("k") is False

    def test_purge_expired_sweeps_everything_stale(self) -> None:
        clock = FakeClock()
        cache = TtlCache(clock=clock)
        cache.set("a", 1, ttl_seconds=1)
        cache.set("b", 2, ttl_seconds=10)
        clock.advance(2)
        assert cache.purge_expired() == 1
        assert cache.keys() == ["b"]

    def test_entry_validity_boundary(self) -> None:
        entry = CacheEntry(key="k", payload=1, stored_at=10.0, ttl_seconds=5.0)
        assert entry.is_valid(15.0)
        assert not entry.is_valid(15.01)


class TestEviction:
    def test_first_inserted_key_is_evicted(self) -> None:
        cache = TtlCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)

        assert len(cache) == 2
        assert cache.keys() == ["b", "c"]
        assert cache.get("a") is None
        assert cache.stats().evictions == 1

    def test_eviction_ignores_access_order(self) -> None:
        cache = TtlCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.keys() == ["b", "c"]

    def test_replacing_a_key_does_not_evict(self) -> None:
        cache = TtlCache(max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)

        assert len(cache) == 2
        assert cache.get("a") == 10
        assert cache.get("b") == 2
        assert cache.keys() == ["b", "a"]

    def test_concurrent_writers_respect_bound(self) -> None:
        cache = TtlCache(max_size=10)

        def writer(prefix: str) -> None:
            for i in range(200):
                cache.set(f"{prefix}-{i}", i)

        threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 10


class TestInvalidate:
    def test_prefix_invalidation(self) -> None:
        cache = TtlCache()
        cache.set("paises:all", [])
        cache.set("paises:search?termo=a", {})
        cache.set("ufs:all", [])

        removed = cache.invalidate("paises:")

        assert removed == 2
        assert cache.keys() == ["ufs:all"]

    def test_exact_invalidation_leaves_longer_keys(self) -> None:
        cache = TtlCache()
        cache.set("paises:item-1", {})
        cache.set("paises:item-10", {})

        assert cache.invalidate("paises:item-1", prefix=False) == 1
        assert cache.keys() == ["paises:item-10"]

    def test_invalidate_missing_key_is_noop(self) -> None:
        cache = TtlCache()
        assert cache.invalidate("nothing", prefix=False) == 0

    def test_clear(self) -> None:
        cache = TtlCache()
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0


def test_stats_track_hits_and_misses() -> None:
    cache = TtlCache()
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")

    stats = cache.stats()
    assert stats.hits == 1
    assert stats.misses == 1
    assert stats.entries == 1
    assert stats.hit_rate == 0.5


@pytest.mark.parametrize("kwargs", [{"max_size": 0}, {"default_ttl_seconds": 0}])
def test_invalid_construction(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        TtlCache(**kwargs)  # type: ignore[arg-type]


def test_non_positive_ttl_is_rejected() -> None:
    with pytest.raises(ValueError):
        TtlCache().set("k", 1, ttl_seconds=0)
