"""Tests for the catalog response cache."""

from __future__ import annotations

import pytest

from catalog_resolver.providers.cache import ResponseCache, make_cache_key


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.unit
def test_cache_init_defaults():
    """Test ResponseCache initialization with defaults."""
    cache = ResponseCache()
    assert cache.ttl_seconds == 3600
    assert cache.max_entries == 1000
    assert len(cache) == 0


@pytest.mark.unit
def test_set_and_get():
    cache = ResponseCache()
    cache.set("/models:query=x", {"items": []})
    assert cache.get("/models:query=x") == {"items": []}


@pytest.mark.unit
def test_get_missing_returns_none():
    assert ResponseCache().get("missing") is None


@pytest.mark.unit
def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=60, timer=clock)
    cache.set("key", [1, 2, 3])

    clock.now += 59
    assert cache.get("key") == [1, 2, 3]

    clock.now += 2
    assert cache.get("key") is None
    assert len(cache) == 0


@pytest.mark.unit
def test_max_entries_evicts_oldest():
    cache = ResponseCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert len(cache) == 2
    assert cache.get("a") is None
    assert cache.get("c") == 3


@pytest.mark.unit
def test_clear_returns_count():
    cache = ResponseCache()
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.clear() == 2
    assert len(cache) == 0


@pytest.mark.unit
def test_stats_track_hits_and_misses():
    cache = ResponseCache()
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["entries"] == 1


@pytest.mark.unit
def test_make_cache_key_skips_none():
    assert make_cache_key("/models", "query=x", None) == "/models:query=x"
