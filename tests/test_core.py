"""Tests for time boundaries and the read cache."""

from datetime import date, datetime, timezone

import pytest

from tickerleague.core.cache import MemoryTTLCache, NullCache, build_cache
from tickerleague.core.time import as_utc, day_end, day_start


def test_day_end_in_eastern_winter_and_summer():
    assert day_end(date(2026, 1, 16), "America/New_York") == datetime(
        2026, 1, 17, 4, 59, 59, 999000, tzinfo=timezone.utc
    )
    assert day_end(date(2026, 7, 10), "America/New_York") == datetime(
        2026, 7, 11, 3, 59, 59, 999000, tzinfo=timezone.utc
    )


def test_day_start():
    assert day_start(date(2026, 1, 12), "America/New_York") == datetime(2026, 1, 12, 5, tzinfo=timezone.utc)
    assert day_start(date(2026, 1, 12), "UTC") == datetime(2026, 1, 12, tzinfo=timezone.utc)


def test_as_utc_treats_naive_values_as_utc():
    naive = datetime(2026, 1, 12, 14, 30)

    assert as_utc(naive) == datetime(2026, 1, 12, 14, 30, tzinfo=timezone.utc)
    assert as_utc(naive).tzinfo is timezone.utc


def test_memory_cache_expires_entries():
    now = [100.0]
    cache = MemoryTTLCache(ttl=15, clock=lambda: now[0])
    cache.set(("standings", "L1"), "table")

    now[0] = 114.0
    assert cache.get(("standings", "L1")) == "table"
    now[0] = 115.0
    assert cache.get(("standings", "L1")) is None
    assert len(cache) == 0


def test_memory_cache_evicts_least_recently_used():
    cache = MemoryTTLCache(ttl=60, max_entries=2)
    cache.set(("a",), 1)
    cache.set(("b",), 2)
    cache.get(("a",))
    cache.set(("c",), 3)

    assert cache.get(("b",)) is None
    assert cache.get(("a",)) == 1
    assert cache.get(("c",)) == 3


def test_memory_cache_clear_and_validation():
    cache = MemoryTTLCache(ttl=1)
    cache.set(("a",), 1)
    cache.clear()

    assert cache.get(("a",)) is None
    with pytest.raises(ValueError):
        MemoryTTLCache(ttl=0)


def test_build_cache_honours_backend(config):
    assert isinstance(build_cache(config), MemoryTTLCache)

    config.cache_backend = "none"
    null = build_cache(config)
    null.set(("a",), 1)
    assert isinstance(null, NullCache)
    assert null.get(("a",)) is None
