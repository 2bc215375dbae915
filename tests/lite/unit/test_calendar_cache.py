"""Unit tests for pubcal_lite.core.calendar_cache."""

from datetime import datetime, timezone

import pytest

from pubcal_lite.calendar.lite_models import LiteDateTimeInfo, ResolvedEvent
from pubcal_lite.core.calendar_cache import LiteCalendarCache

pytestmark = pytest.mark.unit


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> LiteCalendarCache:
    return LiteCalendarCache(default_ttl=60, clock=clock)


@pytest.fixture
def events() -> list[ResolvedEvent]:
    info = LiteDateTimeInfo(date_time=datetime(2025, 10, 1, 16, tzinfo=timezone.utc), time_zone="UTC")
    return [ResolvedEvent(source_id="P1", uid="P1--a", start=info, end=info)]


def test_get_when_key_missing_then_none_and_miss_counted(cache) -> None:
    assert cache.get("calendar_x") is None
    assert cache.get_stats()["misses"] == 1


def test_get_when_entry_fresh_then_events_returned(cache, events) -> None:
    cache.put("calendar_x", events)

    assert cache.get("calendar_x") == events
    assert cache.get_stats()["hits"] == 1


def test_get_when_ttl_elapsed_then_entry_expired_and_removed(cache, clock, events) -> None:
    cache.put("calendar_x", events)
    clock.now += 60

    assert cache.get("calendar_x") is None
    assert cache.keys() == []
    assert cache.get_stats()["expirations"] == 1


def test_put_when_explicit_ttl_then_overrides_default(cache, clock, events) -> None:
    cache.put("calendar_x", events, ttl=600)
    clock.now += 300

    assert cache.get("calendar_x") == events


def test_get_when_caller_mutates_result_then_cache_unchanged(cache, events) -> None:
    cache.put("calendar_x", events)

    cache.get("calendar_x").clear()

    assert len(cache.get("calendar_x")) == 1


@pytest.mark.asyncio
async def test_get_or_populate_when_miss_then_loader_called_once(cache, events) -> None:
    calls = []

    async def loader():
        calls.append(1)
        return events

    first = await cache.get_or_populate("calendar_x", loader)
    second = await cache.get_or_populate("calendar_x", loader)

    assert first == second == events
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_get_or_populate_when_loader_fails_then_nothing_cached(cache) -> None:
    async def loader():
        raise RuntimeError("download failed")

    with pytest.raises(RuntimeError):
        await cache.get_or_populate("calendar_x", loader)

    assert cache.keys() == []


def test_delete_and_clear_when_entries_present_then_removed(cache, events) -> None:
    cache.put("calendar_a", events)
    cache.put("calendar_b", events)

    assert cache.delete("calendar_a") is True
    assert cache.delete("calendar_a") is False
    assert cache.clear() == 1
    assert cache.keys() == []


def test_purge_expired_when_some_entries_stale_then_only_stale_removed(cache, clock, events) -> None:
    cache.put("calendar_old", events)
    cache.put("calendar_new", events, ttl=600)
    clock.now += 120

    assert cache.purge_expired() == 1
    assert cache.keys() == ["calendar_new"]


def test_get_stats_when_requests_made_then_hit_rate_reported(cache, events) -> None:
    cache.put("calendar_x", events)
    cache.get("calendar_x")
    cache.get("calendar_y")

    stats = cache.get_stats()

    assert stats["hit_rate"] == 50.0
    assert stats["current_size"] == 1
    assert stats["keys"] == ["calendar_x"]
    assert stats["default_ttl"] == 60
