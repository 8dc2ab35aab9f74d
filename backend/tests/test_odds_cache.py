"""
backend/tests/test_odds_cache.py

Purpose:
    Snapshot cache semantics: per-key monotonic timestamps, Mongo fallback
    on cold start and degraded persistence.

Dependencies:
    - oddsboard.services.odds_cache
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from odds_factories import make_event
from oddsboard.services.odds_cache import OddsCache, OddsCacheRepository, cache_key

T0 = datetime(2024, 3, 10, 10, 0, tzinfo=timezone.utc)
SPORT = "americanfootball_nfl"
EVENTS = [make_event({"BookA": {"Home": 1.8, "Away": 2.1}})]


class _MemoryCacheRepository:
    def __init__(self, doc=None, fail_load=False, fail_save=False):
        self.doc = doc
        self.fail_load = fail_load
        self.fail_save = fail_save
        self.saved: list[tuple] = []
        self.loads = 0

    async def load(self, sport_key):
        self.loads += 1
        if self.fail_load:
            raise ConnectionError("mongo down")
        return self.doc

    async def save(self, sport_key, events, timestamp):
        if self.fail_save:
            raise ConnectionError("mongo down")
        self.saved.append((sport_key, events, timestamp))


@pytest.mark.asyncio
async def test_empty_cache_returns_none():
    assert await OddsCache().get(SPORT) is None


@pytest.mark.asyncio
async def test_put_then_get_and_age():
    clock = {"now": T0}
    cache = OddsCache(clock=lambda: clock["now"])
    entry = await cache.put(SPORT, EVENTS)

    assert entry.timestamp == T0
    assert (await cache.get(SPORT)).events == tuple(EVENTS)
    clock["now"] = T0 + timedelta(minutes=90)
    assert cache.age_hours(entry) == pytest.approx(1.5)


@pytest.mark.asyncio
async def test_timestamp_never_goes_backwards():
    clock = {"now": T0}
    cache = OddsCache(clock=lambda: clock["now"])
    await cache.put(SPORT, EVENTS)

    clock["now"] = T0 - timedelta(minutes=5)
    entry = await cache.put(SPORT, [])

    assert entry.timestamp == T0
    assert entry.events == ()
    assert cache.age_hours(entry) == 0.0


@pytest.mark.asyncio
async def test_cold_start_loads_persisted_snapshot_once():
    doc = {
        "_id": cache_key(SPORT),
        "sport_key": SPORT,
        "events": [e.model_dump(mode="json") for e in EVENTS],
        # Mongo returns naive datetimes.
        "timestamp": T0.replace(tzinfo=None),
    }
    repo = _MemoryCacheRepository(doc=doc)
    cache = OddsCache(repo, clock=lambda: T0)

    entry = await cache.get(SPORT)
    assert entry.timestamp == T0
    assert entry.events[0].id == "evt-1"
    assert entry.events[0].bookmakers[0].markets[0].outcomes[0].price == 1.8

    await cache.get(SPORT)
    assert repo.loads == 1


@pytest.mark.asyncio
async def test_unreadable_or_unreachable_store_is_a_miss():
    assert await OddsCache(_MemoryCacheRepository(fail_load=True)).get(SPORT) is None
    broken = _MemoryCacheRepository(doc={"events": [{"id": ""}]})
    assert await OddsCache(broken).get(SPORT) is None


@pytest.mark.asyncio
async def test_put_persists_json_and_survives_store_failure():
    repo = _MemoryCacheRepository()
    cache = OddsCache(repo, clock=lambda: T0)
    await cache.put(SPORT, EVENTS)

    sport, events, timestamp = repo.saved[0]
    assert sport == SPORT
    assert events[0]["commence_time"].startswith("2024-09-08T17:00:00")
    assert timestamp == T0

    failing = OddsCache(_MemoryCacheRepository(fail_save=True), clock=lambda: T0)
    entry = await failing.put(SPORT, EVENTS)
    assert (await failing.get(SPORT)) == entry


@pytest.mark.asyncio
async def test_repository_replaces_document_by_sport_key():
    calls = []

    class _Collection:
        async def replace_one(self, flt, doc, upsert=False):
            calls.append((flt, doc, upsert))

        async def find_one(self, flt):
            return None

    repo = OddsCacheRepository({"odds_cache": _Collection()})
    await repo.save(SPORT, [], T0)

    assert calls == [({"_id": "odds_americanfootball_nfl"}, {"sport_key": SPORT, "events": [], "timestamp": T0}, True)]
    assert await repo.load(SPORT) is None
