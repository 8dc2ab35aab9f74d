"""
backend/oddsboard/services/odds_cache.py

Purpose:
    Latest odds snapshot per sport. Readers always get a complete snapshot:
    a put builds the new entry first and swaps it in with one assignment, so
    an in-flight update never exposes partial data.

    Snapshots are mirrored to the `odds_cache` collection so a restart does
    not cost an upstream call.

Dependencies:
    - motor / pymongo
    - oddsboard.models.odds
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from oddsboard.models.odds import CachedOdds, Event
from oddsboard.utils import ensure_utc, utcnow

logger = logging.getLogger("oddsboard.odds_cache")

CACHE_COLLECTION = "odds_cache"


def cache_key(sport_key: str) -> str:
    return f"odds_{sport_key}"


class OddsCacheRepository:
    def __init__(self, db):
        self._collection = db[CACHE_COLLECTION]

    async def load(self, sport_key: str) -> dict[str, Any] | None:
        return await self._collection.find_one({"_id": cache_key(sport_key)})

    async def save(self, sport_key: str, events: list[dict[str, Any]], timestamp: datetime) -> None:
        await self._collection.replace_one(
            {"_id": cache_key(sport_key)},
            {"sport_key": sport_key, "events": events, "timestamp": timestamp},
            upsert=True,
        )


class OddsCache:
    def __init__(self, repository=None, clock: Callable[[], datetime] = utcnow):
        self.repo = repository
        self._clock = clock
        self._entries: dict[str, CachedOdds] = {}

    async def get(self, sport_key: str) -> CachedOdds | None:
        entry = self._entries.get(sport_key)
        if entry is not None or self.repo is None:
            return entry

        try:
            doc = await self.repo.load(sport_key)
        except Exception:
            logger.warning("Failed to load cached odds for %s", sport_key, exc_info=True)
            return None
        if not doc:
            return None
        try:
            entry = CachedOdds(
                sport_key=sport_key,
                events=tuple(Event.model_validate(e) for e in doc.get("events") or []),
                timestamp=ensure_utc(doc["timestamp"]),
            )
        except (KeyError, ValidationError):
            logger.warning("Discarding unreadable cache document for %s", sport_key, exc_info=True)
            return None
        # A concurrent put may have landed while we were loading.
        return self._entries.setdefault(sport_key, entry)

    async def put(self, sport_key: str, events: list[Event]) -> CachedOdds:
        previous = await self.get(sport_key)
        now = self._clock()
        # Timestamps never go backwards for a key, even if the clock does.
        timestamp = max(now, previous.timestamp) if previous else now
        entry = CachedOdds(sport_key=sport_key, events=tuple(events), timestamp=timestamp)
        self._entries[sport_key] = entry

        if self.repo is not None:
            try:
                await self.repo.save(
                    sport_key,
                    [e.model_dump(mode="json") for e in events],
                    timestamp,
                )
            except Exception:
                logger.warning(
                    "Failed to persist odds cache for %s; serving from memory only",
                    sport_key, exc_info=True,
                )
        logger.info("Odds cached for %s: %d events", sport_key, len(events))
        return entry

    def age_hours(self, entry: CachedOdds) -> float:
        return max(0.0, (self._clock() - entry.timestamp).total_seconds() / 3600.0)
