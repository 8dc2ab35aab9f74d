"""Persistent scheduler state: last successful update and today's call count.

Survives restarts so a redeploy does not immediately spend another call.
Stored in the `worker_state` collection, one document per sport.
"""

from datetime import date
from typing import Any

from oddsboard.models.usage import ScheduleState
from oddsboard.utils import ensure_utc

STATE_COLLECTION = "worker_state"


class ScheduleStateRepository:
    def __init__(self, db, sport_key: str):
        self._collection = db[STATE_COLLECTION]
        self._id = f"update_scheduler:{sport_key}"

    async def load(self) -> ScheduleState | None:
        doc: dict[str, Any] | None = await self._collection.find_one({"_id": self._id})
        if not doc:
            return None
        last = doc.get("last_update_time")
        day = doc.get("day")
        return ScheduleState(
            last_update_time=ensure_utc(last) if last else None,
            today_call_count=int(doc.get("today_call_count") or 0),
            day=date.fromisoformat(day) if day else None,
        )

    async def save(self, state: ScheduleState) -> None:
        # BSON has no date type; the day goes in as an ISO string.
        await self._collection.update_one(
            {"_id": self._id},
            {"$set": {
                "last_update_time": state.last_update_time,
                "today_call_count": state.today_call_count,
                "day": state.day.isoformat() if state.day else None,
            }},
            upsert=True,
        )
