"""
backend/oddsboard/services/usage_repository.py

Purpose:
    Persistence access layer for the monthly API usage ledger. One document
    per month in `api_usage`; increments are a single atomic upsert so
    concurrent writers cannot lose counts.

Dependencies:
    - motor / pymongo
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pymongo import DESCENDING, ReturnDocument

USAGE_COLLECTION = "api_usage"


class UsageRepository:
    def __init__(self, db):
        self._collection = db[USAGE_COLLECTION]

    async def get(self, month: str) -> dict[str, Any] | None:
        return await self._collection.find_one({"_id": month})

    async def increment(self, month: str, limit: int, now: datetime) -> dict[str, Any]:
        """Add one call to `month` and return the updated document."""
        return await self._collection.find_one_and_update(
            {"_id": month},
            {
                "$inc": {"count": 1},
                "$set": {"limit": limit, "last_api_call": now, "last_updated": now},
                "$setOnInsert": {"month": month},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def recent(self, limit: int) -> list[dict[str, Any]]:
        cursor = self._collection.find({}).sort("month", DESCENDING).limit(limit)
        return await cursor.to_list(length=limit)
