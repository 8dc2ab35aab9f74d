"""
backend/oddsboard/models/usage.py

Purpose:
    Quota ledger records, scheduler state and the value returned by an
    update attempt.

Dependencies:
    - pydantic
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from oddsboard.models.odds import Event


class UsageRecord(BaseModel):
    """One month of metered upstream calls (`month` is `YYYY-MM`, UTC)."""

    month: str
    count: int = Field(default=0, ge=0)
    limit: int
    last_api_call: datetime | None = None
    last_updated: datetime | None = None


class UsageSnapshot(BaseModel):
    count: int = 0
    limit: int
    remaining: int
    last_api_call: datetime | None = None

    @property
    def exhausted(self) -> bool:
        return self.count >= self.limit


class ScheduleState(BaseModel):
    """Process-wide scheduler state; `is_updating` is never persisted."""

    last_update_time: datetime | None = None
    today_call_count: int = 0
    day: date | None = None
    is_updating: bool = False


class UpdateReason(str, Enum):
    SCHEDULED = "scheduled"
    FORCED = "force"
    NO_CACHE = "no-cache"
    CACHE_EXPIRED = "cache-expired"


class UpdateStatus(str, Enum):
    UPDATED = "updated"
    CACHED = "cached"
    QUOTA_EXHAUSTED = "quota_exhausted"
    DAILY_CAP_REACHED = "daily_cap_reached"
    FAILED = "failed"


class UpdateResult(BaseModel):
    status: UpdateStatus
    reason: UpdateReason
    events: list[Event] | None = None
    data_timestamp: datetime | None = None
    usage_recorded: bool = True
    message: str = ""

    @property
    def retry_later(self) -> bool:
        return self.status in (UpdateStatus.QUOTA_EXHAUSTED, UpdateStatus.DAILY_CAP_REACHED)

    @property
    def has_data(self) -> bool:
        return self.events is not None


class SchedulerStatus(BaseModel):
    sport_key: str
    today_call_count: int
    daily_call_cap: int
    last_update_time: datetime | None = None
    next_update_time: datetime
    is_updating: bool
    should_update_now: bool
