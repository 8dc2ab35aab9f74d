"""
backend/oddsboard/services/usage_ledger.py

Purpose:
    Hard monthly budget for metered upstream calls. Answers "may we call?"
    (fail closed), records calls atomically and exposes the current month
    and recent history.

    Months are keyed `YYYY-MM` on the UTC clock. A new month is simply a new
    key; counts are never decremented.

Dependencies:
    - oddsboard.services.usage_repository
    - oddsboard.monitoring.update_metrics
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from oddsboard.errors import LedgerUnavailableError, LedgerWriteError
from oddsboard.models.usage import UsageRecord, UsageSnapshot
from oddsboard.monitoring.update_metrics import METRIC_API_USAGE
from oddsboard.utils import ensure_utc, month_key, utcnow

logger = logging.getLogger("oddsboard.usage_ledger")


class UsageLedger:
    def __init__(
        self,
        repository,
        monthly_limit: int,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = repository
        self.monthly_limit = monthly_limit
        self._clock = clock

    def current_month(self) -> str:
        return month_key(self._clock())

    async def current_usage(self) -> UsageSnapshot:
        month = self.current_month()
        try:
            doc = await self.repo.get(month)
        except Exception as exc:
            raise LedgerUnavailableError(f"usage store unreachable for {month}") from exc

        if not doc:
            return UsageSnapshot(count=0, limit=self.monthly_limit, remaining=self.monthly_limit)
        count = int(doc.get("count") or 0)
        last_call = doc.get("last_api_call")
        return UsageSnapshot(
            count=count,
            limit=self.monthly_limit,
            remaining=max(0, self.monthly_limit - count),
            last_api_call=ensure_utc(last_call) if last_call else None,
        )

    async def can_admit(self) -> bool:
        """True while this month's count is below the limit.

        Any failure to read the store denies admission.
        """
        try:
            usage = await self.current_usage()
        except LedgerUnavailableError:
            logger.warning("Usage store unavailable, denying upstream call", exc_info=True)
            return False
        METRIC_API_USAGE.set(usage.count)
        if usage.exhausted:
            logger.info("Monthly API limit reached (%d/%d)", usage.count, usage.limit)
            return False
        return True

    async def record_call(self) -> int:
        now = self._clock()
        month = month_key(now)
        try:
            doc = await self.repo.increment(month, self.monthly_limit, now)
        except Exception as exc:
            raise LedgerWriteError(f"could not record API call for {month}") from exc
        if not doc:
            raise LedgerWriteError(f"usage increment for {month} returned no document")

        count = int(doc.get("count") or 0)
        METRIC_API_USAGE.set(count)
        logger.info("API usage this month (%s): %d/%d", month, count, self.monthly_limit)
        return count

    async def history(self, max_months: int = 12) -> list[UsageRecord]:
        try:
            docs = await self.repo.recent(max_months)
        except Exception as exc:
            raise LedgerUnavailableError("usage history unavailable") from exc
        # The repository orders by month descending before limiting.
        return [self._to_record(doc) for doc in docs]

    def _to_record(self, doc: dict[str, Any]) -> UsageRecord:
        last_call = doc.get("last_api_call")
        last_updated = doc.get("last_updated")
        return UsageRecord(
            month=str(doc.get("month") or doc.get("_id")),
            count=int(doc.get("count") or 0),
            limit=int(doc.get("limit") or self.monthly_limit),
            last_api_call=ensure_utc(last_call) if last_call else None,
            last_updated=ensure_utc(last_updated) if last_updated else None,
        )
