"""
backend/oddsboard/workers/update_scheduler.py

Purpose:
    Decides when an upstream odds fetch may happen and runs it. Two
    independent gates must both pass: the monthly usage ledger and a local
    daily call cap. At most one update is in flight; a second request while
    one runs returns None immediately.

    The timer is a one-shot APScheduler job re-armed after every firing from
    the current state, so missed ticks or clock drift correct themselves on
    the next run instead of accumulating.

Dependencies:
    - apscheduler (AsyncIOScheduler, date trigger)
    - oddsboard.services.usage_ledger
    - oddsboard.services.odds_cache
    - oddsboard.providers.base
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from oddsboard.config import UpdateConfig
from oddsboard.errors import LedgerWriteError
from oddsboard.models.usage import (
    ScheduleState,
    SchedulerStatus,
    UpdateReason,
    UpdateResult,
    UpdateStatus,
)
from oddsboard.monitoring.update_metrics import (
    METRIC_FETCH_TOTAL,
    METRIC_LEDGER_WRITE_FAILURES,
    METRIC_UPDATE_SKIPPED,
)
from oddsboard.utils import utc_day, utcnow

logger = logging.getLogger("oddsboard.update_scheduler")

# Reasons that must reach the fetcher even when the cache looks fresh.
_BYPASS_CACHE_REASONS = frozenset({UpdateReason.FORCED, UpdateReason.NO_CACHE})


class UpdateScheduler:
    def __init__(
        self,
        *,
        sport_key: str,
        fetcher,
        cache,
        ledger,
        state_repository,
        config: UpdateConfig,
        scheduler=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.sport_key = sport_key
        self.fetcher = fetcher
        self.cache = cache
        self.ledger = ledger
        self.state_repo = state_repository
        self.config = config
        self._scheduler = scheduler
        self._clock = clock
        self.state = ScheduleState(day=utc_day(clock()))

    @property
    def job_id(self) -> str:
        return f"odds_update:{self.sport_key}"

    @property
    def interval(self) -> timedelta:
        return timedelta(hours=self.config.update_interval_hours)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load_state(self) -> None:
        today = utc_day(self._clock())
        try:
            stored = await self.state_repo.load()
        except Exception:
            logger.warning("Could not load scheduler state for %s, starting fresh", self.sport_key, exc_info=True)
            stored = None

        if stored is None:
            self.state = ScheduleState(day=today)
            return
        self.state = ScheduleState(
            last_update_time=stored.last_update_time,
            today_call_count=stored.today_call_count if stored.day == today else 0,
            day=today,
        )
        logger.info(
            "Scheduler state for %s: last update %s, %d calls today",
            self.sport_key, stored.last_update_time, self.state.today_call_count,
        )

    async def initialize(self, run_startup_check: bool = True) -> UpdateResult | None:
        """Load persisted state, refresh a missing or expired cache, arm the timer."""
        await self.load_state()
        result = None
        if run_startup_check:
            cached = await self.cache.get(self.sport_key)
            if cached is None:
                logger.info("No cached odds for %s, triggering immediate update", self.sport_key)
                result = await self.update_data(UpdateReason.NO_CACHE)
            else:
                age = self.cache.age_hours(cached)
                if age >= self.config.update_interval_hours:
                    logger.info("Cached odds for %s are %.1f hours old, updating", self.sport_key, age)
                    result = await self.update_data(UpdateReason.CACHE_EXPIRED)
                else:
                    logger.info("Cached odds for %s are fresh (%.1f hours old)", self.sport_key, age)
        self.arm()
        return result

    def shutdown(self) -> None:
        if self._scheduler is not None and self._scheduler.get_job(self.job_id):
            self._scheduler.remove_job(self.job_id)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def _roll_day(self, now: datetime) -> None:
        today = utc_day(now)
        if self.state.day != today:
            self.state.day = today
            self.state.today_call_count = 0

    def should_update_now(self, now: datetime | None = None) -> bool:
        now = now or self._clock()
        self._roll_day(now)
        if self.state.today_call_count >= self.config.daily_call_cap:
            logger.debug("Daily call cap reached for %s", self.sport_key)
            return False
        if self.state.last_update_time is None:
            return True
        return now - self.state.last_update_time >= self.interval

    def next_update_time(self, now: datetime | None = None) -> datetime:
        now = now or self._clock()
        if self.state.last_update_time is not None:
            candidate = self.state.last_update_time + self.interval
            if candidate >= now:
                return candidate

        slots = sorted(self.config.update_slot_hours)
        for hour in slots:
            if hour > now.hour:
                return now.replace(hour=hour, minute=0, second=0, microsecond=0)
        tomorrow = now + timedelta(days=1)
        return tomorrow.replace(hour=slots[0], minute=0, second=0, microsecond=0)

    def status(self) -> SchedulerStatus:
        now = self._clock()
        return SchedulerStatus(
            sport_key=self.sport_key,
            today_call_count=self.state.today_call_count,
            daily_call_cap=self.config.daily_call_cap,
            last_update_time=self.state.last_update_time,
            next_update_time=self.next_update_time(now),
            is_updating=self.state.is_updating,
            should_update_now=self.should_update_now(now),
        )

    # ------------------------------------------------------------------
    # Update cycle
    # ------------------------------------------------------------------

    async def update_data(self, reason: UpdateReason = UpdateReason.SCHEDULED) -> UpdateResult | None:
        if self.state.is_updating:
            logger.info("Update already in progress for %s, ignoring %s request", self.sport_key, reason.value)
            return None

        # Set before the first await; cleared on every exit path.
        self.state.is_updating = True
        try:
            return await self._run_update(reason)
        finally:
            self.state.is_updating = False

    async def force_update(self) -> UpdateResult | None:
        result = await self.update_data(UpdateReason.FORCED)
        if result is not None:
            # A timer tick skipped during this update armed from the old state.
            self.arm()
        return result

    async def _run_update(self, reason: UpdateReason) -> UpdateResult:
        logger.info("Starting odds update for %s (reason: %s)", self.sport_key, reason.value)
        self._roll_day(self._clock())

        if not await self.ledger.can_admit():
            METRIC_UPDATE_SKIPPED.labels(reason="quota").inc()
            return UpdateResult(
                status=UpdateStatus.QUOTA_EXHAUSTED,
                reason=reason,
                message="Monthly API limit reached, try again later",
            )

        if self.state.today_call_count >= self.config.daily_call_cap:
            METRIC_UPDATE_SKIPPED.labels(reason="daily_cap").inc()
            logger.info(
                "Daily call cap reached for %s (%d/%d)",
                self.sport_key, self.state.today_call_count, self.config.daily_call_cap,
            )
            return UpdateResult(
                status=UpdateStatus.DAILY_CAP_REACHED,
                reason=reason,
                message="Daily update limit reached, try again later",
            )

        if reason not in _BYPASS_CACHE_REASONS:
            cached = await self.cache.get(self.sport_key)
            if cached is not None and self.cache.age_hours(cached) < self.config.update_interval_hours:
                METRIC_UPDATE_SKIPPED.labels(reason="cache_fresh").inc()
                logger.info("Cache for %s is recent, skipping upstream call", self.sport_key)
                return UpdateResult(
                    status=UpdateStatus.CACHED,
                    reason=reason,
                    events=list(cached.events),
                    data_timestamp=cached.timestamp,
                )

        try:
            events = await asyncio.wait_for(
                self.fetcher.fetch(self.sport_key),
                timeout=self.config.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError:
            METRIC_FETCH_TOTAL.labels(sport_key=self.sport_key, result="timeout").inc()
            logger.error(
                "Odds fetch for %s timed out after %.0fs",
                self.sport_key, self.config.fetch_timeout_seconds,
            )
            return UpdateResult(status=UpdateStatus.FAILED, reason=reason, message="Upstream fetch timed out")
        except Exception as exc:
            METRIC_FETCH_TOTAL.labels(sport_key=self.sport_key, result="error").inc()
            logger.error("Odds fetch for %s failed: %s", self.sport_key, exc)
            return UpdateResult(status=UpdateStatus.FAILED, reason=reason, message=str(exc))

        METRIC_FETCH_TOTAL.labels(sport_key=self.sport_key, result="ok").inc()
        entry = await self.cache.put(self.sport_key, events)

        usage_recorded = True
        try:
            await self.ledger.record_call()
        except LedgerWriteError:
            usage_recorded = False
            METRIC_LEDGER_WRITE_FAILURES.inc()
            logger.error(
                "Fetched %s odds but could not record API usage; ledger undercounts by one "
                "until reconciled with upstream x-requests-used",
                self.sport_key, exc_info=True,
            )

        self.state.today_call_count += 1
        self.state.last_update_time = self._clock()
        await self._persist_state()

        logger.info(
            "Odds updated for %s (reason: %s). Calls today: %d/%d",
            self.sport_key, reason.value, self.state.today_call_count, self.config.daily_call_cap,
        )
        return UpdateResult(
            status=UpdateStatus.UPDATED,
            reason=reason,
            events=list(events),
            data_timestamp=entry.timestamp,
            usage_recorded=usage_recorded,
        )

    async def _persist_state(self) -> None:
        try:
            await self.state_repo.save(self.state)
        except Exception:
            logger.warning("Could not persist scheduler state for %s", self.sport_key, exc_info=True)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def arm(self) -> datetime | None:
        if self._scheduler is None:
            return None
        run_at = self.next_update_time()
        self._scheduler.add_job(
            self.run_scheduled,
            "date",
            run_date=run_at,
            id=self.job_id,
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
        logger.info("Next odds update for %s scheduled at %s", self.sport_key, run_at.isoformat())
        return run_at

    async def run_scheduled(self) -> UpdateResult | None:
        logger.debug("Scheduled update check for %s", self.sport_key)
        try:
            if not self.should_update_now():
                logger.debug("Update conditions not met for %s, skipping", self.sport_key)
                return None
            return await self.update_data(UpdateReason.SCHEDULED)
        finally:
            self.arm()
