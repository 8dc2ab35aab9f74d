"""
backend/oddsboard/wiring.py

Purpose:
    Builds the service graph once at process start. Every collaborator is
    constructed here and handed to its consumers; no module keeps a hidden
    instance of its own.

Dependencies:
    - oddsboard.config
    - oddsboard.providers
    - oddsboard.services
    - oddsboard.workers
"""

from __future__ import annotations

from dataclasses import dataclass

from oddsboard.config import Settings, UpdateConfig
from oddsboard.providers.http_client import ResilientClient
from oddsboard.providers.odds_api import TheOddsAPIFetcher
from oddsboard.services.analysis_service import OddsAnalysisService
from oddsboard.services.arbitrage_detector import ArbitrageDetector
from oddsboard.services.odds_cache import OddsCache, OddsCacheRepository
from oddsboard.services.usage_ledger import UsageLedger
from oddsboard.services.usage_repository import UsageRepository
from oddsboard.workers.schedule_state import ScheduleStateRepository
from oddsboard.workers.update_scheduler import UpdateScheduler


@dataclass
class Services:
    sport_key: str
    http_client: ResilientClient
    fetcher: TheOddsAPIFetcher
    cache: OddsCache
    ledger: UsageLedger
    analysis: OddsAnalysisService
    updates: UpdateScheduler


def build_services(settings: Settings, db, scheduler=None) -> Services:
    http_client = ResilientClient(
        "odds_api",
        timeout=settings.HTTP_TIMEOUT_SECONDS,
        max_retries=settings.HTTP_MAX_RETRIES,
        base_delay=settings.HTTP_RETRY_BASE_DELAY_SECONDS,
    )
    fetcher = TheOddsAPIFetcher(
        http_client,
        api_key=settings.ODDSAPIKEY,
        base_url=settings.THEODDSAPI_BASE_URL,
        regions=settings.ODDS_REGIONS,
        markets=settings.ODDS_MARKETS,
        odds_format=settings.ODDS_FORMAT,
    )
    cache = OddsCache(OddsCacheRepository(db))
    ledger = UsageLedger(UsageRepository(db), monthly_limit=settings.MONTHLY_API_LIMIT)
    detector = ArbitrageDetector(
        min_value_margin_percent=settings.VALUE_BET_MIN_MARGIN_PERCENT,
        min_profit_percent=settings.ARBITRAGE_MIN_PROFIT_PERCENT,
        min_bookmakers=settings.ARBITRAGE_MIN_BOOKMAKERS,
    )
    updates = UpdateScheduler(
        sport_key=settings.ODDS_SPORT_KEY,
        fetcher=fetcher,
        cache=cache,
        ledger=ledger,
        state_repository=ScheduleStateRepository(db, settings.ODDS_SPORT_KEY),
        config=UpdateConfig.from_settings(settings),
        scheduler=scheduler,
    )
    return Services(
        sport_key=settings.ODDS_SPORT_KEY,
        http_client=http_client,
        fetcher=fetcher,
        cache=cache,
        ledger=ledger,
        analysis=OddsAnalysisService(cache, detector),
        updates=updates,
    )
