"""
backend/oddsboard/services/analysis_service.py

Purpose:
    Read path for dashboard widgets. Works only on the cached snapshot and
    never touches the upstream provider or the usage ledger.

Dependencies:
    - oddsboard.services.odds_cache
    - oddsboard.services.statistics_engine
    - oddsboard.services.arbitrage_detector
"""

from __future__ import annotations

from oddsboard.models.analysis import ArbitrageOpportunity, EventReport, TeamSummary
from oddsboard.services import statistics_engine as stats
from oddsboard.services.arbitrage_detector import ArbitrageDetector


class OddsAnalysisService:
    def __init__(self, cache, detector: ArbitrageDetector):
        self.cache = cache
        self.detector = detector

    async def event_reports(self, sport_key: str, market_key: str = "h2h") -> list[EventReport] | None:
        """Per-event outcome analyses, or None while nothing has been cached yet."""
        cached = await self.cache.get(sport_key)
        if cached is None:
            return None
        reports = []
        for event in cached.events:
            analyses = stats.analyze_event(event, market_key)
            reports.append(
                EventReport(
                    event_id=event.id,
                    home_team=event.home_team,
                    away_team=event.away_team,
                    commence_time=event.commence_time,
                    market=market_key,
                    favorite=stats.favorite(analyses),
                    outcomes=analyses,
                )
            )
        return reports

    async def team_summaries(self, sport_key: str, market_key: str = "h2h") -> list[TeamSummary] | None:
        reports = await self.event_reports(sport_key, market_key)
        if reports is None:
            return None
        return stats.summarize_teams(r.outcomes for r in reports)

    async def arbitrage(self, sport_key: str, market_key: str = "h2h") -> list[ArbitrageOpportunity] | None:
        cached = await self.cache.get(sport_key)
        if cached is None:
            return None
        return self.detector.detect_all(cached.events, market_key)
