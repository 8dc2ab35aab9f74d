"""
backend/oddsboard/models/analysis.py

Purpose:
    Derived, never-persisted result types consumed by the dashboard:
    per-outcome analysis, event reports, team summaries and arbitrage
    opportunities. `None` in a numeric field is the "not available" sentinel.

Dependencies:
    - pydantic
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Recommendation(str, Enum):
    STRONG_BET = "STRONG_BET"
    GOOD_VALUE = "GOOD_VALUE"
    CONSIDER = "CONSIDER"
    MONITOR = "MONITOR"
    AVOID = "AVOID"


class ConfidenceLevel(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class OpportunityType(str, Enum):
    PURE_ARBITRAGE = "pure_arbitrage"
    VALUE_BET = "value_bet"


class OutcomeAnalysis(BaseModel):
    outcome: str = ""
    average_odds: float | None = None
    implied_probability: float | None = None
    min_odds: float | None = None
    max_odds: float | None = None
    variance: float | None = None
    consensus: float | None = None
    bookmaker_count: int = 0
    value_rating: float | None = None
    recommendation: Recommendation | None = None
    confidence: ConfidenceLevel | None = None

    @property
    def available(self) -> bool:
        return self.average_odds is not None

    def to_display(self) -> dict:
        """Rounded copy for widgets; the model itself keeps full precision."""

        def _r(value: float | None, digits: int) -> float | None:
            return None if value is None else round(value, digits)

        return {
            "outcome": self.outcome,
            "average_odds": _r(self.average_odds, 2),
            "implied_probability": _r(self.implied_probability, 1),
            "min_odds": _r(self.min_odds, 2),
            "max_odds": _r(self.max_odds, 2),
            "variance": _r(self.variance, 2),
            "consensus": _r(self.consensus, 1),
            "bookmaker_count": self.bookmaker_count,
            "value_rating": _r(self.value_rating, 1),
            "recommendation": self.recommendation.value if self.recommendation else None,
            "confidence": self.confidence.value if self.confidence else None,
        }


class EventReport(BaseModel):
    event_id: str
    home_team: str
    away_team: str
    commence_time: datetime
    market: str
    favorite: str | None = None
    outcomes: list[OutcomeAnalysis] = Field(default_factory=list)


class TeamSummary(BaseModel):
    team: str
    occurrences: int
    average_odds: float | None = None
    average_probability: float | None = None
    average_consensus: float | None = None
    min_odds: float | None = None
    max_odds: float | None = None
    average_bookmakers: int = 0


class ArbitrageLeg(BaseModel):
    outcome: str
    odds: float
    stake_percent: float
    bookmaker: str


class ArbitrageOpportunity(BaseModel):
    type: OpportunityType
    game: str
    event_id: str
    commence_time: datetime | None = None
    market: str
    profit_percent: float
    risk: str
    bets: list[ArbitrageLeg] = Field(default_factory=list)
    implied_sum: float | None = None
    reference_price: float | None = None
