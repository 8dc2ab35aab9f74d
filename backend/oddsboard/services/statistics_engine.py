"""
backend/oddsboard/services/statistics_engine.py

Purpose:
    Pure descriptive statistics over multi-bookmaker decimal odds: grouping
    quotes per outcome, mean/dispersion/implied probability, consensus,
    value rating and the recommendation cascade.

    Nothing here raises on bad numbers. Invalid prices are filtered out and
    an outcome without any valid price comes back with every numeric field
    set to None ("not available"), never NaN.

Dependencies:
    - oddsboard.models
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from oddsboard.models.analysis import (
    ConfidenceLevel,
    OutcomeAnalysis,
    Recommendation,
    TeamSummary,
)
from oddsboard.models.odds import Event, OddsQuote

# Weights of the value rating blend: implied probability, price-implied
# probability, consensus.
VALUE_WEIGHTS = (0.4, 0.3, 0.3)

# (min probability, min consensus, min value rating) -> recommendation,
# evaluated top to bottom. MONITOR ignores the value rating.
_RECOMMENDATION_CASCADE: tuple[tuple[float, float, float | None, Recommendation], ...] = (
    (70.0, 80.0, 75.0, Recommendation.STRONG_BET),
    (60.0, 70.0, 65.0, Recommendation.GOOD_VALUE),
    (50.0, 60.0, 55.0, Recommendation.CONSIDER),
    (40.0, 50.0, None, Recommendation.MONITOR),
)

CONSENSUS_HIGH = 80.0
CONSENSUS_MEDIUM = 60.0
SAMPLE_HIGH = 10
SAMPLE_MEDIUM = 5


def _is_valid_price(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def valid_prices(prices: Iterable[Any] | None) -> list[float]:
    if prices is None:
        return []
    return [float(p) for p in prices if _is_valid_price(p)]


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def mean(prices: list[float]) -> float:
    # Equal weighting; per-bookmaker reliability weights would slot in here.
    if not prices:
        return 0.0
    return sum(prices) / len(prices)


def population_stddev(prices: list[float]) -> float:
    """Standard deviation dividing by N, not N - 1."""
    if not prices:
        return 0.0
    avg = mean(prices)
    return math.sqrt(sum((p - avg) ** 2 for p in prices) / len(prices))


def aggregate_outcomes(quotes_across_bookmakers: Iterable[Any]) -> dict[str, list[float]]:
    """Group prices by outcome name.

    Accepts either a flat iterable of quotes or one iterable of quotes per
    bookmaker. `None` entries at either level are skipped.
    """
    grouped: dict[str, list[float]] = {}
    for item in quotes_across_bookmakers or ():
        if item is None:
            continue
        quotes = (item,) if isinstance(item, OddsQuote) else item
        for quote in quotes:
            if quote is None:
                continue
            grouped.setdefault(quote.outcome_name, []).append(quote.price)
    return grouped


def consensus(prices: Iterable[Any] | None) -> float:
    """Agreement score in [0, 100]; 100 means every bookmaker quotes the same price."""
    valid = valid_prices(prices)
    if not valid:
        return 0.0
    avg = mean(valid)
    if avg <= 0:
        return 0.0
    return min(100.0, max(0.0, 100.0 * (1.0 - population_stddev(valid) / avg)))


def value_rating(probability: Any, odds: Any, consensus_score: Any) -> float:
    """Blend of probability, 100/odds and consensus, clipped to [0, 100].

    Missing or non-finite inputs are excluded and the remaining weights are
    renormalized, so incomplete data is not scored as if it were zero.
    """
    prob = _finite(probability)
    price = _finite(odds)
    cons = _finite(consensus_score)
    components = (
        (VALUE_WEIGHTS[0], prob),
        (VALUE_WEIGHTS[1], 100.0 / price if price is not None and price > 0 else None),
        (VALUE_WEIGHTS[2], cons),
    )
    present = [(w, v) for w, v in components if v is not None]
    if not present:
        return 0.0
    total_weight = sum(w for w, _ in present)
    score = sum(w * v for w, v in present) / total_weight
    return min(100.0, max(0.0, score))


def recommendation(probability: Any, consensus_score: Any, value: Any) -> Recommendation:
    # Missing inputs compare as 0 and therefore never clear a threshold.
    prob = _finite(probability) or 0.0
    cons = _finite(consensus_score) or 0.0
    val = _finite(value) or 0.0
    for min_prob, min_cons, min_value, label in _RECOMMENDATION_CASCADE:
        if prob > min_prob and cons > min_cons and (min_value is None or val > min_value):
            return label
    return Recommendation.AVOID


def confidence_level(consensus_score: float | None, sample_size: int) -> ConfidenceLevel:
    cons = _finite(consensus_score) or 0.0
    if cons >= CONSENSUS_HIGH and sample_size >= SAMPLE_HIGH:
        return ConfidenceLevel.HIGH
    if cons >= CONSENSUS_MEDIUM and sample_size >= SAMPLE_MEDIUM:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def probability_tier(probability: float | None) -> str | None:
    if probability is None:
        return None
    if probability >= 70:
        return "high"
    if probability >= 50:
        return "medium"
    return "low"


def analyze_outcome(prices: Iterable[Any] | None, outcome: str = "") -> OutcomeAnalysis:
    valid = valid_prices(prices)
    if not valid:
        return OutcomeAnalysis(outcome=outcome)

    avg = mean(valid)
    implied = 100.0 / avg
    cons = consensus(valid)
    rating = value_rating(implied, avg, cons)
    return OutcomeAnalysis(
        outcome=outcome,
        average_odds=avg,
        implied_probability=implied,
        min_odds=min(valid),
        max_odds=max(valid),
        variance=population_stddev(valid),
        consensus=cons,
        bookmaker_count=len(valid),
        value_rating=rating,
        recommendation=recommendation(implied, cons, rating),
        confidence=confidence_level(cons, len(valid)),
    )


def analyze_event(event: Event, market_key: str = "h2h") -> list[OutcomeAnalysis]:
    """Analyze every outcome of one market, most likely outcome first."""
    grouped = aggregate_outcomes(event.market_quotes(market_key))
    analyses = [analyze_outcome(prices, outcome=name) for name, prices in grouped.items()]
    analyses.sort(
        key=lambda a: (a.implied_probability is None, -(a.implied_probability or 0.0)),
    )
    return analyses


def favorite(analyses: list[OutcomeAnalysis]) -> str | None:
    best: OutcomeAnalysis | None = None
    for analysis in analyses:
        if analysis.implied_probability is None:
            continue
        if best is None or analysis.implied_probability > best.implied_probability:
            best = analysis
    return best.outcome if best else None


def summarize_teams(analyses_per_event: Iterable[list[OutcomeAnalysis]]) -> list[TeamSummary]:
    """Roll up outcome analyses by outcome name across events.

    Only available analyses contribute to the averages; an outcome that never
    had valid odds still appears with its occurrence count.
    """
    acc: dict[str, dict[str, Any]] = {}
    for analyses in analyses_per_event:
        for a in analyses:
            row = acc.setdefault(
                a.outcome,
                {"count": 0, "odds": [], "prob": [], "cons": [], "books": [], "min": None, "max": None},
            )
            row["count"] += 1
            if not a.available:
                continue
            row["odds"].append(a.average_odds)
            row["prob"].append(a.implied_probability)
            row["cons"].append(a.consensus if a.consensus is not None else 0.0)
            row["books"].append(a.bookmaker_count)
            row["min"] = a.min_odds if row["min"] is None else min(row["min"], a.min_odds)
            row["max"] = a.max_odds if row["max"] is None else max(row["max"], a.max_odds)

    summaries: list[TeamSummary] = []
    for team, row in acc.items():
        summaries.append(
            TeamSummary(
                team=team,
                occurrences=row["count"],
                average_odds=mean(row["odds"]) if row["odds"] else None,
                average_probability=mean(row["prob"]) if row["prob"] else None,
                average_consensus=mean(row["cons"]) if row["cons"] else None,
                min_odds=row["min"],
                max_odds=row["max"],
                average_bookmakers=round(mean([float(b) for b in row["books"]])) if row["books"] else 0,
            )
        )
    return summaries
