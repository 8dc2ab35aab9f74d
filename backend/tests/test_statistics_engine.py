"""
backend/tests/test_statistics_engine.py

Purpose:
    Pure statistics over multi-bookmaker odds: aggregation, sentinel
    handling, consensus, value rating and the recommendation cascade.

Dependencies:
    - oddsboard.services.statistics_engine
"""

from __future__ import annotations

import math

import pytest

from odds_factories import make_event
from oddsboard.models.analysis import ConfidenceLevel, OutcomeAnalysis, Recommendation
from oddsboard.models.odds import OddsQuote
from oddsboard.services import statistics_engine as stats


def _quote(name: str, price: float, book: str = "Book") -> OddsQuote:
    return OddsQuote(outcome_name=name, price=price, bookmaker=book)


def test_aggregate_outcomes_groups_nested_and_flat_input_skipping_none():
    per_bookmaker = [
        [_quote("Home", 2.0, "A"), _quote("Away", 1.9, "A")],
        None,
        [_quote("Home", 2.1, "B"), None],
    ]
    grouped = stats.aggregate_outcomes(per_bookmaker)
    assert grouped == {"Home": [2.0, 2.1], "Away": [1.9]}

    flat = stats.aggregate_outcomes([_quote("Draw", 3.4), None, _quote("Draw", 3.5)])
    assert flat == {"Draw": [3.4, 3.5]}
    assert stats.aggregate_outcomes(None) == {}


def test_analyze_outcome_uses_mean_and_population_stddev():
    result = stats.analyze_outcome([2.0, 2.2, 2.4], outcome="Home")

    assert result.outcome == "Home"
    assert result.average_odds == pytest.approx(2.2)
    assert result.implied_probability == pytest.approx(100 / 2.2)
    assert result.min_odds == 2.0
    assert result.max_odds == 2.4
    # Divides by N (3), not N - 1.
    assert result.variance == pytest.approx(math.sqrt(0.08 / 3))
    assert result.bookmaker_count == 3
    assert result.recommendation is not None
    assert result.confidence is ConfidenceLevel.LOW


def test_analyze_outcome_filters_invalid_prices():
    result = stats.analyze_outcome([2.0, None, "2.5", -1, 0, float("nan"), float("inf"), True, 2.4])
    assert result.bookmaker_count == 2
    assert result.average_odds == pytest.approx(2.2)


@pytest.mark.parametrize("prices", [[], None, [None, "x"], [0, -2.5], [float("nan"), float("inf")]])
def test_analyze_outcome_returns_not_available_sentinel(prices):
    result = stats.analyze_outcome(prices, outcome="Away")

    assert result.available is False
    assert result.outcome == "Away"
    for field in (
        "average_odds", "implied_probability", "min_odds", "max_odds",
        "variance", "consensus", "value_rating", "recommendation", "confidence",
    ):
        assert getattr(result, field) is None
    assert result.bookmaker_count == 0


def test_consensus_bounds():
    assert stats.consensus([1.95]) == 100.0
    assert stats.consensus([1.8, 1.8, 1.8]) == 100.0
    assert stats.consensus([]) == 0.0
    assert stats.consensus(None) == 0.0
    # Dispersion above the mean clips at zero instead of going negative.
    assert stats.consensus([1, 1, 1, 1, 100]) == 0.0

    spread = stats.consensus([1.8, 2.0, 2.2])
    assert 0.0 < spread < 100.0


def test_value_rating_weights_and_clipping():
    assert stats.value_rating(50.0, 2.0, 80.0) == pytest.approx(0.4 * 50 + 0.3 * 50 + 0.3 * 80)
    assert stats.value_rating(100.0, 0.5, 100.0) == 100.0
    assert stats.value_rating(0.0, 1000.0, 0.0) == pytest.approx(0.03)


def test_value_rating_renormalizes_missing_inputs():
    # Only the odds component is present: 100/2.0 carries the full weight.
    assert stats.value_rating(None, 2.0, None) == pytest.approx(50.0)
    assert stats.value_rating(60.0, None, 80.0) == pytest.approx((0.4 * 60 + 0.3 * 80) / 0.7)
    assert stats.value_rating(None, None, None) == 0.0
    assert stats.value_rating(float("nan"), 0, "bad") == 0.0


@pytest.mark.parametrize(
    ("probability", "consensus", "value", "expected"),
    [
        (75, 85, 80, Recommendation.STRONG_BET),
        (75, 85, 70, Recommendation.GOOD_VALUE),
        # Thresholds are strict: exactly 70 does not clear the top tier.
        (70, 85, 80, Recommendation.GOOD_VALUE),
        (55, 65, 60, Recommendation.CONSIDER),
        (45, 55, 0, Recommendation.MONITOR),
        (40, 55, 90, Recommendation.AVOID),
        (30, 95, 95, Recommendation.AVOID),
        (None, 95, 95, Recommendation.AVOID),
    ],
)
def test_recommendation_cascade(probability, consensus, value, expected):
    assert stats.recommendation(probability, consensus, value) is expected


def test_confidence_level_and_probability_tier():
    assert stats.confidence_level(85.0, 10) is ConfidenceLevel.HIGH
    assert stats.confidence_level(85.0, 9) is ConfidenceLevel.MEDIUM
    assert stats.confidence_level(60.0, 5) is ConfidenceLevel.MEDIUM
    assert stats.confidence_level(59.9, 20) is ConfidenceLevel.LOW
    assert stats.confidence_level(None, 20) is ConfidenceLevel.LOW

    assert stats.probability_tier(72.0) == "high"
    assert stats.probability_tier(50.0) == "medium"
    assert stats.probability_tier(12.5) == "low"
    assert stats.probability_tier(None) is None


def test_analyze_event_sorts_by_probability_and_picks_favorite():
    event = make_event(
        {
            "BookA": {"Home": 1.50, "Away": 2.80},
            "BookB": {"Home": 1.55, "Away": 2.70},
        }
    )
    analyses = stats.analyze_event(event)

    assert [a.outcome for a in analyses] == ["Home", "Away"]
    assert analyses[0].bookmaker_count == 2
    assert stats.favorite(analyses) == "Home"
    assert stats.analyze_event(event, "spreads") == []


def test_favorite_ignores_unavailable_outcomes():
    analyses = [OutcomeAnalysis(outcome="Ghost"), stats.analyze_outcome([3.0], outcome="Away")]
    assert stats.favorite(analyses) == "Away"
    assert stats.favorite([OutcomeAnalysis(outcome="Ghost")]) is None


def test_summarize_teams_rolls_up_across_events():
    first = stats.analyze_event(make_event({"A": {"Lions": 2.0, "Bears": 1.8}, "B": {"Lions": 2.2, "Bears": 1.7}}))
    second = stats.analyze_event(
        make_event({"A": {"Lions": 1.6, "Packers": 2.4}}, event_id="evt-2", home="Lions", away="Packers")
    )
    summaries = {s.team: s for s in stats.summarize_teams([first, second])}

    lions = summaries["Lions"]
    assert lions.occurrences == 2
    assert lions.average_odds == pytest.approx((2.1 + 1.6) / 2)
    assert lions.min_odds == 1.6
    assert lions.max_odds == 2.2
    assert lions.average_bookmakers == 2  # round((2 + 1) / 2)

    assert summaries["Packers"].occurrences == 1


def test_summarize_teams_does_not_count_unavailable_as_zero():
    available = stats.analyze_outcome([2.0], outcome="Lions")
    missing = OutcomeAnalysis(outcome="Lions")
    summary = stats.summarize_teams([[available], [missing]])[0]

    assert summary.occurrences == 2
    assert summary.average_odds == pytest.approx(2.0)
    assert summary.average_probability == pytest.approx(50.0)


def test_to_display_rounds_without_touching_model():
    analysis = stats.analyze_outcome([1.912, 1.957, 2.003], outcome="Home")
    shown = analysis.to_display()

    assert shown["average_odds"] == round(analysis.average_odds, 2)
    assert shown["implied_probability"] == round(analysis.implied_probability, 1)
    assert shown["variance"] == round(analysis.variance, 2)
    assert isinstance(shown["recommendation"], str)
    assert analysis.average_odds != shown["average_odds"]
