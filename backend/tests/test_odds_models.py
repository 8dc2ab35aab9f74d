"""
backend/tests/test_odds_models.py

Purpose:
    Ingestion validation of TheOddsAPI payloads into typed events.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from oddsboard.models.odds import Event, OddsQuote, parse_events


def _raw_event(**overrides):
    raw = {
        "id": "abc123",
        "sport_key": "americanfootball_nfl",
        "commence_time": "2024-09-08T17:00:00Z",
        "home_team": "Kansas City Chiefs",
        "away_team": "Baltimore Ravens",
        "bookmakers": [
            {
                "key": "pinnacle",
                "title": "Pinnacle",
                "last_update": "2024-09-08T10:00:00Z",
                "markets": [
                    {
                        "key": "h2h",
                        "outcomes": [
                            {"name": "Kansas City Chiefs", "price": 1.71},
                            {"name": "Baltimore Ravens", "price": "2.2"},
                            {"name": "Draw", "price": -4},
                            {"price": 3.1},
                        ],
                    },
                    {
                        "key": "spreads",
                        "outcomes": [
                            {"name": "Kansas City Chiefs", "price": 1.91, "point": -3.5},
                            {"name": "Baltimore Ravens", "price": 1.95, "point": 3.5},
                        ],
                    },
                ],
            }
        ],
    }
    raw.update(overrides)
    return raw


def test_from_api_keeps_only_valid_quotes():
    event = Event.from_api(_raw_event())

    assert event.commence_time == datetime(2024, 9, 8, 17, 0, tzinfo=timezone.utc)
    h2h = event.market_quotes("h2h")
    assert [[q.outcome_name for q in quotes] for quotes in h2h] == [["Kansas City Chiefs"]]
    spreads = event.market_quotes("spreads")[0]
    assert [q.outcome_key for q in spreads] == ["Kansas City Chiefs -3.5", "Baltimore Ravens +3.5"]
    assert spreads[0].bookmaker == "Pinnacle"
    assert event.label == "Kansas City Chiefs vs Baltimore Ravens"


def test_from_api_rejects_events_without_identity():
    assert Event.from_api(_raw_event(home_team=None)) is None
    assert Event.from_api(_raw_event(id="")) is None
    assert Event.from_api("not-an-event") is None


def test_parse_events_drops_malformed_and_fills_sport_key():
    events = parse_events([_raw_event(sport_key=None), _raw_event(away_team=""), 42], sport_key="nfl")
    assert len(events) == 1
    assert events[0].sport_key == "nfl"


def test_quote_price_must_be_positive_and_finite():
    with pytest.raises(ValidationError):
        OddsQuote(outcome_name="Home", price=0, bookmaker="A")
    with pytest.raises(ValidationError):
        OddsQuote(outcome_name="Home", price=float("inf"), bookmaker="A")
