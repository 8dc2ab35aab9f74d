"""
backend/oddsboard/models/odds.py

Purpose:
    Typed shape of the upstream odds payload (events, bookmakers, markets,
    quotes). Raw provider JSON is validated here once; nothing downstream
    re-checks field types.

Dependencies:
    - pydantic
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger("oddsboard.models.odds")

MARKET_KEYS = ("h2h", "spreads", "totals")


class OddsQuote(BaseModel):
    """One bookmaker's decimal price for one outcome."""

    model_config = ConfigDict(frozen=True)

    outcome_name: str
    price: float = Field(gt=0)
    bookmaker: str
    point: float | None = None

    @field_validator("price")
    @classmethod
    def _finite_price(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("price must be finite")
        return value

    @property
    def outcome_key(self) -> str:
        """Outcome name plus the line, so "+3.5" and "-3.5" never collide."""
        if self.point is None:
            return self.outcome_name
        return f"{self.outcome_name} {self.point:+g}"


class Market(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    outcomes: tuple[OddsQuote, ...] = ()


class Bookmaker(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    last_update: datetime | None = None
    markets: tuple[Market, ...] = ()

    def market(self, key: str) -> Market | None:
        for market in self.markets:
            if market.key == key:
                return market
        return None


class Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    sport_key: str = ""
    home_team: str
    away_team: str
    commence_time: datetime
    bookmakers: tuple[Bookmaker, ...] = ()

    @property
    def label(self) -> str:
        return f"{self.home_team} vs {self.away_team}"

    def market_quotes(self, market_key: str = "h2h") -> list[list[OddsQuote]]:
        """Quotes for one market, one inner list per bookmaker offering it."""
        out: list[list[OddsQuote]] = []
        for bookmaker in self.bookmakers:
            market = bookmaker.market(market_key)
            if market is not None and market.outcomes:
                out.append(list(market.outcomes))
        return out

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Event | None":
        """Build an Event from one TheOddsAPI event object.

        Quotes with missing, non-finite or non-positive prices are dropped.
        Returns None when the event itself is unusable (no id, no teams).
        """
        if not isinstance(raw, dict):
            return None
        bookmakers: list[Bookmaker] = []
        for book in raw.get("bookmakers") or []:
            if not isinstance(book, dict):
                continue
            title = str(book.get("title") or book.get("key") or "")
            if not title:
                continue
            markets: list[Market] = []
            for market in book.get("markets") or []:
                if not isinstance(market, dict) or not market.get("key"):
                    continue
                quotes: list[OddsQuote] = []
                for outcome in market.get("outcomes") or []:
                    quote = _parse_quote(outcome, title)
                    if quote is not None:
                        quotes.append(quote)
                markets.append(Market(key=str(market["key"]), outcomes=tuple(quotes)))
            try:
                bookmakers.append(
                    Bookmaker(
                        key=str(book.get("key") or title).lower(),
                        title=title,
                        last_update=book.get("last_update"),
                        markets=tuple(markets),
                    )
                )
            except ValidationError:
                logger.debug("Dropping bookmaker %s with bad metadata", title)

        try:
            return cls(
                id=str(raw.get("id") or ""),
                sport_key=str(raw.get("sport_key") or ""),
                home_team=raw.get("home_team"),
                away_team=raw.get("away_team"),
                commence_time=raw.get("commence_time"),
                bookmakers=tuple(bookmakers),
            )
        except ValidationError as exc:
            logger.warning("Dropping malformed event %s: %s", raw.get("id"), exc.errors()[:1])
            return None

    @field_validator("id", "home_team", "away_team")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value


def _parse_quote(outcome: Any, bookmaker: str) -> OddsQuote | None:
    if not isinstance(outcome, dict):
        return None
    name = outcome.get("name")
    if not name:
        return None
    price = outcome.get("price")
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return None
    point = outcome.get("point")
    if isinstance(point, bool) or not isinstance(point, (int, float)):
        point = None
    try:
        return OddsQuote(
            outcome_name=str(name),
            price=float(price),
            bookmaker=bookmaker,
            point=float(point) if point is not None else None,
        )
    except ValidationError:
        return None


def parse_events(raw: list[Any], sport_key: str = "") -> list[Event]:
    events: list[Event] = []
    for item in raw:
        event = Event.from_api(item)
        if event is None:
            continue
        if sport_key and not event.sport_key:
            event = event.model_copy(update={"sport_key": sport_key})
        events.append(event)
    return events


class CachedOdds(BaseModel):
    """Snapshot held by the cache for one sport."""

    model_config = ConfigDict(frozen=True)

    sport_key: str
    events: tuple[Event, ...] = ()
    timestamp: datetime
