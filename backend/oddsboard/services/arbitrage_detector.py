"""
backend/oddsboard/services/arbitrage_detector.py

Purpose:
    Cross-bookmaker opportunity scan for one market of one event.

    Pure arbitrage: take the best price per outcome across bookmakers. When
    the summed reciprocals stay below 1, staking each leg in proportion to
    its reciprocal returns the same payout whatever happens, and that payout
    exceeds the total stake by (1/sum - 1).

    Value bet: a single outcome whose best price sits clearly above the
    worst competing price. No guarantee, reported as medium risk.

Dependencies:
    - oddsboard.models
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from oddsboard.models.analysis import ArbitrageLeg, ArbitrageOpportunity, OpportunityType
from oddsboard.models.odds import Event, OddsQuote

logger = logging.getLogger("oddsboard.arbitrage")

DEFAULT_VALUE_MARGIN_PERCENT = 1.0


class ArbitrageDetector:
    def __init__(
        self,
        min_value_margin_percent: float = DEFAULT_VALUE_MARGIN_PERCENT,
        min_profit_percent: float = 0.0,
        min_bookmakers: int = 2,
    ):
        self.min_value_margin_percent = min_value_margin_percent
        self.min_profit_percent = min_profit_percent
        self.min_bookmakers = min_bookmakers

    def detect(self, event: Event, market_key: str = "h2h") -> list[ArbitrageOpportunity]:
        per_bookmaker = event.market_quotes(market_key)
        if len(per_bookmaker) < self.min_bookmakers:
            return []

        by_outcome: dict[str, list[OddsQuote]] = {}
        for quotes in per_bookmaker:
            for quote in quotes:
                by_outcome.setdefault(quote.outcome_key, []).append(quote)

        opportunities: list[ArbitrageOpportunity] = []
        pure = self._pure_arbitrage(event, market_key, by_outcome)
        if pure is not None:
            opportunities.append(pure)
        opportunities.extend(self._value_bets(event, market_key, by_outcome))
        return sort_opportunities(opportunities)

    def detect_all(self, events: Iterable[Event], market_key: str = "h2h") -> list[ArbitrageOpportunity]:
        found: list[ArbitrageOpportunity] = []
        for event in events:
            found.extend(self.detect(event, market_key))
        return sort_opportunities(found)

    def _pure_arbitrage(
        self,
        event: Event,
        market_key: str,
        by_outcome: dict[str, list[OddsQuote]],
    ) -> ArbitrageOpportunity | None:
        if len(by_outcome) < 2:
            return None
        best = {key: max(quotes, key=lambda q: q.price) for key, quotes in by_outcome.items()}
        implied_sum = sum(1.0 / q.price for q in best.values())
        if implied_sum >= 1.0:
            return None

        profit = (1.0 / implied_sum - 1.0) * 100.0
        if profit < self.min_profit_percent:
            return None

        legs = [
            ArbitrageLeg(
                outcome=key,
                odds=quote.price,
                stake_percent=(1.0 / quote.price) / implied_sum * 100.0,
                bookmaker=quote.bookmaker,
            )
            for key, quote in best.items()
        ]
        logger.info(
            "Pure arbitrage on %s [%s]: implied_sum=%.4f profit=%.2f%%",
            event.label, market_key, implied_sum, profit,
        )
        return ArbitrageOpportunity(
            type=OpportunityType.PURE_ARBITRAGE,
            game=event.label,
            event_id=event.id,
            commence_time=event.commence_time,
            market=market_key,
            profit_percent=profit,
            risk="low",
            bets=legs,
            implied_sum=implied_sum,
        )

    def _value_bets(
        self,
        event: Event,
        market_key: str,
        by_outcome: dict[str, list[OddsQuote]],
    ) -> list[ArbitrageOpportunity]:
        out: list[ArbitrageOpportunity] = []
        for key, quotes in by_outcome.items():
            if len(quotes) < 2:
                continue
            best = max(quotes, key=lambda q: q.price)
            worst = min(quotes, key=lambda q: q.price)
            margin = (best.price - worst.price) / worst.price * 100.0
            if margin <= self.min_value_margin_percent:
                continue
            out.append(
                ArbitrageOpportunity(
                    type=OpportunityType.VALUE_BET,
                    game=event.label,
                    event_id=event.id,
                    commence_time=event.commence_time,
                    market=market_key,
                    profit_percent=margin,
                    risk="medium",
                    bets=[
                        ArbitrageLeg(
                            outcome=key,
                            odds=best.price,
                            stake_percent=100.0,
                            bookmaker=best.bookmaker,
                        )
                    ],
                    reference_price=(best.price + worst.price) / 2.0,
                )
            )
        return out


def sort_opportunities(opportunities: list[ArbitrageOpportunity]) -> list[ArbitrageOpportunity]:
    """Guaranteed profit first, then highest profit within each type."""
    return sorted(
        opportunities,
        key=lambda o: (o.type is not OpportunityType.PURE_ARBITRAGE, -o.profit_percent),
    )
