"""Odds analysis API: event reports, team summaries, arbitrage scan.

All endpoints read the cached snapshot only; none of them spends upstream
quota.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from oddsboard.models.odds import MARKET_KEYS
from oddsboard.routers.deps import get_services
from oddsboard.services.statistics_engine import probability_tier
from oddsboard.wiring import Services

router = APIRouter(prefix="/api/odds", tags=["odds"])

_NO_DATA_DETAIL = "No odds cached yet, waiting for the next scheduled update."


def _check_market(market: str) -> None:
    if market not in MARKET_KEYS:
        raise HTTPException(status_code=400, detail=f"Unknown market '{market}'.")


def _require(data):
    if data is None:
        raise HTTPException(status_code=503, detail=_NO_DATA_DETAIL)
    return data


@router.get("/{sport_key}/events")
async def list_event_reports(
    sport_key: str,
    market: str = Query("h2h", min_length=1, max_length=50),
    services: Services = Depends(get_services),
):
    _check_market(market)
    reports = _require(await services.analysis.event_reports(sport_key, market))
    return [
        {
            "event_id": r.event_id,
            "home_team": r.home_team,
            "away_team": r.away_team,
            "commence_time": r.commence_time,
            "market": r.market,
            "favorite": r.favorite,
            "outcomes": [
                {**a.to_display(), "probability_tier": probability_tier(a.implied_probability)}
                for a in r.outcomes
            ],
        }
        for r in reports
    ]


@router.get("/{sport_key}/teams")
async def list_team_summaries(
    sport_key: str,
    market: str = Query("h2h", min_length=1, max_length=50),
    services: Services = Depends(get_services),
):
    _check_market(market)
    summaries = _require(await services.analysis.team_summaries(sport_key, market))
    return [s.model_dump() for s in summaries]


@router.get("/{sport_key}/arbitrage")
async def list_arbitrage(
    sport_key: str,
    market: str = Query("h2h", min_length=1, max_length=50),
    services: Services = Depends(get_services),
):
    """Pure arbitrage first, then value bets, each by profit descending."""
    _check_market(market)
    opportunities = _require(await services.analysis.arbitrage(sport_key, market))
    return [o.model_dump(mode="json") for o in opportunities]
