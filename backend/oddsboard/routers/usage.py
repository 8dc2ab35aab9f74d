"""Quota ledger and update scheduler API."""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from oddsboard.errors import LedgerUnavailableError
from oddsboard.routers.deps import get_services
from oddsboard.wiring import Services

router = APIRouter(prefix="/api", tags=["usage"])


@router.get("/usage")
async def get_usage(services: Services = Depends(get_services)):
    try:
        usage = await services.ledger.current_usage()
    except LedgerUnavailableError:
        raise HTTPException(status_code=503, detail="Usage store unavailable.")
    return {
        "month": services.ledger.current_month(),
        "count": usage.count,
        "limit": usage.limit,
        "remaining": usage.remaining,
        "last_api_call": usage.last_api_call,
    }


@router.get("/usage/history")
async def get_usage_history(
    months: int = Query(12, ge=1, le=24),
    services: Services = Depends(get_services),
):
    try:
        records = await services.ledger.history(months)
    except LedgerUnavailableError:
        raise HTTPException(status_code=503, detail="Usage store unavailable.")
    return [r.model_dump() for r in records]


@router.get("/updates/status")
async def get_update_status(services: Services = Depends(get_services)):
    return services.updates.status().model_dump()


@router.post("/updates/force")
async def force_update(services: Services = Depends(get_services)):
    """Manual refresh. Still bound by the monthly limit and the daily cap."""
    result = await services.updates.force_update()
    if result is None:
        raise HTTPException(status_code=409, detail="An update is already in progress.")

    payload = {
        "status": result.status.value,
        "reason": result.reason.value,
        "message": result.message,
        "event_count": len(result.events) if result.events is not None else None,
        "data_timestamp": result.data_timestamp.isoformat() if result.data_timestamp else None,
        "usage_recorded": result.usage_recorded,
    }
    if result.retry_later:
        return JSONResponse(status_code=429, content=payload)
    return payload
