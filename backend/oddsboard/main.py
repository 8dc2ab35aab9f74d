"""
backend/oddsboard/main.py

Purpose:
    FastAPI application bootstrap: logging, database, service graph,
    scheduler lifecycle and the startup cache check.

Dependencies:
    - oddsboard.database
    - oddsboard.wiring
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oddsboard.config import settings
from oddsboard.database import close_db, connect_db
from oddsboard.middleware.logging import StructuredLoggingMiddleware, setup_logging
from oddsboard.routers.odds import router as odds_router
from oddsboard.routers.usage import router as usage_router
from oddsboard.wiring import build_services

logger = logging.getLogger("oddsboard")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    client, db = await connect_db(settings.MONGO_URI, settings.MONGO_DB)
    scheduler = AsyncIOScheduler(timezone="UTC")
    services = build_services(settings, db, scheduler=scheduler)
    app.state.services = services

    scheduler.start()
    logger.info(
        "Odds updates for %s: every %.1fh, daily cap %d, monthly limit %d",
        services.sport_key,
        settings.UPDATE_INTERVAL_HOURS,
        settings.daily_call_cap,
        settings.MONTHLY_API_LIMIT,
    )
    await services.updates.initialize(run_startup_check=settings.STARTUP_UPDATE_ENABLED)
    logger.info("Background scheduler started")

    yield

    services.updates.shutdown()
    if scheduler.running:
        scheduler.shutdown(wait=False)
    await services.http_client.aclose()
    close_db(client)


app = FastAPI(
    title="Oddsboard",
    description="Odds aggregation, arbitrage scan and quota-bounded updates",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
app.include_router(odds_router)
app.include_router(usage_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An internal error occurred."})


@app.get("/health")
async def health(request: Request):
    services = getattr(request.app.state, "services", None)
    circuit_open = services.http_client.circuit.is_open if services is not None else None
    return {
        "status": "ok",
        "odds_provider": {"circuit_open": circuit_open},
    }
