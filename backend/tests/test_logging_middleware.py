"""
backend/tests/test_logging_middleware.py

Purpose:
    Request id propagation and log levels of the structured request logger.
"""

from __future__ import annotations

import json
import logging

from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from oddsboard.middleware.logging import StructuredLoggingMiddleware


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(StructuredLoggingMiddleware)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/api/odds/{sport_key}/events")
    async def events(sport_key: str, market: str = "h2h"):
        raise HTTPException(status_code=503, detail="waiting")

    return app


def _records(caplog):
    return [r for r in caplog.records if r.name == "oddsboard.http"]


def test_inbound_request_id_is_reused_and_echoed(caplog):
    caplog.set_level(logging.DEBUG, logger="oddsboard.http")
    client = TestClient(_app())

    resp = client.get("/health", headers={"X-Request-ID": "dash-42"})

    assert resp.headers["X-Request-ID"] == "dash-42"
    record = _records(caplog)[-1]
    assert record.levelno == logging.DEBUG
    assert json.loads(record.getMessage())["request_id"] == "dash-42"


def test_malformed_request_id_is_replaced(caplog):
    client = TestClient(_app())
    resp = client.get("/health", headers={"X-Request-ID": "bad id with spaces"})

    assert resp.headers["X-Request-ID"] != "bad id with spaces"
    assert len(resp.headers["X-Request-ID"]) == 8


def test_server_errors_log_at_error_with_market(caplog):
    caplog.set_level(logging.DEBUG, logger="oddsboard.http")
    client = TestClient(_app())

    resp = client.get("/api/odds/americanfootball_nfl/events?market=spreads")

    assert resp.status_code == 503
    record = _records(caplog)[-1]
    assert record.levelno == logging.ERROR
    entry = json.loads(record.getMessage())
    assert entry["market"] == "spreads"
    assert entry["status"] == 503
