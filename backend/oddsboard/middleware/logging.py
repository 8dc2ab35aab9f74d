"""
backend/oddsboard/middleware/logging.py

Purpose:
    Request logging for the dashboard API and root logger setup.

    Each request gets one JSON line. An upstream proxy's X-Request-ID is
    reused when it looks sane, so a dashboard refresh can be traced across
    hops. Health probes log at DEBUG to keep polling out of INFO output.
"""

import hashlib
import json
import logging
import re
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("oddsboard.http")

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_QUIET_PATHS = frozenset({"/health"})


def _request_id(request: Request) -> str:
    inbound = request.headers.get(REQUEST_ID_HEADER)
    if inbound and _REQUEST_ID_PATTERN.match(inbound):
        return inbound
    return uuid.uuid4().hex[:8]


def _hash_client(request: Request) -> str | None:
    if not request.client or not request.client.host:
        return None
    return hashlib.sha256(request.client.host.encode()).hexdigest()[:12]


def _level_for(path: str, status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.DEBUG if path in _QUIET_PATHS else logging.INFO


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = _request_id(request)
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        path = request.url.path
        entry = {
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "market": request.query_params.get("market"),
            "status": response.status_code,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            "client_ip_hash": _hash_client(request),
        }
        logger.log(_level_for(path, response.status_code), json.dumps(entry))

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def setup_logging(level: str | int = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
