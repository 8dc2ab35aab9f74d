import asyncio
import logging
import time
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("oddsboard.http_client")

_RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})
_NETWORK_ERRORS = (httpx.TimeoutException, httpx.ConnectError, httpx.RemoteProtocolError)
_MAX_BACKOFF_SECONDS = 60.0


class CircuitBreaker:
    """Opens after consecutive failures; half-opens once the recovery window passes."""

    def __init__(self, failure_threshold: int = 3, recovery_timeout: float = 300.0):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.opened_at: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.opened_at is not None

    def record_success(self) -> None:
        if self.is_open:
            logger.info("Circuit breaker closed after successful call")
        self.failure_count = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.failure_count >= self.failure_threshold:
            if not self.is_open:
                logger.warning("Circuit breaker OPEN after %d failures", self.failure_count)
            self.opened_at = time.monotonic()

    def can_attempt(self) -> bool:
        if self.opened_at is None:
            return True
        return time.monotonic() - self.opened_at >= self.recovery_timeout


def _retry_after_seconds(response: httpx.Response) -> Optional[float]:
    for header in ("retry-after", "x-ratelimit-retry-after"):
        value = response.headers.get(header)
        if value is None:
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None


def safe_url(url: str) -> str:
    """Drop the query string; it carries the API key."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class ResilientClient:
    """httpx.AsyncClient with bounded retries, exponential backoff and a circuit breaker.

    Retries cover 429/5xx responses and connection-level errors. After the
    last attempt the final response is returned (the caller decides what a
    bad status means) or the last network error is re-raised.
    """

    def __init__(
        self,
        name: str,
        timeout: float = 15.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._name = name
        self._max_retries = max_retries
        self._base_delay = base_delay
        self.circuit = CircuitBreaker()

    async def get(self, url: str, **kwargs) -> httpx.Response:
        attempts = self._max_retries + 1
        last_exc: Optional[Exception] = None
        last_resp: Optional[httpx.Response] = None

        for attempt in range(attempts):
            delay = self._base_delay * (2 ** attempt)
            try:
                resp = await self._client.get(url, **kwargs)
            except _NETWORK_ERRORS as exc:
                last_exc = exc
                logger.warning(
                    "[%s] Network error on GET %s (attempt %d/%d): %s",
                    self._name, safe_url(url), attempt + 1, attempts, exc,
                )
            else:
                if resp.status_code not in _RETRYABLE_STATUSES:
                    return resp
                last_resp = resp
                logger.warning(
                    "[%s] Retryable status %d on GET %s (attempt %d/%d)",
                    self._name, resp.status_code, safe_url(url), attempt + 1, attempts,
                )
                delay = _retry_after_seconds(resp) or delay

            if attempt < self._max_retries:
                await asyncio.sleep(min(delay, _MAX_BACKOFF_SECONDS))

        if last_resp is not None:
            logger.error(
                "[%s] All %d attempts failed for GET %s (last status: %d)",
                self._name, attempts, safe_url(url), last_resp.status_code,
            )
            return last_resp
        logger.error("[%s] All %d attempts failed for GET %s: %s", self._name, attempts, safe_url(url), last_exc)
        raise last_exc  # type: ignore[misc]

    async def aclose(self) -> None:
        await self._client.aclose()
