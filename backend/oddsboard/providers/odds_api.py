import asyncio
import logging
from typing import Any, Optional

import httpx

from oddsboard.errors import FetchError
from oddsboard.models.odds import Event, parse_events
from oddsboard.monitoring.update_metrics import METRIC_FETCH_LATENCY, observe_latency
from oddsboard.providers.base import OddsFetcher
from oddsboard.providers.http_client import ResilientClient

logger = logging.getLogger("oddsboard.odds_api")

BASE_URL = "https://api.the-odds-api.com/v4"


class TheOddsAPIFetcher(OddsFetcher):
    """TheOddsAPI v4 odds endpoint, decimal prices.

    Every successful call here costs quota upstream; metering against the
    monthly budget is the scheduler's job, not this class's.
    """

    def __init__(
        self,
        client: ResilientClient,
        api_key: str,
        base_url: str = BASE_URL,
        regions: str = "eu",
        markets: str = "h2h",
        odds_format: str = "decimal",
    ):
        self._client = client
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._regions = regions
        self._markets = markets
        self._odds_format = odds_format
        self.upstream_usage: dict[str, Optional[int]] = {
            "requests_used": None,
            "requests_remaining": None,
        }

    async def fetch(self, sport_key: str) -> list[Event]:
        if not self._api_key:
            raise FetchError("ODDSAPIKEY is not configured")
        if not self._client.circuit.can_attempt():
            raise FetchError("circuit open for odds provider")

        try:
            with observe_latency(METRIC_FETCH_LATENCY):
                resp = await self._client.get(
                    f"{self._base_url}/sports/{sport_key}/odds",
                    params={
                        "apiKey": self._api_key,
                        "regions": self._regions,
                        "markets": self._markets,
                        "oddsFormat": self._odds_format,
                    },
                )
        except httpx.HTTPError as exc:
            self._client.circuit.record_failure()
            raise FetchError(f"network error fetching {sport_key}: {exc}") from exc
        except asyncio.CancelledError:
            # The caller's fetch timeout fired mid-retry; a hung upstream still counts.
            self._client.circuit.record_failure()
            raise

        self._track_usage_headers(resp)
        if resp.status_code != 200:
            self._client.circuit.record_failure()
            raise FetchError(f"TheOddsAPI returned HTTP {resp.status_code} for {sport_key}")

        try:
            raw: Any = resp.json()
        except ValueError as exc:
            self._client.circuit.record_failure()
            raise FetchError(f"TheOddsAPI returned invalid JSON for {sport_key}") from exc

        if not isinstance(raw, list):
            # Errors come back as {"message": ..., "error_code": ...}
            message = raw.get("message") if isinstance(raw, dict) else type(raw).__name__
            self._client.circuit.record_failure()
            raise FetchError(f"TheOddsAPI error payload for {sport_key}: {message}")

        self._client.circuit.record_success()
        events = parse_events(raw, sport_key=sport_key)
        if len(events) != len(raw):
            logger.warning("Dropped %d malformed events for %s", len(raw) - len(events), sport_key)
        logger.info(
            "TheOddsAPI: %d events fetched for %s. Quota: %s used, %s remaining",
            len(events), sport_key,
            self.upstream_usage["requests_used"], self.upstream_usage["requests_remaining"],
        )
        return events

    def _track_usage_headers(self, resp: httpx.Response) -> None:
        for header, key in (("x-requests-used", "requests_used"), ("x-requests-remaining", "requests_remaining")):
            value = resp.headers.get(header)
            if value is None:
                continue
            try:
                self.upstream_usage[key] = int(float(value))
            except ValueError:
                logger.debug("Ignoring unparsable %s header: %r", header, value)
