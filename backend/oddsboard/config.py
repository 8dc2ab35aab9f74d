"""
backend/oddsboard/config.py

Purpose:
    Central settings loading plus the immutable update configuration handed
    to the scheduler.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from dataclasses import dataclass
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"

DEFAULT_UPDATE_SLOT_HOURS = [0, 3, 6, 9, 12, 15, 18, 21]


class Settings(BaseSettings):
    # Upstream odds provider
    ODDSAPIKEY: str = ""
    THEODDSAPI_BASE_URL: str = "https://api.the-odds-api.com/v4"
    ODDS_SPORT_KEY: str = "americanfootball_nfl"
    ODDS_REGIONS: str = "eu"
    ODDS_MARKETS: str = "h2h"
    ODDS_FORMAT: str = "decimal"

    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "oddsboard"
    LOG_LEVEL: str = "INFO"
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"

    # Quota and schedule
    MONTHLY_API_LIMIT: int = 450
    UPDATE_INTERVAL_HOURS: float = 3.0
    DAILY_CALL_CAP: int | None = None  # None: derived, see daily_call_cap
    UPDATE_SLOT_HOURS: list[int] = DEFAULT_UPDATE_SLOT_HOURS
    FETCH_TIMEOUT_SECONDS: float = 60.0
    STARTUP_UPDATE_ENABLED: bool = True

    # HTTP client
    HTTP_TIMEOUT_SECONDS: float = 15.0
    HTTP_MAX_RETRIES: int = 3
    HTTP_RETRY_BASE_DELAY_SECONDS: float = 1.0

    # Arbitrage / value detection
    VALUE_BET_MIN_MARGIN_PERCENT: float = 1.0
    ARBITRAGE_MIN_PROFIT_PERCENT: float = 0.0
    ARBITRAGE_MIN_BOOKMAKERS: int = 2

    # Later files win, so backend/.env overrides the project-root .env.
    model_config = {
        "env_file": (str(_ROOT_ENV_FILE), str(_BACKEND_ENV_FILE)),
        "extra": "ignore",
    }

    @field_validator("UPDATE_SLOT_HOURS")
    @classmethod
    def _normalize_slots(cls, value: list[int]) -> list[int]:
        hours = sorted({int(h) for h in value})
        if not hours:
            raise ValueError("UPDATE_SLOT_HOURS must not be empty")
        if hours[0] < 0 or hours[-1] > 23:
            raise ValueError("UPDATE_SLOT_HOURS entries must be within 0..23")
        return hours

    @field_validator("MONTHLY_API_LIMIT")
    @classmethod
    def _positive_limit(cls, value: int) -> int:
        if value < 0:
            raise ValueError("MONTHLY_API_LIMIT must be >= 0")
        return value

    @property
    def daily_call_cap(self) -> int:
        if self.DAILY_CALL_CAP is not None:
            return max(0, self.DAILY_CALL_CAP)
        return derive_daily_call_cap(self.MONTHLY_API_LIMIT, self.UPDATE_SLOT_HOURS)

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.BACKEND_CORS_ORIGINS.split(",") if o.strip()]


def derive_daily_call_cap(monthly_limit: int, slot_hours: list[int]) -> int:
    """Spread the monthly budget over 30 days, never above one call per slot."""
    return max(1, min(monthly_limit // 30, len(slot_hours)))


@dataclass(frozen=True)
class UpdateConfig:
    monthly_limit: int = 450
    update_interval_hours: float = 3.0
    daily_call_cap: int = 8
    update_slot_hours: tuple[int, ...] = tuple(DEFAULT_UPDATE_SLOT_HOURS)
    fetch_timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, s: Settings) -> "UpdateConfig":
        return cls(
            monthly_limit=s.MONTHLY_API_LIMIT,
            update_interval_hours=s.UPDATE_INTERVAL_HOURS,
            daily_call_cap=s.daily_call_cap,
            update_slot_hours=tuple(s.UPDATE_SLOT_HOURS),
            fetch_timeout_seconds=s.FETCH_TIMEOUT_SECONDS,
        )


settings = Settings()
