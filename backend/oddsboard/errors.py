"""
backend/oddsboard/errors.py

Purpose:
    Exception taxonomy for the odds core. Only genuine failures are raised;
    quota denials and rejected concurrent updates are returned as values
    (see models.usage.UpdateResult).
"""


class OddsboardError(Exception):
    """Base class for all oddsboard errors."""


class FetchError(OddsboardError):
    """Upstream odds fetch failed (status, network, payload, circuit, timeout)."""


class LedgerUnavailableError(OddsboardError):
    """Usage store could not be read."""


class LedgerWriteError(OddsboardError):
    """Usage increment could not be persisted."""
