from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (UTC). Already-aware datetimes are converted.

    MongoDB hands datetimes back without tzinfo. Wrap anything read from a
    document before comparing it with utcnow().
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def month_key(dt: datetime) -> str:
    """Usage ledger key for the calendar month of `dt`, always on the UTC clock."""
    dt = ensure_utc(dt)
    return f"{dt.year:04d}-{dt.month:02d}"


def utc_day(dt: datetime) -> date:
    return ensure_utc(dt).date()
