"""Instant and calendar helpers shared by the engine.

All instants handled by the engine are timezone-aware UTC. Naive values
coming from storage or from callers are taken to already be UTC.
"""

import calendar
from datetime import datetime, timedelta, timezone

from bad_debt.exceptions import InvalidCriteriaError

WEEK = timedelta(weeks=1)

MONTH_NAMES = (
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: str, field_name: str = "date") -> datetime:
    """Parse an ISO-8601 date or datetime string into an aware UTC datetime.

    Raises
    ------
    InvalidCriteriaError
        If the string is empty or not ISO-8601.
    """
    if not value or not value.strip():
        raise InvalidCriteriaError(f"{field_name} must be a non-empty ISO-8601 string")
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidCriteriaError(f"{field_name} is not a valid ISO-8601 date: {value!r}") from e
    return as_utc(parsed)


def weeks_between(start: datetime, end: datetime) -> int:
    """Whole weeks elapsed from ``start`` to ``end`` (floored)."""
    return (as_utc(end) - as_utc(start)) // WEEK


def month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=timezone.utc)


def month_end(year: int, month: int) -> datetime:
    """Last representable millisecond of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, 999000, tzinfo=timezone.utc)


def validate_month(year: int, month: int) -> None:
    if not 1 <= month <= 12:
        raise InvalidCriteriaError(f"month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise InvalidCriteriaError(f"year out of range: {year}")
