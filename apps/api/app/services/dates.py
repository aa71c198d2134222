"""Calendar-date helpers for stays and availability windows.

Everything here works on :class:`datetime.date` values. Stays are half-open:
the check-in night is included, the check-out date is not.
"""
from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime, timedelta

from ..core.errors import ValidationError

ONE_DAY = timedelta(days=1)
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_iso_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string; timestamps and offsets are rejected."""

    if isinstance(value, datetime):
        raise ValidationError(f"Invalid date {value!r}; expected a calendar date without time")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date {value!r}; expected YYYY-MM-DD")
    text = value.strip()
    if not _ISO_DATE.match(text):
        raise ValidationError(f"Invalid date {value!r}; expected YYYY-MM-DD")
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {value!r}; expected YYYY-MM-DD") from exc


def date_key(day: date) -> str:
    return day.isoformat()


def nights(check_in: date, check_out: date) -> int:
    """Number of nights between check-in and check-out."""

    return (check_out - check_in).days


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive."""

    day = start
    while day <= end:
        yield day
        day += ONE_DAY


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield the occupied nights of a stay, excluding the check-out date."""

    day = check_in
    while day < check_out:
        yield day
        day += ONE_DAY


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    """Return True if the half-open ranges ``[a_start, a_end)`` and ``[b_start, b_end)`` intersect."""

    return a_start < b_end and b_start < a_end


def validate_stay(check_in: date, check_out: date) -> int:
    """Ensure the stay covers at least one night and return the night count."""

    count = nights(check_in, check_out)
    if count <= 0:
        raise ValidationError("Check-out must be after check-in")
    return count
