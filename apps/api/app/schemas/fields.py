"""Shared field types for request bodies."""
from __future__ import annotations

from datetime import date
from typing import Annotated

from pydantic import BeforeValidator

from ..core.errors import ValidationError
from ..services.dates import parse_iso_date


def _calendar_date(value: object) -> date:
    try:
        return parse_iso_date(value)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ValueError(exc.detail) from exc


# A plain ``YYYY-MM-DD`` date; timestamps, offsets and epoch numbers are refused.
IsoDate = Annotated[date, BeforeValidator(_calendar_date)]
