"""Schemas for room availability and price previews."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from ..models.availability import AvailabilityStatus
from .fields import IsoDate


class DayAvailability(BaseModel):
    status: AvailabilityStatus
    price: Decimal
    reason: str | None = None
    notes: str | None = None
    booking_id: str | None = None


class RoomAvailabilityResponse(BaseModel):
    room_id: str
    start: date
    end: date
    default_price: Decimal
    currency: str
    availability: dict[str, DayAvailability]


class OverrideRequest(BaseModel):
    status: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    notes: str | None = Field(default=None, max_length=500)


class OverrideRangeRequest(OverrideRequest):
    start: IsoDate
    end: IsoDate


class OverrideResponse(BaseModel):
    room_id: str
    start: date
    end: date
    status: AvailabilityStatus
    price: Decimal | None = None
    notes: str | None = None
    days: int


class QuoteRequest(BaseModel):
    check_in: IsoDate
    check_out: IsoDate


class NightlyRate(BaseModel):
    night: date
    price: Decimal
    overridden: bool = False


class QuoteResponse(BaseModel):
    room_id: str
    check_in: date
    check_out: date
    nights: int
    nightly: list[NightlyRate]
    total: Decimal
    currency: str
    available: bool = True
    unavailable_dates: list[date] = Field(default_factory=list)
