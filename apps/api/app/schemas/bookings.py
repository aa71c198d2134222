"""Schemas for booking mutations and reads."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus
from .availability import NightlyRate
from .fields import IsoDate


class CreateBookingRequest(BaseModel):
    room_id: str = Field(min_length=1)
    check_in: IsoDate
    check_out: IsoDate
    number_of_guests: int = Field(default=1, ge=1)
    special_requests: str | None = Field(default=None, max_length=2000)


class UpdateBookingRequest(BaseModel):
    check_in: IsoDate | None = None
    check_out: IsoDate | None = None
    number_of_guests: int | None = Field(default=None, ge=1)
    special_requests: str | None = Field(default=None, max_length=2000)


class BookingStatusRequest(BaseModel):
    status: BookingStatus


class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reference: str
    room_id: str
    user_id: str
    check_in: date
    check_out: date
    number_of_guests: int
    special_requests: str | None = None
    total_price: Decimal
    status: BookingStatus
    created_at: datetime | None = None


class BookingResponse(BaseModel):
    booking: BookingOut
    nights: int
    nightly: list[NightlyRate] = Field(default_factory=list)


class BookingListResponse(BaseModel):
    items: list[BookingOut]
