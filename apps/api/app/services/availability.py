"""Room availability reconciliation and owner calendar overrides.

The availability map for a window is built in three layers, later layers
winning for the same date:

1. every date starts as ``blocked`` / "not configured" at the room's default price;
2. owner overrides set status, notes and (optionally) the nightly price;
3. active bookings mark their nights ``occupied``; the check-out date stays free.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor
from ..core.config import settings
from ..core.errors import PersistenceError, ValidationError
from ..models.availability import AvailabilityStatus
from ..repositories import availability as availability_repo
from ..repositories import bookings as bookings_repo
from ..schemas import availability as schemas
from . import dates, pricing
from .properties import get_managed_property, get_room_in_property

logger = logging.getLogger(__name__)

REASON_NOT_CONFIGURED = "not configured"
REASON_CONFIGURED = "configured"
REASON_BOOKED = "booked"

# Owner statuses that close a night to new bookings, plus nights already booked.
UNBOOKABLE_STATUSES = frozenset(
    {AvailabilityStatus.BLOCKED, AvailabilityStatus.MAINTENANCE, AvailabilityStatus.OCCUPIED}
)


class OverrideRow(Protocol):
    day: date
    status: AvailabilityStatus
    price: Decimal | None
    notes: str | None


class BookedRange(Protocol):
    id: str
    check_in: date
    check_out: date


@dataclass(slots=True)
class DayState:
    status: AvailabilityStatus
    price: Decimal
    reason: str | None = None
    notes: str | None = None
    booking_id: str | None = None
    overridden: bool = False


def build_availability_map(
    start: date,
    end: date,
    *,
    default_price: Decimal,
    overrides: Iterable[OverrideRow],
    bookings: Iterable[BookedRange],
) -> dict[str, DayState]:
    """Merge defaults, overrides and bookings into one entry per date in ``[start, end]``."""

    default_price = pricing.to_money(default_price)
    day_map = {
        dates.date_key(day): DayState(
            status=AvailabilityStatus.BLOCKED, price=default_price, reason=REASON_NOT_CONFIGURED
        )
        for day in dates.iter_dates(start, end)
    }

    for override in overrides:
        key = dates.date_key(override.day)
        if key not in day_map:
            continue
        day_map[key] = DayState(
            status=override.status,
            price=pricing.resolve_night_price(override, default_price),
            reason=REASON_CONFIGURED,
            notes=override.notes,
            overridden=override.price is not None,
        )

    for booking in bookings:
        if not dates.ranges_overlap(booking.check_in, booking.check_out, start, end + dates.ONE_DAY):
            continue
        first = max(booking.check_in, start)
        for night in dates.iter_nights(first, booking.check_out):
            if night > end:
                break
            state = day_map[dates.date_key(night)]
            state.status = AvailabilityStatus.OCCUPIED
            state.reason = REASON_BOOKED
            state.booking_id = booking.id

    return day_map


def _validate_window(start: date, end: date) -> None:
    if start > end:
        raise ValidationError("Window start must not be after its end")
    if dates.nights(start, end) + 1 > settings.availability_max_window_days:
        raise ValidationError(
            f"Availability window is limited to {settings.availability_max_window_days} days"
        )


async def get_room_availability(
    property_id: str,
    room_id: str,
    start: date,
    end: date,
    session: AsyncSession,
) -> schemas.RoomAvailabilityResponse:
    """Return the reconciled per-date status and price for a room."""

    _validate_window(start, end)
    room = await get_room_in_property(session, property_id=property_id, room_id=room_id)

    overrides = await availability_repo.list_overrides_in_range(
        session, room_id=room.id, start_date=start, end_date=end
    )
    bookings = await bookings_repo.list_active_overlapping(
        session, room_id=room.id, start_date=start, end_date=end + dates.ONE_DAY
    )

    day_map = build_availability_map(
        start, end, default_price=room.price_per_night, overrides=overrides, bookings=bookings
    )

    return schemas.RoomAvailabilityResponse(
        room_id=room.id,
        start=start,
        end=end,
        default_price=pricing.to_money(room.price_per_night),
        currency=settings.currency,
        availability={
            key: schemas.DayAvailability(
                status=state.status,
                price=state.price,
                reason=state.reason,
                notes=state.notes,
                booking_id=state.booking_id,
            )
            for key, state in day_map.items()
        },
    )


async def quote_stay(
    property_id: str,
    room_id: str,
    payload: schemas.QuoteRequest,
    session: AsyncSession,
) -> schemas.QuoteResponse:
    """Server-side price preview over the reconciled calendar.

    Nightly prices follow the same rule as booking creation. Nights that a
    booking request would be refused on are listed in ``unavailable_dates``.
    """

    dates.validate_stay(payload.check_in, payload.check_out)
    last_night = payload.check_out - dates.ONE_DAY
    room = await get_room_in_property(session, property_id=property_id, room_id=room_id)
    overrides = await availability_repo.list_overrides_in_range(
        session, room_id=room.id, start_date=payload.check_in, end_date=last_night
    )
    bookings = await bookings_repo.list_active_overlapping(
        session, room_id=room.id, start_date=payload.check_in, end_date=payload.check_out
    )
    day_map = build_availability_map(
        payload.check_in, last_night, default_price=room.price_per_night, overrides=overrides, bookings=bookings
    )
    total = pricing.total_from_map(payload.check_in, payload.check_out, day_map)

    nightly = []
    unavailable = []
    for night in dates.iter_nights(payload.check_in, payload.check_out):
        state = day_map[dates.date_key(night)]
        nightly.append(schemas.NightlyRate(night=night, price=state.price, overridden=state.overridden))
        if _closed_to_booking(state):
            unavailable.append(night)

    return schemas.QuoteResponse(
        room_id=room.id,
        check_in=payload.check_in,
        check_out=payload.check_out,
        nights=len(nightly),
        nightly=nightly,
        total=total,
        currency=settings.currency,
        available=not unavailable,
        unavailable_dates=unavailable,
    )


def _closed_to_booking(state: DayState) -> bool:
    if state.status is AvailabilityStatus.OCCUPIED:
        return True
    # Unconfigured dates are bookable; only an owner's explicit status closes a night.
    return (
        settings.reject_blocked_overrides
        and state.reason == REASON_CONFIGURED
        and state.status in UNBOOKABLE_STATUSES
    )


async def set_overrides(
    property_id: str,
    room_id: str,
    start: date,
    end: date,
    payload: schemas.OverrideRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.OverrideResponse:
    """Set the owner's status and price for every date in ``[start, end]``.

    Dates covered by a booking keep showing ``occupied``; the override takes
    effect again once that booking is cancelled.
    """

    _validate_window(start, end)
    if payload.status is AvailabilityStatus.OCCUPIED:
        raise ValidationError("Occupied status is derived from bookings and cannot be set manually")

    days = list(dates.iter_dates(start, end))
    try:
        async with session.begin():
            await get_managed_property(session, actor, property_id)
            room = await get_room_in_property(session, property_id=property_id, room_id=room_id)
            await availability_repo.upsert_overrides(
                session,
                room_id=room.id,
                days=days,
                status=payload.status,
                price=payload.price,
                notes=payload.notes,
            )
    except SQLAlchemyError as exc:
        logger.exception("Failed to save availability overrides for room %s", room_id)
        raise PersistenceError("Could not save availability") from exc

    logger.info("Room %s overrides set for %s..%s to %s", room_id, start, end, payload.status.value)
    return schemas.OverrideResponse(
        room_id=room_id,
        start=start,
        end=end,
        status=payload.status,
        price=payload.price,
        notes=payload.notes,
        days=len(days),
    )


async def clear_override(
    property_id: str,
    room_id: str,
    day: date,
    actor: Actor,
    session: AsyncSession,
) -> int:
    """Remove the owner's override for one date, returning rows removed."""

    try:
        async with session.begin():
            await get_managed_property(session, actor, property_id)
            room = await get_room_in_property(session, property_id=property_id, room_id=room_id)
            removed = await availability_repo.delete_override(session, room_id=room.id, day=day)
    except SQLAlchemyError as exc:
        logger.exception("Failed to clear override for room %s on %s", room_id, day)
        raise PersistenceError("Could not clear availability") from exc

    logger.info("Room %s override on %s cleared", room_id, day)
    return removed
