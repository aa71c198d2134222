"""Aggregate queries backing the owner analytics view."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import Booking, BookingStatus, OccupiedNight
from ..models.room import Room


@dataclass(slots=True)
class BookingTotals:
    total: int
    confirmed: int
    cancelled: int
    revenue: Decimal


async def booking_totals(
    session: AsyncSession,
    *,
    property_id: str,
    start_date: date,
    end_date: date,
) -> BookingTotals:
    """Count bookings checking in within ``[start_date, end_date)`` and sum confirmed revenue."""

    confirmed = Booking.status == BookingStatus.CONFIRMED
    stmt = (
        select(
            func.count(Booking.id),
            func.count(case((confirmed, Booking.id))),
            func.count(case((Booking.status == BookingStatus.CANCELLED, Booking.id))),
            func.coalesce(func.sum(case((confirmed, Booking.total_price))), 0),
        )
        .join(Room, Booking.room_id == Room.id)
        .where(
            Room.property_id == property_id,
            Booking.check_in >= start_date,
            Booking.check_in < end_date,
        )
    )
    total, confirmed_count, cancelled_count, revenue = (await session.execute(stmt)).one()
    return BookingTotals(
        total=total,
        confirmed=confirmed_count,
        cancelled=cancelled_count,
        revenue=Decimal(str(revenue)),
    )


async def occupied_nights(
    session: AsyncSession,
    *,
    property_id: str,
    start_date: date,
    end_date: date,
) -> int:
    """Count nights in ``[start_date, end_date)`` held by active bookings across the property."""

    stmt = (
        select(func.count())
        .select_from(OccupiedNight)
        .join(Room, OccupiedNight.room_id == Room.id)
        .where(
            Room.property_id == property_id,
            OccupiedNight.night >= start_date,
            OccupiedNight.night < end_date,
        )
    )
    return (await session.execute(stmt)).scalar_one()


async def room_count(session: AsyncSession, *, property_id: str) -> int:
    stmt = select(func.count(Room.id)).where(Room.property_id == property_id)
    return (await session.execute(stmt)).scalar_one()
