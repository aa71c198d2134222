"""Booking persistence helpers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.booking import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus, OccupiedNight
from ..models.property import Property
from ..models.room import Room


@dataclass(slots=True)
class BookingScope:
    """A booking together with the ownership chain needed for access checks."""

    booking: Booking
    room_id: str
    property_id: str
    host_id: str


async def get_scope(session: AsyncSession, booking_id: str, *, for_update: bool = False) -> BookingScope | None:
    """Return the booking with its room, property and host identifiers."""

    stmt = (
        select(Booking, Room.property_id, Property.host_id)
        .join(Room, Booking.room_id == Room.id)
        .join(Property, Room.property_id == Property.id)
        .where(Booking.id == booking_id)
    )
    if for_update:
        stmt = stmt.with_for_update(of=Booking).execution_options(populate_existing=True)
    row = (await session.execute(stmt)).first()
    if row is None:
        return None
    booking, property_id, host_id = row
    return BookingScope(booking=booking, room_id=booking.room_id, property_id=property_id, host_id=host_id)


async def list_active_overlapping(
    session: AsyncSession,
    *,
    room_id: str,
    start_date: date,
    end_date: date,
    exclude_booking_id: str | None = None,
) -> list[Booking]:
    """Return non-cancelled bookings whose ``[check_in, check_out)`` meets ``[start_date, end_date)``."""

    stmt: Select[tuple[Booking]] = select(Booking).where(
        Booking.room_id == room_id,
        Booking.check_in < end_date,
        Booking.check_out > start_date,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    )
    if exclude_booking_id is not None:
        stmt = stmt.where(Booking.id != exclude_booking_id)
    stmt = stmt.order_by(Booking.check_in.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_booking(
    session: AsyncSession,
    *,
    room_id: str,
    user_id: str,
    check_in: date,
    check_out: date,
    number_of_guests: int,
    special_requests: str | None,
    total_price: Decimal,
    status: BookingStatus,
) -> Booking:
    """Persist a new booking with a fresh shareable reference."""

    booking = Booking(
        id=str(uuid4()),
        reference=uuid4().hex[:12].upper(),
        room_id=room_id,
        user_id=user_id,
        check_in=check_in,
        check_out=check_out,
        number_of_guests=number_of_guests,
        special_requests=special_requests,
        total_price=total_price,
        status=status,
    )
    session.add(booking)
    await session.flush()
    return booking


async def claim_nights(session: AsyncSession, *, booking: Booking, nights: list[date]) -> None:
    """Record each night as occupied by the booking.

    The (room_id, night) primary key rejects a night already claimed by another booking.
    """

    session.add_all(OccupiedNight(room_id=booking.room_id, night=night, booking_id=booking.id) for night in nights)
    await session.flush()


async def release_nights(session: AsyncSession, *, booking_id: str) -> None:
    """Free every night held by the booking."""

    await session.execute(delete(OccupiedNight).where(OccupiedNight.booking_id == booking_id))


async def list_for_guest(session: AsyncSession, *, user_id: str) -> list[Booking]:
    """Return a guest's bookings, newest first."""

    stmt = select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_for_property(session: AsyncSession, *, property_id: str) -> list[Booking]:
    """Return all bookings for rooms of the property, latest check-in first."""

    stmt = (
        select(Booking)
        .join(Room, Booking.room_id == Room.id)
        .where(Room.property_id == property_id)
        .order_by(Booking.check_in.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_active_for_room(session: AsyncSession, *, room_id: str) -> int:
    """Return how many pending or confirmed bookings reference the room."""

    stmt = select(func.count(Booking.id)).where(
        Booking.room_id == room_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def count_active_for_property(session: AsyncSession, *, property_id: str) -> int:
    """Return how many pending or confirmed bookings reference any room of the property."""

    stmt = (
        select(func.count(Booking.id))
        .join(Room, Room.id == Booking.room_id)
        .where(Room.property_id == property_id, Booking.status.in_(ACTIVE_BOOKING_STATUSES))
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def update_booking_dates(
    session: AsyncSession,
    *,
    booking: Booking,
    check_in: date,
    check_out: date,
    total_price: Decimal,
    nights: list[date],
) -> None:
    """Move the booking to new dates, swapping its occupied nights.

    Must run inside the caller's transaction so the old nights are never freed
    without the new ones being held.
    """

    await release_nights(session, booking_id=booking.id)
    booking.check_in = check_in
    booking.check_out = check_out
    booking.total_price = total_price
    session.add(booking)
    await claim_nights(session, booking=booking, nights=nights)


async def set_booking_status(session: AsyncSession, *, booking: Booking, status: BookingStatus) -> None:
    """Change the status; a cancelled booking gives its nights back."""

    if status is BookingStatus.CANCELLED:
        await release_nights(session, booking_id=booking.id)
    booking.status = status
    session.add(booking)
