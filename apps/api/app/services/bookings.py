"""Booking creation, modification and cancellation.

Every mutation runs inside one transaction that also writes the booking's
occupied nights, so a failure part-way leaves neither the booking nor the
room calendar half-updated.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor
from ..core.config import settings
from ..core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ServiceError,
    ValidationError,
    violated_constraint,
)
from ..models.availability import AvailabilityOverride
from ..models.booking import Booking, BookingStatus
from ..models.property import PropertyStatus
from ..repositories import availability as availability_repo
from ..repositories import bookings as bookings_repo
from ..repositories import properties as properties_repo
from ..schemas import availability as availability_schema
from ..schemas import bookings as schemas
from . import dates, pricing
from .availability import UNBOOKABLE_STATUSES
from .properties import get_managed_property
from .room_locks import room_locks

logger = logging.getLogger(__name__)

NIGHT_CLAIM_CONSTRAINT = "pk_occupied_nights"
GUEST_CONSTRAINT = "fk_bookings_user_id_users"

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}


async def create_booking(
    payload: schemas.CreateBookingRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.BookingResponse:
    """Book a room for ``[check_in, check_out)`` if no active booking overlaps.

    Requests for the same room are serialised by the in-process room lock and by
    a row lock on the room, so the overlap check and the insert act as one step.
    """

    dates.validate_stay(payload.check_in, payload.check_out)

    async with room_locks.hold(payload.room_id):
        try:
            async with session.begin():
                room = await properties_repo.lock_room(session, room_id=payload.room_id)
                if room is None:
                    raise NotFoundError("Room not found")
                await _ensure_property_open(session, room.property_id)
                _validate_guests(payload.number_of_guests, room.max_occupancy)

                await _ensure_no_overlap(session, room.id, payload.check_in, payload.check_out)
                overrides = await _overrides_for_stay(session, room.id, payload.check_in, payload.check_out)
                _ensure_bookable(overrides.values(), payload.check_in, payload.check_out)

                quote = pricing.quote_stay(
                    payload.check_in,
                    payload.check_out,
                    default_price=room.price_per_night,
                    overrides=overrides,
                )
                booking = await bookings_repo.create_booking(
                    session,
                    room_id=room.id,
                    user_id=actor.user_id,
                    check_in=payload.check_in,
                    check_out=payload.check_out,
                    number_of_guests=payload.number_of_guests,
                    special_requests=payload.special_requests,
                    total_price=quote.total,
                    status=BookingStatus(settings.booking_initial_status),
                )
                await bookings_repo.claim_nights(
                    session, booking=booking, nights=[rate.night for rate in quote.nightly]
                )
        except IntegrityError as exc:
            raise _integrity_error(exc, payload.room_id) from exc
        except SQLAlchemyError as exc:
            logger.exception("Failed to persist booking for room %s", payload.room_id)
            raise PersistenceError("Could not save booking") from exc

    logger.info(
        "Booking %s (%s) created for room %s %s..%s total %s",
        booking.id,
        booking.reference,
        booking.room_id,
        booking.check_in,
        booking.check_out,
        booking.total_price,
    )
    return _booking_response(booking, quote)


async def update_booking(
    booking_id: str,
    payload: schemas.UpdateBookingRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.BookingResponse:
    """Change dates, guest count or special requests of an active booking.

    When the dates move, the old nights are released and the new ones claimed in
    the same transaction and the total is recomputed. Otherwise the stored
    total is kept as it was at booking time.
    """

    try:
        async with session.begin():
            scope = await _authorized_scope(session, booking_id, actor)
    except SQLAlchemyError as exc:
        logger.exception("Failed to load booking %s", booking_id)
        raise PersistenceError("Could not load booking") from exc
    room_id = scope.room_id

    async with room_locks.hold(room_id):
        try:
            async with session.begin():
                scope = await _authorized_scope(session, booking_id, actor, for_update=True)
                booking = scope.booking
                if booking.status is BookingStatus.CANCELLED:
                    raise ValidationError("Cannot update a cancelled booking")

                check_in = payload.check_in or booking.check_in
                check_out = payload.check_out or booking.check_out
                dates.validate_stay(check_in, check_out)

                room = await properties_repo.lock_room(session, room_id=room_id)
                if room is None:
                    raise NotFoundError("Room not found")
                if payload.number_of_guests is not None:
                    _validate_guests(payload.number_of_guests, room.max_occupancy)

                quote: pricing.PriceQuote | None = None
                if (check_in, check_out) != (booking.check_in, booking.check_out):
                    await _ensure_no_overlap(session, room_id, check_in, check_out, exclude_booking_id=booking.id)
                    overrides = await _overrides_for_stay(session, room_id, check_in, check_out)
                    added_nights = {
                        night: override
                        for night, override in overrides.items()
                        if not booking.check_in <= night < booking.check_out
                    }
                    _ensure_bookable(added_nights.values(), check_in, check_out)

                    quote = pricing.quote_stay(
                        check_in, check_out, default_price=room.price_per_night, overrides=overrides
                    )
                    await bookings_repo.update_booking_dates(
                        session,
                        booking=booking,
                        check_in=check_in,
                        check_out=check_out,
                        total_price=quote.total,
                        nights=[rate.night for rate in quote.nightly],
                    )

                if payload.number_of_guests is not None:
                    booking.number_of_guests = payload.number_of_guests
                if payload.special_requests is not None:
                    booking.special_requests = payload.special_requests
                session.add(booking)
        except IntegrityError as exc:
            raise _integrity_error(exc, room_id) from exc
        except SQLAlchemyError as exc:
            logger.exception("Failed to update booking %s", booking_id)
            raise PersistenceError("Could not update booking") from exc

    logger.info("Booking %s updated to %s..%s", booking.id, booking.check_in, booking.check_out)
    return _booking_response(booking, quote)


async def cancel_booking(booking_id: str, actor: Actor, session: AsyncSession) -> schemas.BookingResponse:
    """Mark the booking cancelled and free its nights; the row is kept."""

    try:
        async with session.begin():
            scope = await _authorized_scope(session, booking_id, actor, for_update=True)
            booking = scope.booking
            if booking.status is BookingStatus.CANCELLED:
                raise ValidationError("Booking is already cancelled")
            await bookings_repo.set_booking_status(
                session, booking=booking, status=BookingStatus.CANCELLED
            )
    except SQLAlchemyError as exc:
        logger.exception("Failed to cancel booking %s", booking_id)
        raise PersistenceError("Could not cancel booking") from exc

    logger.info("Booking %s cancelled by %s", booking_id, actor.user_id)
    return _booking_response(booking, None)


async def set_booking_status(
    booking_id: str,
    payload: schemas.BookingStatusRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.BookingResponse:
    """Host or admin status change, e.g. confirming a pending booking."""

    try:
        async with session.begin():
            scope = await bookings_repo.get_scope(session, booking_id, for_update=True)
            if scope is None:
                raise NotFoundError("Booking not found")
            if not (actor.is_admin or scope.host_id == actor.user_id):
                raise AuthorizationError("Not authorized to update this booking")
            booking = scope.booking
            if payload.status is not booking.status:
                if payload.status not in ALLOWED_TRANSITIONS[booking.status]:
                    raise ValidationError(
                        f"Cannot change booking from {booking.status.value} to {payload.status.value}"
                    )
                await bookings_repo.set_booking_status(session, booking=booking, status=payload.status)
    except SQLAlchemyError as exc:
        logger.exception("Failed to set status of booking %s", booking_id)
        raise PersistenceError("Could not update booking status") from exc

    logger.info("Booking %s status set to %s by %s", booking_id, booking.status.value, actor.user_id)
    return _booking_response(booking, None)


async def get_booking(booking_id: str, actor: Actor, session: AsyncSession) -> schemas.BookingResponse:
    scope = await _authorized_scope(session, booking_id, actor)
    return _booking_response(scope.booking, None)


async def list_guest_bookings(actor: Actor, session: AsyncSession) -> schemas.BookingListResponse:
    bookings = await bookings_repo.list_for_guest(session, user_id=actor.user_id)
    return schemas.BookingListResponse(items=[schemas.BookingOut.model_validate(item) for item in bookings])


async def list_property_bookings(
    property_id: str,
    actor: Actor,
    session: AsyncSession,
) -> schemas.BookingListResponse:
    await get_managed_property(session, actor, property_id)
    bookings = await bookings_repo.list_for_property(session, property_id=property_id)
    return schemas.BookingListResponse(items=[schemas.BookingOut.model_validate(item) for item in bookings])


async def _authorized_scope(
    session: AsyncSession,
    booking_id: str,
    actor: Actor,
    *,
    for_update: bool = False,
) -> bookings_repo.BookingScope:
    """Load a booking the actor may act on: its guest, the property host, or an admin."""

    scope = await bookings_repo.get_scope(session, booking_id, for_update=for_update)
    if scope is None:
        raise NotFoundError("Booking not found")
    if not (actor.is_admin or actor.user_id in (scope.booking.user_id, scope.host_id)):
        raise AuthorizationError("Not authorized to access this booking")
    return scope


async def _ensure_no_overlap(
    session: AsyncSession,
    room_id: str,
    check_in: date,
    check_out: date,
    *,
    exclude_booking_id: str | None = None,
) -> None:
    clashes = await bookings_repo.list_active_overlapping(
        session,
        room_id=room_id,
        start_date=check_in,
        end_date=check_out,
        exclude_booking_id=exclude_booking_id,
    )
    if clashes:
        logger.warning(
            "Room %s %s..%s overlaps booking(s) %s",
            room_id,
            check_in,
            check_out,
            ", ".join(clash.id for clash in clashes),
        )
        raise ConflictError("Selected dates overlap with another booking")


async def _overrides_for_stay(
    session: AsyncSession,
    room_id: str,
    check_in: date,
    check_out: date,
) -> dict[date, AvailabilityOverride]:
    rows = await availability_repo.list_overrides_in_range(
        session, room_id=room_id, start_date=check_in, end_date=check_out - dates.ONE_DAY
    )
    return {row.day: row for row in rows}


def _ensure_bookable(overrides: Iterable[AvailabilityOverride], check_in: date, check_out: date) -> None:
    if not settings.reject_blocked_overrides:
        return
    closed = sorted(
        override.day
        for override in overrides
        if override.status in UNBOOKABLE_STATUSES and check_in <= override.day < check_out
    )
    if closed:
        raise ConflictError(
            "Room is not available on " + ", ".join(dates.date_key(day) for day in closed)
        )


def _validate_guests(number_of_guests: int, max_occupancy: int) -> None:
    if number_of_guests < 1:
        raise ValidationError("At least one guest is required")
    if number_of_guests > max_occupancy:
        raise ValidationError(f"Room sleeps at most {max_occupancy} guests")


def _booking_response(booking: Booking, quote: pricing.PriceQuote | None) -> schemas.BookingResponse:
    nightly = []
    if quote is not None:
        nightly = [
            availability_schema.NightlyRate(night=rate.night, price=rate.price, overridden=rate.overridden)
            for rate in quote.nightly
        ]
    return schemas.BookingResponse(
        booking=schemas.BookingOut.model_validate(booking),
        nights=dates.nights(booking.check_in, booking.check_out),
        nightly=nightly,
    )


async def _ensure_property_open(session: AsyncSession, property_id: str) -> None:
    prop = await properties_repo.get_property(session, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    if prop.status is not PropertyStatus.ACTIVE:
        raise ValidationError("Property is not accepting bookings")


def _integrity_error(exc: IntegrityError, room_id: str) -> ServiceError:
    """Translate a constraint violation raised while writing a booking.

    Only a collision on an already claimed night means the dates are taken.
    """

    constraint = violated_constraint(exc)
    if constraint == NIGHT_CLAIM_CONSTRAINT:
        logger.warning("Night already claimed for room %s: %s", room_id, exc.orig)
        return ConflictError("Selected dates are no longer available")
    if constraint == GUEST_CONSTRAINT:
        return NotFoundError("Guest account not found")
    logger.error("Booking write for room %s violated %s: %s", room_id, constraint, exc.orig)
    return PersistenceError("Could not save booking")
