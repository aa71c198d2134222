"""Guest booking endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor, get_actor
from ..db.session import get_session
from ..schemas import bookings as bookings_schema
from ..services import bookings as bookings_service

router = APIRouter()


@router.post("", response_model=bookings_schema.BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: bookings_schema.CreateBookingRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingResponse:
    """Book a room; 409 when the dates are taken."""

    return await bookings_service.create_booking(payload, actor, session)


@router.get("/guest", response_model=bookings_schema.BookingListResponse)
async def list_my_bookings(
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingListResponse:
    return await bookings_service.list_guest_bookings(actor, session)


@router.get("/{booking_id}", response_model=bookings_schema.BookingResponse)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingResponse:
    return await bookings_service.get_booking(booking_id, actor, session)


@router.put("/{booking_id}", response_model=bookings_schema.BookingResponse)
async def update_booking(
    booking_id: str,
    payload: bookings_schema.UpdateBookingRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingResponse:
    """Change dates or guest details of a booking."""

    return await bookings_service.update_booking(booking_id, payload, actor, session)


@router.post("/{booking_id}/cancel", response_model=bookings_schema.BookingResponse)
async def cancel_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingResponse:
    return await bookings_service.cancel_booking(booking_id, actor, session)
