"""Property, room, availability and quote endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor, get_actor
from ..db.session import get_session
from ..schemas import availability as availability_schema
from ..schemas import properties as properties_schema
from ..services import availability as availability_service
from ..services import dates
from ..services import properties as properties_service

router = APIRouter()


@router.post("", response_model=properties_schema.PropertyOut, status_code=status.HTTP_201_CREATED)
async def create_property(
    payload: properties_schema.CreatePropertyRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> properties_schema.PropertyOut:
    """Create a property owned by the caller."""

    return await properties_service.create_property(payload, actor, session)


@router.get("", response_model=properties_schema.PropertyListResponse)
async def search_properties(
    city: str | None = Query(default=None),
    q: str | None = Query(default=None, max_length=200),
    include_inactive: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    session: AsyncSession = Depends(get_session),
) -> properties_schema.PropertyListResponse:
    """List bookable properties, optionally filtered by city or a name/address match."""

    return await properties_service.search_properties(
        session,
        city=city,
        text=q,
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )


@router.get("/{property_id}", response_model=properties_schema.PropertyOut)
async def get_property(
    property_id: str,
    session: AsyncSession = Depends(get_session),
) -> properties_schema.PropertyOut:
    return await properties_service.get_property(property_id, session)


@router.put("/{property_id}", response_model=properties_schema.PropertyOut)
async def update_property(
    property_id: str,
    payload: properties_schema.UpdatePropertyRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> properties_schema.PropertyOut:
    return await properties_service.update_property(property_id, payload, actor, session)


@router.patch("/{property_id}/status", response_model=properties_schema.PropertyOut)
async def set_property_status(
    property_id: str,
    payload: properties_schema.PropertyStatusRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> properties_schema.PropertyOut:
    return await properties_service.set_property_status(property_id, payload, actor, session)


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_property(
    property_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await properties_service.delete_property(property_id, actor, session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{property_id}/rooms",
    response_model=properties_schema.RoomOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_room(
    property_id: str,
    payload: properties_schema.RoomFields,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> properties_schema.RoomOut:
    return await properties_service.create_room(property_id, payload, actor, session)


@router.get("/{property_id}/rooms", response_model=properties_schema.RoomListResponse)
async def list_rooms(
    property_id: str,
    session: AsyncSession = Depends(get_session),
) -> properties_schema.RoomListResponse:
    return await properties_service.list_rooms(property_id, session)


@router.get("/{property_id}/rooms/{room_id}", response_model=properties_schema.RoomOut)
async def get_room(
    property_id: str,
    room_id: str,
    session: AsyncSession = Depends(get_session),
) -> properties_schema.RoomOut:
    return await properties_service.get_room(property_id, room_id, session)


@router.patch("/{property_id}/rooms/{room_id}", response_model=properties_schema.RoomOut)
async def update_room(
    property_id: str,
    room_id: str,
    payload: properties_schema.UpdateRoomRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> properties_schema.RoomOut:
    return await properties_service.update_room(property_id, room_id, payload, actor, session)


@router.delete("/{property_id}/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    property_id: str,
    room_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await properties_service.delete_room(property_id, room_id, actor, session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{property_id}/rooms/{room_id}/availability",
    response_model=availability_schema.RoomAvailabilityResponse,
)
async def get_availability(
    property_id: str,
    room_id: str,
    start: str = Query(..., description="First date of the window, YYYY-MM-DD"),
    end: str = Query(..., description="Last date of the window, YYYY-MM-DD"),
    session: AsyncSession = Depends(get_session),
) -> availability_schema.RoomAvailabilityResponse:
    """Return the reconciled calendar for a room."""

    return await availability_service.get_room_availability(
        property_id, room_id, dates.parse_iso_date(start), dates.parse_iso_date(end), session
    )


@router.put(
    "/{property_id}/rooms/{room_id}/availability/{day}",
    response_model=availability_schema.OverrideResponse,
)
async def set_day_override(
    property_id: str,
    room_id: str,
    day: str,
    payload: availability_schema.OverrideRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> availability_schema.OverrideResponse:
    """Set status and price for a single date."""

    parsed = dates.parse_iso_date(day)
    return await availability_service.set_overrides(
        property_id, room_id, parsed, parsed, payload, actor, session
    )


@router.post(
    "/{property_id}/rooms/{room_id}/availability/bulk",
    response_model=availability_schema.OverrideResponse,
)
async def set_range_override(
    property_id: str,
    room_id: str,
    payload: availability_schema.OverrideRangeRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> availability_schema.OverrideResponse:
    """Set status and price for every date in an inclusive range."""

    return await availability_service.set_overrides(
        property_id, room_id, payload.start, payload.end, payload, actor, session
    )


@router.delete(
    "/{property_id}/rooms/{room_id}/availability/{day}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def clear_day_override(
    property_id: str,
    room_id: str,
    day: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await availability_service.clear_override(
        property_id, room_id, dates.parse_iso_date(day), actor, session
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{property_id}/rooms/{room_id}/quote",
    response_model=availability_schema.QuoteResponse,
)
async def quote(
    property_id: str,
    room_id: str,
    payload: availability_schema.QuoteRequest,
    session: AsyncSession = Depends(get_session),
) -> availability_schema.QuoteResponse:
    """Preview the total for a stay using the booking price rule."""

    return await availability_service.quote_stay(property_id, room_id, payload, session)
