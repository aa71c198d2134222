"""Property and room persistence helpers."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.property import Property, PropertyStatus
from ..models.room import Room


async def get_property(session: AsyncSession, property_id: str) -> Property | None:
    """Return a property by identifier."""

    return await session.get(Property, property_id)


async def list_host_properties(session: AsyncSession, *, host_id: str) -> list[Property]:
    """Return properties owned by the host, newest first."""

    stmt = select(Property).where(Property.host_id == host_id).order_by(Property.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def search_properties(
    session: AsyncSession,
    *,
    city: str | None = None,
    text: str | None = None,
    status: PropertyStatus | None = PropertyStatus.ACTIVE,
    limit: int = 50,
    offset: int = 0,
) -> list[Property]:
    """Return properties matching the filters, newest first. ``status=None`` means any status."""

    stmt = select(Property)
    if status is not None:
        stmt = stmt.where(Property.status == status)
    if city:
        stmt = stmt.where(func.lower(Property.city) == city.lower())
    if text:
        pattern = f"%{text}%"
        stmt = stmt.where(or_(Property.name.ilike(pattern), Property.address.ilike(pattern)))
    stmt = stmt.order_by(Property.created_at.desc()).limit(limit).offset(offset)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_property(
    session: AsyncSession,
    *,
    host_id: str,
    name: str,
    address: str,
    city: str,
    country: str | None,
    policies: dict,
) -> Property:
    """Persist a new property."""

    prop = Property(
        id=str(uuid4()),
        host_id=host_id,
        name=name,
        address=address,
        city=city,
        country=country,
        policies_json=policies,
    )
    session.add(prop)
    await session.flush()
    return prop


async def get_room_in_property(session: AsyncSession, *, property_id: str, room_id: str) -> Room | None:
    """Return the room only if it belongs to the given property."""

    stmt: Select[tuple[Room]] = select(Room).where(Room.id == room_id, Room.property_id == property_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def lock_room(session: AsyncSession, *, room_id: str) -> Room | None:
    """Load the room with a row lock held until the surrounding transaction ends."""

    stmt = select(Room).where(Room.id == room_id).with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_rooms(session: AsyncSession, *, property_id: str) -> list[Room]:
    """Return rooms of a property ordered by name."""

    stmt = select(Room).where(Room.property_id == property_id).order_by(Room.name.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_room(session: AsyncSession, *, property_id: str, fields: dict) -> Room:
    """Persist a new room under the property."""

    room = Room(id=str(uuid4()), property_id=property_id, **fields)
    session.add(room)
    await session.flush()
    return room


async def delete_room(session: AsyncSession, room: Room) -> None:
    """Delete the room row; the database cascades its calendar and claimed nights."""

    await session.execute(delete(Room).where(Room.id == room.id))


async def delete_property(session: AsyncSession, prop: Property) -> None:
    """Delete the property row; the database cascades its rooms."""

    await session.execute(delete(Property).where(Property.id == prop.id))
