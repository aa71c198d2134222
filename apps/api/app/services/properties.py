"""Property and room management for hosts."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor
from ..core.errors import AuthorizationError, ConflictError, NotFoundError, PersistenceError, violated_constraint
from ..models.property import Property, PropertyStatus
from ..models.room import Room
from ..models.user import UserRole
from ..repositories import bookings as bookings_repo
from ..repositories import properties as properties_repo
from ..schemas import properties as schemas

logger = logging.getLogger(__name__)

HOST_CONSTRAINT = "fk_properties_host_id_users"


def ensure_manages(actor: Actor, prop: Property) -> None:
    """Raise unless the actor hosts the property or is an admin."""

    if actor.is_admin or prop.host_id == actor.user_id:
        return
    raise AuthorizationError("Not authorized to manage this property")


async def get_managed_property(session: AsyncSession, actor: Actor, property_id: str) -> Property:
    """Load a property the actor is allowed to manage."""

    prop = await properties_repo.get_property(session, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    ensure_manages(actor, prop)
    return prop


async def get_room_in_property(session: AsyncSession, *, property_id: str, room_id: str) -> Room:
    """Resolve a room inside its property scope or raise NotFoundError."""

    room = await properties_repo.get_room_in_property(session, property_id=property_id, room_id=room_id)
    if room is None:
        raise NotFoundError("Room not found")
    return room


async def create_property(
    payload: schemas.CreatePropertyRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.PropertyOut:
    """Register a property owned by the calling host."""

    if actor.role not in (UserRole.HOST, UserRole.ADMIN):
        raise AuthorizationError("Only hosts can list properties")

    try:
        async with session.begin():
            prop = await properties_repo.create_property(
                session,
                host_id=actor.user_id,
                name=payload.name,
                address=payload.address,
                city=payload.city,
                country=payload.country,
                policies=payload.policies.model_dump(mode="json"),
            )
    except IntegrityError as exc:
        if violated_constraint(exc) == HOST_CONSTRAINT:
            raise NotFoundError("Host account not found") from exc
        logger.error("Property insert for host %s rejected: %s", actor.user_id, exc.orig)
        raise PersistenceError("Could not save property") from exc
    except SQLAlchemyError as exc:
        logger.exception("Failed to create property for host %s", actor.user_id)
        raise PersistenceError("Could not save property") from exc

    logger.info("Property %s created by host %s", prop.id, actor.user_id)
    return schemas.PropertyOut.model_validate(prop)


async def get_property(property_id: str, session: AsyncSession) -> schemas.PropertyOut:
    prop = await properties_repo.get_property(session, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    return schemas.PropertyOut.model_validate(prop)


async def list_owner_properties(actor: Actor, session: AsyncSession) -> schemas.PropertyListResponse:
    props = await properties_repo.list_host_properties(session, host_id=actor.user_id)
    return schemas.PropertyListResponse(items=[schemas.PropertyOut.model_validate(prop) for prop in props])


async def search_properties(
    session: AsyncSession,
    *,
    city: str | None = None,
    text: str | None = None,
    include_inactive: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> schemas.PropertyListResponse:
    """Public listing. Inactive properties are hidden unless asked for."""

    props = await properties_repo.search_properties(
        session,
        city=city,
        text=text,
        status=None if include_inactive else PropertyStatus.ACTIVE,
        limit=limit,
        offset=offset,
    )
    return schemas.PropertyListResponse(items=[schemas.PropertyOut.model_validate(prop) for prop in props])


async def update_property(
    property_id: str,
    payload: schemas.UpdatePropertyRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.PropertyOut:
    """Replace the editable fields of a property the actor manages."""

    async with session.begin():
        prop = await get_managed_property(session, actor, property_id)
        prop.name = payload.name
        prop.address = payload.address
        prop.city = payload.city
        prop.country = payload.country
        prop.policies_json = payload.policies.model_dump(mode="json")
        session.add(prop)

    logger.info("Property %s updated by %s", property_id, actor.user_id)
    return schemas.PropertyOut.model_validate(prop)


async def set_property_status(
    property_id: str,
    payload: schemas.PropertyStatusRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.PropertyOut:
    """Open or close a property to new bookings. Existing bookings are kept."""

    async with session.begin():
        prop = await get_managed_property(session, actor, property_id)
        prop.status = payload.status
        session.add(prop)

    logger.info("Property %s set to %s by %s", property_id, payload.status.value, actor.user_id)
    return schemas.PropertyOut.model_validate(prop)


async def delete_property(property_id: str, actor: Actor, session: AsyncSession) -> None:
    """Delete a property with none of its rooms holding pending or confirmed bookings."""

    async with session.begin():
        prop = await get_managed_property(session, actor, property_id)
        if await bookings_repo.count_active_for_property(session, property_id=property_id) > 0:
            raise ConflictError(
                "Cannot delete property because it has active bookings. Cancel or complete them first."
            )
        try:
            await properties_repo.delete_property(session, prop)
        except IntegrityError as exc:
            raise ConflictError("Property has booking history and cannot be deleted") from exc

    logger.info("Property %s deleted by %s", property_id, actor.user_id)


async def create_room(
    property_id: str,
    payload: schemas.RoomFields,
    actor: Actor,
    session: AsyncSession,
) -> schemas.RoomOut:
    """Add a room to a property the actor manages."""

    async with session.begin():
        await get_managed_property(session, actor, property_id)
        room = await properties_repo.create_room(
            session,
            property_id=property_id,
            fields=payload.model_dump(mode="python", exclude={"beds"}) | {
                "beds": [bed.model_dump() for bed in payload.beds]
            },
        )

    logger.info("Room %s created in property %s", room.id, property_id)
    return schemas.RoomOut.model_validate(room)


async def list_rooms(property_id: str, session: AsyncSession) -> schemas.RoomListResponse:
    prop = await properties_repo.get_property(session, property_id)
    if prop is None:
        raise NotFoundError("Property not found")
    rooms = await properties_repo.list_rooms(session, property_id=property_id)
    return schemas.RoomListResponse(items=[schemas.RoomOut.model_validate(room) for room in rooms])


async def get_room(property_id: str, room_id: str, session: AsyncSession) -> schemas.RoomOut:
    room = await get_room_in_property(session, property_id=property_id, room_id=room_id)
    return schemas.RoomOut.model_validate(room)


async def update_room(
    property_id: str,
    room_id: str,
    payload: schemas.UpdateRoomRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.RoomOut:
    """Apply a partial update to a room.

    Changing the default price never alters totals of existing bookings.
    """

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if "beds" in changes:
        changes["beds"] = [bed.model_dump() for bed in payload.beds or []]

    async with session.begin():
        await get_managed_property(session, actor, property_id)
        room = await get_room_in_property(session, property_id=property_id, room_id=room_id)
        for key, value in changes.items():
            setattr(room, key, value)
        session.add(room)

    return schemas.RoomOut.model_validate(room)


async def delete_room(property_id: str, room_id: str, actor: Actor, session: AsyncSession) -> None:
    """Delete a room that has no pending or confirmed bookings."""

    async with session.begin():
        await get_managed_property(session, actor, property_id)
        room = await get_room_in_property(session, property_id=property_id, room_id=room_id)
        if await bookings_repo.count_active_for_room(session, room_id=room_id) > 0:
            raise ConflictError(
                "Cannot delete room because it has active bookings. Cancel or complete them first."
            )
        try:
            await properties_repo.delete_room(session, room)
        except IntegrityError as exc:
            raise ConflictError("Room has booking history and cannot be deleted") from exc

    logger.info("Room %s deleted from property %s", room_id, property_id)
