"""Guest and host messaging around a booking."""
from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor
from ..core.errors import AuthorizationError, NotFoundError
from ..repositories import bookings as bookings_repo
from ..repositories import messages as messages_repo
from ..schemas import owner as schemas

logger = logging.getLogger(__name__)


async def _participants(session: AsyncSession, booking_id: str, actor: Actor) -> tuple[str, str]:
    """Return (guest_id, host_id) after checking the actor takes part in the booking."""

    scope = await bookings_repo.get_scope(session, booking_id)
    if scope is None:
        raise NotFoundError("Booking not found")
    guest_id = scope.booking.user_id
    if not (actor.is_admin or actor.user_id in (guest_id, scope.host_id)):
        raise AuthorizationError("Not a participant in this booking")
    return guest_id, scope.host_id


async def list_messages(booking_id: str, actor: Actor, session: AsyncSession) -> schemas.MessageListResponse:
    await _participants(session, booking_id, actor)
    messages = await messages_repo.list_for_booking(session, booking_id=booking_id)
    return schemas.MessageListResponse(items=[schemas.MessageOut.model_validate(item) for item in messages])


async def send_message(
    booking_id: str,
    payload: schemas.SendMessageRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.MessageOut:
    """Send a message to the other side of the booking."""

    async with session.begin():
        guest_id, host_id = await _participants(session, booking_id, actor)
        receiver_id = host_id if actor.user_id == guest_id else guest_id
        message = await messages_repo.create_message(
            session,
            booking_id=booking_id,
            sender_id=actor.user_id,
            receiver_id=receiver_id,
            body=payload.body,
        )

    logger.info("Message %s sent on booking %s", message.id, booking_id)
    return schemas.MessageOut.model_validate(message)


async def mark_read(booking_id: str, actor: Actor, session: AsyncSession) -> int:
    async with session.begin():
        await _participants(session, booking_id, actor)
        return await messages_repo.mark_read(session, booking_id=booking_id, receiver_id=actor.user_id)


async def unread_count(actor: Actor, session: AsyncSession) -> schemas.UnreadCountResponse:
    count = await messages_repo.count_unread(session, receiver_id=actor.user_id)
    return schemas.UnreadCountResponse(unread_count=count)
