"""Booking message persistence helpers."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.message import Message


async def list_for_booking(session: AsyncSession, *, booking_id: str) -> list[Message]:
    """Return a booking's message thread, oldest first."""

    stmt = select(Message).where(Message.booking_id == booking_id).order_by(Message.created_at.asc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_message(
    session: AsyncSession,
    *,
    booking_id: str,
    sender_id: str,
    receiver_id: str,
    body: str,
) -> Message:
    """Persist a new message."""

    message = Message(
        id=str(uuid4()),
        booking_id=booking_id,
        sender_id=sender_id,
        receiver_id=receiver_id,
        body=body,
        is_read=False,
    )
    session.add(message)
    await session.flush()
    return message


async def mark_read(session: AsyncSession, *, booking_id: str, receiver_id: str) -> int:
    """Mark unread messages addressed to the receiver as read; return rows touched."""

    stmt = (
        update(Message)
        .where(
            Message.booking_id == booking_id,
            Message.receiver_id == receiver_id,
            Message.is_read.is_(False),
        )
        .values(is_read=True)
    )
    result = await session.execute(stmt)
    return result.rowcount or 0


async def count_unread(session: AsyncSession, *, receiver_id: str) -> int:
    stmt = select(func.count(Message.id)).where(
        Message.receiver_id == receiver_id,
        Message.is_read.is_(False),
    )
    result = await session.execute(stmt)
    return result.scalar_one()
