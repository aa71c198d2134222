"""Availability override repository helpers."""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.availability import AvailabilityOverride, AvailabilityStatus


async def list_overrides_in_range(
    session: AsyncSession,
    *,
    room_id: str,
    start_date: date,
    end_date: date,
) -> list[AvailabilityOverride]:
    """Return override rows for a room between the provided dates inclusive."""

    stmt = (
        select(AvailabilityOverride)
        .where(
            AvailabilityOverride.room_id == room_id,
            AvailabilityOverride.day >= start_date,
            AvailabilityOverride.day <= end_date,
        )
        .order_by(AvailabilityOverride.day.asc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def upsert_overrides(
    session: AsyncSession,
    *,
    room_id: str,
    days: list[date],
    status: AvailabilityStatus,
    price: Decimal | None,
    notes: str | None,
) -> None:
    """Insert or replace overrides for each day in one statement."""

    if not days:
        return
    rows = [
        {"room_id": room_id, "date": day, "status": status, "price": price, "notes": notes}
        for day in days
    ]
    stmt = pg_insert(AvailabilityOverride.__table__).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["room_id", "date"],
        set_={
            "status": stmt.excluded.status,
            "price": stmt.excluded.price,
            "notes": stmt.excluded.notes,
        },
    )
    await session.execute(stmt)


async def delete_override(session: AsyncSession, *, room_id: str, day: date) -> int:
    """Delete a single override; return the number of rows removed."""

    stmt = delete(AvailabilityOverride).where(
        AvailabilityOverride.room_id == room_id,
        AvailabilityOverride.day == day,
    )
    result = await session.execute(stmt)
    return result.rowcount or 0
