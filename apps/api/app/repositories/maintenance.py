"""Maintenance task persistence helpers."""
from __future__ import annotations

from datetime import date
from uuid import uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.maintenance import MaintenanceTask, TaskPriority


async def list_for_property(session: AsyncSession, *, property_id: str) -> list[MaintenanceTask]:
    """Return a property's tasks, newest first."""

    stmt = (
        select(MaintenanceTask)
        .where(MaintenanceTask.property_id == property_id)
        .order_by(MaintenanceTask.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_by_id(session: AsyncSession, task_id: str) -> MaintenanceTask | None:
    return await session.get(MaintenanceTask, task_id)


async def create_task(
    session: AsyncSession,
    *,
    property_id: str,
    room_id: str | None,
    title: str,
    description: str | None,
    priority: TaskPriority,
    assigned_to: str | None,
    due_date: date | None,
) -> MaintenanceTask:
    """Persist a new maintenance task."""

    task = MaintenanceTask(
        id=str(uuid4()),
        property_id=property_id,
        room_id=room_id,
        title=title,
        description=description,
        priority=priority,
        assigned_to=assigned_to,
        due_date=due_date,
    )
    session.add(task)
    await session.flush()
    return task


async def delete_task(session: AsyncSession, *, task_id: str) -> None:
    await session.execute(delete(MaintenanceTask).where(MaintenanceTask.id == task_id))
