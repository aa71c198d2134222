"""Maintenance tasks for hosts."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor
from ..core.errors import NotFoundError
from ..models.maintenance import TaskStatus
from ..repositories import maintenance as maintenance_repo
from ..schemas import owner as schemas
from .properties import get_managed_property, get_room_in_property

logger = logging.getLogger(__name__)


async def list_tasks(property_id: str, actor: Actor, session: AsyncSession) -> schemas.TaskListResponse:
    await get_managed_property(session, actor, property_id)
    tasks = await maintenance_repo.list_for_property(session, property_id=property_id)
    return schemas.TaskListResponse(items=[schemas.TaskOut.model_validate(task) for task in tasks])


async def create_task(
    property_id: str,
    payload: schemas.CreateTaskRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.TaskOut:
    """Open a task against the property, optionally scoped to one of its rooms."""

    async with session.begin():
        await get_managed_property(session, actor, property_id)
        if payload.room_id is not None:
            await get_room_in_property(session, property_id=property_id, room_id=payload.room_id)
        task = await maintenance_repo.create_task(
            session,
            property_id=property_id,
            room_id=payload.room_id,
            title=payload.title,
            description=payload.description,
            priority=payload.priority,
            assigned_to=payload.assigned_to,
            due_date=payload.due_date,
        )

    logger.info("Maintenance task %s opened on property %s", task.id, property_id)
    return schemas.TaskOut.model_validate(task)


async def update_task_status(
    task_id: str,
    payload: schemas.TaskStatusRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.TaskOut:
    """Move a task to a new status, stamping completion time when completed."""

    async with session.begin():
        task = await maintenance_repo.get_by_id(session, task_id)
        if task is None:
            raise NotFoundError("Maintenance task not found")
        await get_managed_property(session, actor, task.property_id)

        task.status = payload.status
        if payload.status is TaskStatus.COMPLETED:
            task.completed_at = datetime.now(timezone.utc)
        else:
            task.completed_at = None
        session.add(task)

    return schemas.TaskOut.model_validate(task)


async def delete_task(task_id: str, actor: Actor, session: AsyncSession) -> None:
    async with session.begin():
        task = await maintenance_repo.get_by_id(session, task_id)
        if task is None:
            raise NotFoundError("Maintenance task not found")
        await get_managed_property(session, actor, task.property_id)
        await maintenance_repo.delete_task(session, task_id=task_id)
