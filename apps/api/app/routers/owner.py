"""Owner dashboard endpoints: bookings, maintenance, messages, finances, analytics."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor, get_actor
from ..db.session import get_session
from ..schemas import bookings as bookings_schema
from ..schemas import owner as owner_schema
from ..schemas import properties as properties_schema
from ..services import bookings as bookings_service
from ..services import finances as finances_service
from ..services import maintenance as maintenance_service
from ..services import messages as messages_service
from ..services import properties as properties_service

router = APIRouter()


@router.get("/properties", response_model=properties_schema.PropertyListResponse)
async def list_properties(
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> properties_schema.PropertyListResponse:
    return await properties_service.list_owner_properties(actor, session)


@router.get("/properties/{property_id}/bookings", response_model=bookings_schema.BookingListResponse)
async def list_property_bookings(
    property_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingListResponse:
    return await bookings_service.list_property_bookings(property_id, actor, session)


@router.patch("/bookings/{booking_id}/status", response_model=bookings_schema.BookingResponse)
async def update_booking_status(
    booking_id: str,
    payload: bookings_schema.BookingStatusRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> bookings_schema.BookingResponse:
    """Confirm or cancel a booking on the caller's property."""

    return await bookings_service.set_booking_status(booking_id, payload, actor, session)


@router.get("/properties/{property_id}/analytics", response_model=owner_schema.PropertyAnalyticsResponse)
async def property_analytics(
    property_id: str,
    period: str = Query(default="30days"),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.PropertyAnalyticsResponse:
    return await finances_service.property_analytics(property_id, period, actor, session)


@router.get("/properties/{property_id}/maintenance", response_model=owner_schema.TaskListResponse)
async def list_maintenance(
    property_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.TaskListResponse:
    return await maintenance_service.list_tasks(property_id, actor, session)


@router.post(
    "/properties/{property_id}/maintenance",
    response_model=owner_schema.TaskOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_maintenance(
    property_id: str,
    payload: owner_schema.CreateTaskRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.TaskOut:
    return await maintenance_service.create_task(property_id, payload, actor, session)


@router.patch("/maintenance/{task_id}/status", response_model=owner_schema.TaskOut)
async def update_maintenance_status(
    task_id: str,
    payload: owner_schema.TaskStatusRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.TaskOut:
    return await maintenance_service.update_task_status(task_id, payload, actor, session)


@router.delete("/maintenance/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_maintenance(
    task_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> Response:
    await maintenance_service.delete_task(task_id, actor, session)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/bookings/{booking_id}/messages", response_model=owner_schema.MessageListResponse)
async def list_messages(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.MessageListResponse:
    return await messages_service.list_messages(booking_id, actor, session)


@router.post(
    "/bookings/{booking_id}/messages",
    response_model=owner_schema.MessageOut,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    booking_id: str,
    payload: owner_schema.SendMessageRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.MessageOut:
    return await messages_service.send_message(booking_id, payload, actor, session)


@router.patch("/bookings/{booking_id}/messages/read")
async def mark_messages_read(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    updated = await messages_service.mark_read(booking_id, actor, session)
    return {"updated": updated}


@router.get("/messages/unread", response_model=owner_schema.UnreadCountResponse)
async def unread_messages(
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.UnreadCountResponse:
    return await messages_service.unread_count(actor, session)


@router.get("/properties/{property_id}/transactions", response_model=owner_schema.TransactionListResponse)
async def list_transactions(
    property_id: str,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.TransactionListResponse:
    return await finances_service.list_transactions(property_id, actor, session)


@router.post("/transactions", response_model=owner_schema.TransactionOut, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: owner_schema.CreateTransactionRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.TransactionOut:
    return await finances_service.create_transaction(payload, actor, session)


@router.patch("/transactions/{transaction_id}/status", response_model=owner_schema.TransactionOut)
async def update_transaction_status(
    transaction_id: str,
    payload: owner_schema.TransactionStatusRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> owner_schema.TransactionOut:
    return await finances_service.update_transaction_status(transaction_id, payload, actor, session)
