"""Schemas for the owner dashboard: maintenance, messages, finances, analytics."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from ..models.maintenance import TaskPriority, TaskStatus
from ..models.transaction import TransactionStatus, TransactionType
from .fields import IsoDate


class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    room_id: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    assigned_to: str | None = None
    due_date: IsoDate | None = None


class TaskStatusRequest(BaseModel):
    status: TaskStatus


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    room_id: str | None = None
    title: str
    description: str | None = None
    priority: TaskPriority
    status: TaskStatus
    assigned_to: str | None = None
    due_date: date | None = None
    completed_at: datetime | None = None


class TaskListResponse(BaseModel):
    items: list[TaskOut]


class SendMessageRequest(BaseModel):
    body: str = Field(min_length=1, max_length=5000)


class MessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    booking_id: str
    sender_id: str
    receiver_id: str
    body: str
    is_read: bool
    created_at: datetime | None = None


class MessageListResponse(BaseModel):
    items: list[MessageOut]


class UnreadCountResponse(BaseModel):
    unread_count: int


class CreateTransactionRequest(BaseModel):
    property_id: str
    booking_id: str | None = None
    amount: Decimal = Field(decimal_places=2)
    type: TransactionType
    description: str | None = Field(default=None, max_length=500)


class TransactionStatusRequest(BaseModel):
    status: TransactionStatus


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    property_id: str
    booking_id: str | None = None
    amount: Decimal
    type: TransactionType
    status: TransactionStatus
    description: str | None = None
    transaction_date: datetime | None = None


class TransactionListResponse(BaseModel):
    items: list[TransactionOut]


class PropertyAnalyticsResponse(BaseModel):
    property_id: str
    period_days: int
    total_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    total_revenue: Decimal
    average_booking_value: Decimal | None = None
    occupancy_rate: float
