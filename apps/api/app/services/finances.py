"""Financial transactions and booking analytics for hosts."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor
from ..core.errors import NotFoundError, ValidationError
from ..repositories import analytics as analytics_repo
from ..repositories import bookings as bookings_repo
from ..repositories import transactions as transactions_repo
from ..schemas import owner as schemas
from .pricing import round_total
from .properties import get_managed_property

logger = logging.getLogger(__name__)

ANALYTICS_PERIODS = {"7days": 7, "30days": 30, "90days": 90}


async def list_transactions(
    property_id: str,
    actor: Actor,
    session: AsyncSession,
) -> schemas.TransactionListResponse:
    await get_managed_property(session, actor, property_id)
    rows = await transactions_repo.list_for_property(session, property_id=property_id)
    return schemas.TransactionListResponse(items=[schemas.TransactionOut.model_validate(row) for row in rows])


async def create_transaction(
    payload: schemas.CreateTransactionRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.TransactionOut:
    """Record a transaction; a referenced booking must belong to the same property."""

    async with session.begin():
        await get_managed_property(session, actor, payload.property_id)
        if payload.booking_id is not None:
            scope = await bookings_repo.get_scope(session, payload.booking_id)
            if scope is None or scope.property_id != payload.property_id:
                raise NotFoundError("Booking not found for this property")
        transaction = await transactions_repo.create_transaction(
            session,
            property_id=payload.property_id,
            booking_id=payload.booking_id,
            amount=payload.amount,
            type=payload.type,
            description=payload.description,
        )

    logger.info("Transaction %s (%s %s) recorded", transaction.id, payload.type.value, payload.amount)
    return schemas.TransactionOut.model_validate(transaction)


async def update_transaction_status(
    transaction_id: str,
    payload: schemas.TransactionStatusRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.TransactionOut:
    async with session.begin():
        transaction = await transactions_repo.get_by_id(session, transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")
        await get_managed_property(session, actor, transaction.property_id)
        transaction.status = payload.status
        session.add(transaction)

    return schemas.TransactionOut.model_validate(transaction)


async def property_analytics(
    property_id: str,
    period: str,
    actor: Actor,
    session: AsyncSession,
    *,
    as_of: date | None = None,
) -> schemas.PropertyAnalyticsResponse:
    """Summarise bookings, revenue and occupancy over the trailing period."""

    days = ANALYTICS_PERIODS.get(period)
    if days is None:
        raise ValidationError(f"Unknown period {period!r}; use one of {', '.join(ANALYTICS_PERIODS)}")

    await get_managed_property(session, actor, property_id)

    end = (as_of or datetime.now(timezone.utc).date()) + timedelta(days=1)
    start = end - timedelta(days=days)
    totals = await analytics_repo.booking_totals(session, property_id=property_id, start_date=start, end_date=end)
    nights = await analytics_repo.occupied_nights(session, property_id=property_id, start_date=start, end_date=end)
    rooms = await analytics_repo.room_count(session, property_id=property_id)

    average = round_total(totals.revenue / totals.confirmed) if totals.confirmed else None
    capacity = rooms * days
    occupancy = round(nights / capacity, 4) if capacity else 0.0

    return schemas.PropertyAnalyticsResponse(
        property_id=property_id,
        period_days=days,
        total_bookings=totals.total,
        confirmed_bookings=totals.confirmed,
        cancelled_bookings=totals.cancelled,
        total_revenue=round_total(Decimal(totals.revenue)),
        average_booking_value=average,
        occupancy_rate=occupancy,
    )
