"""Financial transaction persistence helpers."""
from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.transaction import FinancialTransaction, TransactionType


async def list_for_property(session: AsyncSession, *, property_id: str) -> list[FinancialTransaction]:
    """Return a property's transactions, most recent first."""

    stmt = (
        select(FinancialTransaction)
        .where(FinancialTransaction.property_id == property_id)
        .order_by(FinancialTransaction.transaction_date.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_by_id(session: AsyncSession, transaction_id: str) -> FinancialTransaction | None:
    return await session.get(FinancialTransaction, transaction_id)


async def create_transaction(
    session: AsyncSession,
    *,
    property_id: str,
    booking_id: str | None,
    amount: Decimal,
    type: TransactionType,
    description: str | None,
) -> FinancialTransaction:
    """Persist a new transaction in pending state."""

    transaction = FinancialTransaction(
        id=str(uuid4()),
        property_id=property_id,
        booking_id=booking_id,
        amount=amount,
        type=type,
        description=description,
    )
    session.add(transaction)
    await session.flush()
    return transaction
