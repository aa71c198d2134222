"""User account persistence helpers."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User, UserRole


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    """Return a user by identifier."""

    return await session.get(User, user_id)


async def get_by_email(session: AsyncSession, *, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == email.lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession, *, role: UserRole | None = None) -> list[User]:
    """Return accounts, newest first, optionally for one role."""

    stmt = select(User).order_by(User.created_at.desc())
    if role is not None:
        stmt = stmt.where(User.role == role)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    first_name: str | None,
    last_name: str | None,
    role: UserRole,
) -> User:
    """Persist a new account."""

    user = User(
        id=str(uuid4()),
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    session.add(user)
    await session.flush()
    return user
