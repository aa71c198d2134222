"""Account registration and admin user management endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor, get_actor
from ..db.session import get_session
from ..models.user import UserRole
from ..schemas import users as users_schema
from ..services import users as users_service

router = APIRouter()


@router.post("", response_model=users_schema.UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: users_schema.RegisterUserRequest,
    session: AsyncSession = Depends(get_session),
) -> users_schema.UserOut:
    """Create a guest or host account."""

    return await users_service.register_user(payload, session)


@router.get("/me", response_model=users_schema.UserOut)
async def me(
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> users_schema.UserOut:
    return await users_service.get_me(actor, session)


@router.get("", response_model=users_schema.UserListResponse)
async def list_users(
    role: UserRole | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> users_schema.UserListResponse:
    return await users_service.list_users(actor, session, role=role)


@router.patch("/{user_id}/role", response_model=users_schema.UserOut)
async def set_role(
    user_id: str,
    payload: users_schema.UserRoleRequest,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_session),
) -> users_schema.UserOut:
    """Admin-only role change."""

    return await users_service.set_role(user_id, payload, actor, session)
