"""Account registration and admin user management."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.actor import Actor
from ..core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..models.user import UserRole
from ..repositories import users as users_repo
from ..schemas import users as schemas

logger = logging.getLogger(__name__)


async def register_user(payload: schemas.RegisterUserRequest, session: AsyncSession) -> schemas.UserOut:
    """Open a guest or host account. Admins are only appointed by another admin."""

    if payload.role is UserRole.ADMIN:
        raise ValidationError("Admin accounts cannot be self-registered")

    try:
        async with session.begin():
            if await users_repo.get_by_email(session, email=payload.email) is not None:
                raise ConflictError("Email is already registered", code="email_taken")
            user = await users_repo.create_user(
                session,
                email=payload.email,
                first_name=payload.first_name,
                last_name=payload.last_name,
                role=payload.role,
            )
    except IntegrityError as exc:
        raise ConflictError("Email is already registered", code="email_taken") from exc

    logger.info("User %s registered as %s", user.id, user.role.value)
    return schemas.UserOut.model_validate(user)


async def get_me(actor: Actor, session: AsyncSession) -> schemas.UserOut:
    user = await users_repo.get_user(session, actor.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return schemas.UserOut.model_validate(user)


async def list_users(
    actor: Actor,
    session: AsyncSession,
    *,
    role: UserRole | None = None,
) -> schemas.UserListResponse:
    _require_admin(actor)
    users = await users_repo.list_users(session, role=role)
    return schemas.UserListResponse(items=[schemas.UserOut.model_validate(user) for user in users])


async def set_role(
    user_id: str,
    payload: schemas.UserRoleRequest,
    actor: Actor,
    session: AsyncSession,
) -> schemas.UserOut:
    """Change an account's role; admins cannot demote themselves."""

    _require_admin(actor)
    if user_id == actor.user_id and payload.role is not UserRole.ADMIN:
        raise ValidationError("Admins cannot change their own role")

    async with session.begin():
        user = await users_repo.get_user(session, user_id)
        if user is None:
            raise NotFoundError("User not found")
        user.role = payload.role
        session.add(user)

    logger.info("User %s role set to %s by %s", user_id, payload.role.value, actor.user_id)
    return schemas.UserOut.model_validate(user)


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Admin rights required")
