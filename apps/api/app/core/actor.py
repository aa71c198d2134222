"""Request actor resolved from the gateway-supplied user id."""
from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import get_session
from ..models.user import UserRole
from ..repositories import users as users_repo
from .errors import PersistenceError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Actor:
    """The authenticated user performing a request."""

    user_id: str
    role: UserRole = UserRole.GUEST

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


async def get_actor(
    x_user_id: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> Actor:
    """FastAPI dependency returning the caller's identity.

    Token verification happens upstream and the gateway forwards the user id.
    The role always comes from the stored account, never from the request.
    """

    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        # Own short transaction so service code can open its own with session.begin().
        async with session.begin():
            user = await users_repo.get_user(session, x_user_id)
    except SQLAlchemyError as exc:
        logger.exception("Failed to resolve user %s", x_user_id)
        raise PersistenceError("Could not resolve user") from exc
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return Actor(user_id=user.id, role=user.role)
