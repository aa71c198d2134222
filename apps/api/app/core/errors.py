"""Service-level error taxonomy mapped onto HTTP responses."""
from __future__ import annotations

import re

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

_CONSTRAINT_IN_MESSAGE = re.compile(r'constraint "([^"]+)"')


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "error"

    def __init__(self, detail: str, *, code: str | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code


class ValidationError(ServiceError):
    """Input is malformed or logically invalid."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class AuthorizationError(ServiceError):
    """Actor lacks rights over the target resource."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "not_authorized"


class NotFoundError(ServiceError):
    """Entity is missing or does not belong to the claimed parent."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(ServiceError):
    """Requested dates collide with an active booking."""

    status_code = status.HTTP_409_CONFLICT
    code = "dates_unavailable"


class PersistenceError(ServiceError):
    """Underlying storage operation failed."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "persistence_error"


def violated_constraint(exc: IntegrityError) -> str | None:
    """Return the name of the constraint an IntegrityError reports.

    asyncpg exposes ``constraint_name`` on the driver exception; other drivers
    only put it in the message.
    """

    for err in (exc.orig, getattr(exc.orig, "__cause__", None)):
        name = getattr(err, "constraint_name", None)
        if name:
            return name
    match = _CONSTRAINT_IN_MESSAGE.search(str(exc.orig))
    return match.group(1) if match else None


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render a service error as a JSON body with the matching status code."""

    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail, "error": exc.code})
