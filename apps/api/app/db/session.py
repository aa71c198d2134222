"""Async engine and request-scoped sessions for the booking database."""
from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..core.config import settings

logger = logging.getLogger(__name__)


def build_engine() -> AsyncEngine:
    """Create the async engine from settings.

    Booking mutations hold row locks for the length of one transaction, so the
    pool size bounds how many rooms can be written to at once per worker.
    """

    connect_args: dict[str, object] = {}
    if settings.database_ssl_required:
        connect_args["ssl"] = True

    return create_async_engine(
        settings.database_async_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        connect_args=connect_args,
    )


engine = build_engine()
# Sessions start transactions explicitly with ``session.begin()`` in the service layer.
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency to provide an async session."""

    async with SessionLocal() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""

    await engine.dispose()
    logger.info("Database engine disposed")
