"""Availability override model."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
import enum
from typing import TYPE_CHECKING

from sqlalchemy import Date, Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .room import Room

from .base import Base


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    BLOCKED = "blocked"


class AvailabilityOverride(Base):
    """Owner-set status and price for a room on one date."""

    __tablename__ = "room_availability"

    room_id: Mapped[str] = mapped_column(ForeignKey("rooms.id", ondelete="CASCADE"), primary_key=True)
    day: Mapped[date] = mapped_column("date", Date, primary_key=True)
    status: Mapped[AvailabilityStatus] = mapped_column(
        Enum(AvailabilityStatus, name="availability_status"), nullable=False
    )
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    notes: Mapped[str | None] = mapped_column(String)

    room: Mapped["Room"] = relationship("Room", back_populates="overrides")
