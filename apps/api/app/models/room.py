"""Room model."""
from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .availability import AvailabilityOverride
    from .booking import Booking
    from .property import Property


class Room(Base):
    """Individual bookable room."""

    __tablename__ = "rooms"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    property_id: Mapped[str] = mapped_column(ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    room_type: Mapped[str | None] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text)
    max_occupancy: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    beds: Mapped[list[dict]] = mapped_column(JSONB, default=list, nullable=False)
    amenities: Mapped[list[str]] = mapped_column(ARRAY(String), default=list, nullable=False)
    images: Mapped[list[str]] = mapped_column(ARRAY(String), default=list, nullable=False)

    property: Mapped["Property"] = relationship("Property", back_populates="rooms")
    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="room")
    overrides: Mapped[list["AvailabilityOverride"]] = relationship(
        "AvailabilityOverride", back_populates="room", cascade="all, delete-orphan"
    )
