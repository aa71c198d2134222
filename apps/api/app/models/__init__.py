"""Expose ORM models."""
from .availability import AvailabilityOverride
from .booking import Booking, OccupiedNight
from .maintenance import MaintenanceTask
from .message import Message
from .property import Property
from .room import Room
from .transaction import FinancialTransaction
from .user import User

__all__ = [
    "AvailabilityOverride",
    "Booking",
    "FinancialTransaction",
    "MaintenanceTask",
    "Message",
    "OccupiedNight",
    "Property",
    "Room",
    "User",
]
