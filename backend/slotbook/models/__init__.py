"""
SQLAlchemy models package.
Import all models here to ensure they're registered with Base.metadata.
"""
from slotbook.models.users import User, UserRole, Actor
from slotbook.models.providers import (
    Provider,
    ProviderCategory,
    ProviderService,
    WorkingHours,
    Weekday,
    AvailabilityException,
)
from slotbook.models.bookings import Booking, BookingStatus

__all__ = [
    "User",
    "UserRole",
    "Actor",
    "Provider",
    "ProviderCategory",
    "ProviderService",
    "WorkingHours",
    "Weekday",
    "AvailabilityException",
    "Booking",
    "BookingStatus",
]
