"""
Booking engine error taxonomy.

Every domain error is an ``AppException`` so the API layer renders it with
a status code and diagnostic details. ``RatingRecomputeError`` is the one
infrastructure failure and deliberately sits outside that hierarchy.
"""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from slotbook.api.middleware.error_handler import (
    AppException,
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)


class SlotUnavailableException(ConflictException):
    """Requested time is not one of the provider's resolved slots."""

    def __init__(self, provider_id: UUID, scheduled_at: datetime, reason: str):
        super().__init__(
            message=f"Requested time {scheduled_at:%Y-%m-%d %H:%M} is not available: {reason}",
            details={
                "provider_id": str(provider_id),
                "scheduled_at": scheduled_at.isoformat(),
                "reason": reason,
            },
        )
        self.reason = reason


class SlotTakenException(ConflictException):
    """An active booking already holds this provider and start time."""

    def __init__(self, provider_id: UUID, scheduled_at: datetime):
        super().__init__(
            message="This time slot is already booked",
            details={
                "provider_id": str(provider_id),
                "scheduled_at": scheduled_at.isoformat(),
            },
        )


class InvalidTransitionException(ConflictException):
    """Status change that is not an edge of the booking state machine."""

    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            message=f"Cannot change status from {from_status} to {to_status}",
            details={"from_status": from_status, "to_status": to_status},
        )
        self.from_status = from_status
        self.to_status = to_status


class NotAuthorizedException(ForbiddenException):
    """Actor does not own the booking or lacks the role for the action."""

    def __init__(self, action: str, reason: Optional[str] = None):
        message = f"Not authorized to {action}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message=message, details={"action": action})


class NotCompletedException(BadRequestException):
    """Review attempted on a booking that has not been completed."""

    def __init__(self, current_status: str):
        super().__init__(
            message="Can only review completed bookings",
            details={"status": current_status},
        )


class AlreadyReviewedException(ConflictException):
    """Booking already carries a rating."""

    def __init__(self, booking_id: UUID):
        super().__init__(
            message="Booking already reviewed",
            details={"booking_id": str(booking_id)},
        )


class ProviderExistsException(ConflictException):
    """User already owns a provider profile."""

    def __init__(self, user_id: UUID):
        super().__init__(
            message="Provider profile already exists",
            details={"user_id": str(user_id)},
        )


class ScheduleValidationException(ValidationException):
    """Malformed working hours or exception hours rejected at write time."""

    def __init__(self, message: str, field: str, value=None, on: Optional[date] = None):
        errors = {"field": field, "value": value}
        if on is not None:
            errors["date"] = on.isoformat()
        super().__init__(message, errors=errors)


class RatingRecomputeError(Exception):
    """Provider aggregate could not be refreshed; the review itself is stored."""

    def __init__(self, provider_id: UUID, cause: Exception):
        super().__init__(f"Failed to recompute rating for provider {provider_id}: {cause}")
        self.provider_id = provider_id
        self.cause = cause


__all__ = [
    "AppException",
    "NotFoundException",
    "SlotUnavailableException",
    "SlotTakenException",
    "InvalidTransitionException",
    "NotAuthorizedException",
    "NotCompletedException",
    "AlreadyReviewedException",
    "ProviderExistsException",
    "ScheduleValidationException",
    "ValidationException",
    "RatingRecomputeError",
]
