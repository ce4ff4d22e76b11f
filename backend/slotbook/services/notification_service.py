"""
Notification service abstraction for booking events.

The engine hands events over after its own commit; delivery is
fire-and-forget, so a failing provider is logged and never propagates
back into the booking operation.
"""
from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID
import enum

from slotbook.lib.logging import get_logger
from slotbook.lib.settings import settings
from slotbook.models.bookings import Booking, BookingStatus


logger = get_logger(__name__)


class BookingEvent(str, enum.Enum):
    """Booking events that produce user-facing messages."""
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    REVIEWED = "reviewed"


class NotificationProvider(ABC):
    """
    Abstract base class for notification delivery providers.
    """

    @abstractmethod
    def send(self, to: str, message: str, **kwargs) -> bool:
        """
        Send notification via this provider.

        Args:
            to: Recipient identifier (user id, phone number, etc.)
            message: Message content to send
            **kwargs: Provider-specific parameters

        Returns:
            True if sent successfully, False otherwise
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name used in logs."""


class ConsoleNotificationProvider(NotificationProvider):
    """
    Console provider for development/testing.
    Logs messages instead of delivering them.
    """

    @property
    def name(self) -> str:
        return "console"

    def send(self, to: str, message: str, **kwargs) -> bool:
        logger.info(
            "Notification logged to console",
            extra={"extra_fields": {"to": to, "notification": message, **kwargs}},
        )
        return True


def _render(event: BookingEvent, booking: Booking, previous: Optional[BookingStatus]) -> str:
    when = f"{booking.scheduled_at:%Y-%m-%d %H:%M}"
    if event == BookingEvent.CREATED:
        return f"New booking request: {booking.service_name} on {when}."
    if event == BookingEvent.STATUS_CHANGED:
        old = previous.value if previous else "unknown"
        return f"Booking for {booking.service_name} on {when} changed from {old} to {booking.status.value}."
    return f"Your {booking.service_name} booking on {when} received a {booking.rating}-star review."


class NotificationService:
    """
    Dispatches booking events to the configured provider.

    Handles:
    - Recipient selection (customer, provider owner)
    - Failure isolation from the calling operation
    """

    def __init__(self, provider: Optional[NotificationProvider] = None, enabled: Optional[bool] = None):
        self.provider = provider or ConsoleNotificationProvider()
        self.enabled = settings.notifications_enabled if enabled is None else enabled

    def notify(
        self,
        event: BookingEvent,
        booking: Booking,
        recipient_id: UUID,
        previous_status: Optional[BookingStatus] = None,
    ) -> bool:
        """
        Deliver one booking event to one recipient.

        Returns:
            True if the provider accepted the message, False if disabled or failed
        """
        if not self.enabled:
            return False

        try:
            message = _render(event, booking, previous_status)
            sent = self.provider.send(
                str(recipient_id),
                message,
                event=event.value,
                booking_id=str(booking.id),
            )
        except Exception as e:
            logger.error(
                f"Notification delivery failed: {e}",
                extra={"extra_fields": {
                    "event": event.value,
                    "booking_id": str(booking.id),
                    "provider": self.provider.name,
                }},
                exc_info=True,
            )
            return False

        if not sent:
            logger.warning(
                "Notification provider rejected message",
                extra={"extra_fields": {"event": event.value, "booking_id": str(booking.id)}},
            )
        return sent


# Global service instance
_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """Get the process-wide notification service."""
    global _notification_service
    if _notification_service is None:
        if settings.notification_provider != "console":
            logger.warning(
                f"Unknown notification provider '{settings.notification_provider}', using console"
            )
        _notification_service = NotificationService()
    return _notification_service
