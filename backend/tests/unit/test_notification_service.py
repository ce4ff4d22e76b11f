"""
Unit tests for NotificationService.
"""
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from slotbook.models.bookings import BookingStatus
from slotbook.services.notification_service import (
    BookingEvent,
    ConsoleNotificationProvider,
    NotificationService,
    get_notification_service,
)


@pytest.fixture
def booking():
    """Booking-shaped object; rendering only reads attributes."""
    return SimpleNamespace(
        id=uuid4(),
        service_name="Haircut",
        scheduled_at=datetime(2025, 1, 10, 9, 0),
        status=BookingStatus.CONFIRMED,
        rating=5,
    )


@pytest.mark.unit
def test_console_provider_sends_successfully():
    provider = ConsoleNotificationProvider()

    assert provider.name == "console"
    assert provider.send(to="user-1", message="Test message") is True


@pytest.mark.unit
def test_notify_renders_status_change(booking):
    provider = MagicMock()
    provider.send.return_value = True
    service = NotificationService(provider=provider, enabled=True)
    recipient = uuid4()

    sent = service.notify(BookingEvent.STATUS_CHANGED, booking, recipient, BookingStatus.PENDING)

    assert sent is True
    to, message = provider.send.call_args.args
    assert to == str(recipient)
    assert message == "Booking for Haircut on 2025-01-10 09:00 changed from pending to confirmed."
    assert provider.send.call_args.kwargs == {"event": "status_changed", "booking_id": str(booking.id)}


@pytest.mark.unit
def test_notify_renders_created_and_reviewed(booking):
    provider = MagicMock()
    provider.send.return_value = True
    service = NotificationService(provider=provider, enabled=True)

    service.notify(BookingEvent.CREATED, booking, uuid4())
    assert provider.send.call_args.args[1] == "New booking request: Haircut on 2025-01-10 09:00."

    service.notify(BookingEvent.REVIEWED, booking, uuid4())
    assert "5-star review" in provider.send.call_args.args[1]


@pytest.mark.unit
def test_disabled_service_sends_nothing(booking):
    provider = MagicMock()
    service = NotificationService(provider=provider, enabled=False)

    assert service.notify(BookingEvent.CREATED, booking, uuid4()) is False
    provider.send.assert_not_called()


@pytest.mark.unit
def test_provider_exception_is_contained(booking):
    provider = MagicMock()
    provider.name = "broken"
    provider.send.side_effect = ConnectionError("gateway unreachable")
    service = NotificationService(provider=provider, enabled=True)

    assert service.notify(BookingEvent.CREATED, booking, uuid4()) is False


@pytest.mark.unit
def test_provider_rejection_returns_false(booking):
    provider = MagicMock()
    provider.send.return_value = False
    service = NotificationService(provider=provider, enabled=True)

    assert service.notify(BookingEvent.CREATED, booking, uuid4()) is False


@pytest.mark.unit
def test_get_notification_service_is_a_singleton():
    with patch("slotbook.services.notification_service._notification_service", None):
        first = get_notification_service()
        second = get_notification_service()

    assert first is second
    assert isinstance(first.provider, ConsoleNotificationProvider)
