"""
Shared fixtures: an in-memory SQLite database, factories for users and
providers, and a notification service that records what it sends.
"""
import os

# Must be set before slotbook.lib.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

from decimal import Decimal
from itertools import count
from typing import List, Optional

import pytest

from slotbook.lib.db import SessionLocal, drop_db, init_db
from slotbook.lib.settings import settings
from slotbook.models.bookings import Booking, BookingStatus
from slotbook.models.providers import (
    AvailabilityException,
    Provider,
    ProviderCategory,
    ProviderService,
    WorkingHours,
    Weekday,
)
from slotbook.models.users import User, UserRole
from slotbook.services.booking_service import BookingLifecycle
from slotbook.services.notification_service import NotificationProvider, NotificationService


WEEKDAY_HOURS = {
    Weekday.MONDAY: ("09:00", "17:00", False),
    Weekday.TUESDAY: ("09:00", "17:00", False),
    Weekday.WEDNESDAY: ("09:00", "17:00", False),
    Weekday.THURSDAY: ("09:00", "17:00", False),
    Weekday.FRIDAY: ("09:00", "17:00", False),
    Weekday.SATURDAY: ("10:00", "14:00", False),
    Weekday.SUNDAY: ("09:00", "17:00", True),
}

_sequence = count(1)


class RecordingProvider(NotificationProvider):
    """Notification provider that keeps every message in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[dict] = []

    @property
    def name(self) -> str:
        return "recording"

    def send(self, to: str, message: str, **kwargs) -> bool:
        if self.fail:
            raise RuntimeError("gateway unavailable")
        self.sent.append({"to": to, "message": message, **kwargs})
        return True


@pytest.fixture
def db_session():
    """Fresh schema per test on the shared in-memory database."""
    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        drop_db()


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    monkeypatch.setattr(settings, "rating_recompute_backoff_seconds", 0)


@pytest.fixture
def recorder():
    return RecordingProvider()


@pytest.fixture
def notifications(recorder):
    return NotificationService(provider=recorder, enabled=True)


@pytest.fixture
def lifecycle(db_session, notifications):
    return BookingLifecycle(db_session, notifications=notifications)


@pytest.fixture
def make_user(db_session):
    def _make_user(role: UserRole = UserRole.CUSTOMER, name: Optional[str] = None) -> User:
        n = next(_sequence)
        user = User(name=name or f"User {n}", email=f"user{n}@example.com", role=role)
        db_session.add(user)
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def make_provider(db_session, make_user):
    def _make_provider(
        hours=None,
        timezone: str = "UTC",
        services=(("Haircut", 60, "25.00"),),
        owner: Optional[User] = None,
    ) -> Provider:
        owner = owner or make_user(UserRole.PROVIDER)
        provider = Provider(
            user_id=owner.id,
            business_name=f"{owner.name} Studio",
            category=ProviderCategory.BEAUTY,
            description="",
            timezone=timezone,
        )
        for name, duration, price in services:
            provider.services.append(
                ProviderService(name=name, duration_minutes=duration, price=Decimal(price))
            )
        for day, (open_time, close_time, is_closed) in (WEEKDAY_HOURS if hours is None else hours).items():
            provider.working_hours.append(
                WorkingHours(day=day, open_time=open_time, close_time=close_time, is_closed=is_closed)
            )
        db_session.add(provider)
        db_session.commit()
        return provider
    return _make_provider


@pytest.fixture
def customer(make_user) -> User:
    return make_user(UserRole.CUSTOMER)


@pytest.fixture
def provider(make_provider) -> Provider:
    return make_provider()


@pytest.fixture
def add_exception(db_session):
    def _add_exception(provider: Provider, day, is_available: bool, custom_open=None, custom_close=None):
        exception = AvailabilityException(
            date=day,
            is_available=is_available,
            custom_open=custom_open,
            custom_close=custom_close,
        )
        provider.availability_exceptions.append(exception)
        db_session.commit()
        return exception
    return _add_exception


@pytest.fixture
def add_completed_booking(db_session):
    """Insert a completed booking directly, bypassing the lifecycle."""
    def _add_completed_booking(provider: Provider, customer: User, scheduled_at, rating=None) -> Booking:
        service = provider.services[0]
        booking = Booking(
            customer_id=customer.id,
            provider_id=provider.id,
            service_id=service.id,
            service_name=service.name,
            service_duration_minutes=service.duration_minutes,
            service_price=service.price,
            scheduled_at=scheduled_at,
            status=BookingStatus.COMPLETED,
            rating=rating,
        )
        db_session.add(booking)
        db_session.commit()
        return booking
    return _add_completed_booking
