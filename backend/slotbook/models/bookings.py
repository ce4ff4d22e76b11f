"""
Booking model - service appointments between customers and providers.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    DateTime,
    Uuid,
    ForeignKey,
    Enum as SQLEnum,
    CheckConstraint,
    Index,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from slotbook.lib.db import Base


class BookingStatus(str, enum.Enum):
    """Booking status state machine."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
TERMINAL_STATUSES = (BookingStatus.COMPLETED, BookingStatus.CANCELLED)

# At most one active booking per provider and start time
_ACTIVE_SLOT_PREDICATE = text("status IN ('pending', 'confirmed')")


class Booking(Base):
    """
    Booking entity - service appointments.
    State machine: pending → confirmed → completed (or cancelled from either active state).

    The service name, duration and price are copied at creation so later
    catalog edits never rewrite history. ``scheduled_at`` is naive wall-clock
    time in the provider's timezone.
    """
    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Relationships
    customer_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    service_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid,
        ForeignKey("provider_services.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Service snapshot
    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    service_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    service_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Status (stored by value so the partial index predicate matches)
    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(
            BookingStatus,
            name="booking_status",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
        default=BookingStatus.PENDING,
        index=True,
    )

    # Timing
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False),
        nullable=False,
        index=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Review (set once, only when completed)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    review: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="booking_rating_range",
        ),
        CheckConstraint(
            "service_duration_minutes > 0",
            name="booking_duration_positive",
        ),
        Index(
            "uq_bookings_active_slot",
            "provider_id",
            "scheduled_at",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
        Index("ix_bookings_provider_scheduled", "provider_id", "scheduled_at"),
    )

    @property
    def is_reviewed(self) -> bool:
        return self.rating is not None

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, status={self.status}, customer_id={self.customer_id})>"
