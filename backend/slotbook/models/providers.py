"""
Provider models - businesses offering bookable services, their weekly
working hours, and date-specific availability exceptions.
"""
from datetime import date as date_type, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import (
    String,
    Integer,
    Float,
    Numeric,
    Boolean,
    Date,
    DateTime,
    Uuid,
    ForeignKey,
    Enum as SQLEnum,
    CheckConstraint,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from slotbook.lib.db import Base


class ProviderCategory(str, enum.Enum):
    """Closed set of marketplace categories."""
    EVENTS = "events"
    VILLAS = "villas"
    DOCTORS = "doctors"
    RESTAURANTS = "restaurants"
    HOTELS = "hotels"
    BEAUTY = "beauty"
    EDUCATION = "education"
    SPORTS = "sports"
    TRANSPORTATION = "transportation"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    TOURISM = "tourism"
    LEGAL = "legal"
    FINANCE = "finance"
    TECHNOLOGY = "technology"
    CONSTRUCTION = "construction"
    AGRICULTURE = "agriculture"
    MANUFACTURING = "manufacturing"


class Weekday(str, enum.Enum):
    """Weekday names used as working-hours keys."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class Provider(Base):
    """
    Provider entity - a business profile owned by one user.

    ``rating`` and ``total_ratings`` are a materialized view over reviewed
    bookings; only the rating service writes them.
    """
    __tablename__ = "providers"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Owner (one profile per user)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )

    # Profile
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[ProviderCategory] = mapped_column(
        SQLEnum(ProviderCategory, name="provider_category"),
        nullable=False,
        index=True,
    )
    subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(String(2000), nullable=False, default="")
    timezone: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="UTC",
        comment="IANA zone in which working hours and booking times are expressed",
    )
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Derived aggregate
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_ratings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

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

    services: Mapped[List["ProviderService"]] = relationship(
        back_populates="provider",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProviderService.name",
    )
    working_hours: Mapped[List["WorkingHours"]] = relationship(
        back_populates="provider",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    availability_exceptions: Mapped[List["AvailabilityException"]] = relationship(
        back_populates="provider",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="AvailabilityException.date",
    )

    __table_args__ = (
        CheckConstraint(
            "rating >= 0 AND rating <= 5",
            name="provider_rating_range",
        ),
        CheckConstraint(
            "total_ratings >= 0",
            name="provider_total_ratings_non_negative",
        ),
    )

    def get_service(self, service_id: UUID) -> Optional["ProviderService"]:
        """Return the provider's service with this id, if any."""
        for service in self.services:
            if service.id == service_id:
                return service
        return None

    def __repr__(self) -> str:
        return f"<Provider(id={self.id}, name={self.business_name}, rating={self.rating})>"


class ProviderService(Base):
    """
    A bookable service offered by a provider.
    Duration drives slot sizing; bookings keep their own snapshot.
    """
    __tablename__ = "provider_services"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    provider: Mapped["Provider"] = relationship(back_populates="services")

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="service_duration_positive"),
        CheckConstraint("price >= 0", name="service_price_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<ProviderService(id={self.id}, name={self.name}, duration={self.duration_minutes})>"


class WorkingHours(Base):
    """
    Recurring weekly opening hours, one row per provider and weekday.
    Times are zero-padded HH:mm in the provider's timezone.
    """
    __tablename__ = "working_hours"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    day: Mapped[Weekday] = mapped_column(
        SQLEnum(Weekday, name="weekday"),
        nullable=False,
    )
    open_time: Mapped[str] = mapped_column(String(5), nullable=False)
    close_time: Mapped[str] = mapped_column(String(5), nullable=False)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    provider: Mapped["Provider"] = relationship(back_populates="working_hours")

    __table_args__ = (
        UniqueConstraint("provider_id", "day", name="uq_working_hours_provider_day"),
    )

    def __repr__(self) -> str:
        return (
            f"<WorkingHours(day={self.day}, open={self.open_time}, "
            f"close={self.close_time}, closed={self.is_closed})>"
        )


class AvailabilityException(Base):
    """
    Date-specific override of the weekly schedule.
    At most one per provider and calendar date.
    """
    __tablename__ = "availability_exceptions"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    provider_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("providers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Optional custom hours (HH:mm); a missing side falls back to the weekday entry
    custom_open: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    custom_close: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    provider: Mapped["Provider"] = relationship(back_populates="availability_exceptions")

    __table_args__ = (
        UniqueConstraint("provider_id", "date", name="uq_availability_exception_provider_date"),
    )

    @property
    def has_custom_hours(self) -> bool:
        return self.custom_open is not None or self.custom_close is not None

    def __repr__(self) -> str:
        return (
            f"<AvailabilityException(date={self.date}, available={self.is_available}, "
            f"open={self.custom_open}, close={self.custom_close})>"
        )
