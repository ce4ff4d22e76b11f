"""
User model - base entity for customers, providers, and admins.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4, UUID
import enum

from sqlalchemy import String, Boolean, DateTime, Uuid, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from slotbook.lib.db import Base


class UserRole(str, enum.Enum):
    """User role enumeration."""
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"


class User(Base):
    """
    User entity - represents all system users.
    Either phone or email must be present.
    """
    __tablename__ = "users"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )

    # Contact info (at least one required)
    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        unique=True,
        nullable=True,
        index=True,
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        unique=True,
        nullable=True,
        index=True,
    )

    # Profile
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.CUSTOMER,
        index=True,
    )

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

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
            "phone IS NOT NULL OR email IS NOT NULL",
            name="user_contact_required",
        ),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name}, role={self.role})>"


@dataclass(frozen=True)
class Actor:
    """
    Authenticated identity passed into every engine operation.

    Supplied by the auth layer and trusted as-is; the engine only checks
    ownership against it.
    """
    user_id: UUID
    role: UserRole
