"""
Conflict checker - detects active bookings holding a provider's start time.
"""
from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.orm import Session

from slotbook.models.bookings import ACTIVE_STATUSES, Booking


class ConflictChecker:
    """
    A slot is taken when a pending or confirmed booking for the same provider
    starts at exactly the same time.

    Only identical start times conflict; bookings of different lengths that
    overlap part-way are not detected. The partial unique index on bookings
    enforces the same key at the storage level.
    """

    def __init__(self, session: Session):
        self.session = session

    def is_slot_free(self, provider_id: UUID, scheduled_at: datetime) -> bool:
        stmt = select(
            exists().where(
                Booking.provider_id == provider_id,
                Booking.scheduled_at == scheduled_at,
                Booking.status.in_(ACTIVE_STATUSES),
            )
        )
        return not self.session.execute(stmt).scalar()
