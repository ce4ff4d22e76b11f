"""
Rating aggregator - maintains a provider's mean rating and rating count.

The aggregate is a materialized view over reviewed bookings. Each
recomputation re-derives it from booking rows in full, so retries and
concurrent runs for the same provider converge on the same values and
last-write-wins is harmless.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotbook.lib.logging import get_logger
from slotbook.models.bookings import Booking, BookingStatus
from slotbook.models.providers import Provider
from slotbook.services.errors import NotFoundException, RatingRecomputeError

logger = get_logger(__name__)


@dataclass(frozen=True)
class RatingSummary:
    provider_id: UUID
    rating: float
    total_ratings: int


@dataclass(frozen=True)
class ReviewItem:
    booking_id: UUID
    customer_id: UUID
    rating: int
    comment: Optional[str]
    reviewed_at: Optional[datetime]


class RatingAggregator:
    """Recomputes and reads provider review aggregates."""

    def __init__(self, session: Session):
        self.session = session

    def recompute(self, provider_id: UUID) -> RatingSummary:
        """
        Recompute ``rating`` and ``total_ratings`` for a provider from scratch.

        Returns:
            The summary written to the provider row

        Raises:
            NotFoundException: If the provider does not exist
            RatingRecomputeError: If the store fails while reading or writing
        """
        try:
            count, total = self.session.execute(
                select(func.count(Booking.rating), func.coalesce(func.sum(Booking.rating), 0))
                .where(Booking.provider_id == provider_id, Booking.rating.is_not(None))
            ).one()

            mean = float(total) / count if count else 0.0

            result = self.session.execute(
                update(Provider)
                .where(Provider.id == provider_id)
                .values(rating=mean, total_ratings=count)
            )
            if result.rowcount == 0:
                self.session.rollback()
                raise NotFoundException("Provider", str(provider_id))

            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RatingRecomputeError(provider_id, e) from e

        logger.info(
            "Provider rating recomputed",
            extra={"extra_fields": {
                "provider_id": str(provider_id),
                "rating": mean,
                "total_ratings": count,
            }},
        )
        return RatingSummary(provider_id=provider_id, rating=mean, total_ratings=count)

    def list_reviews(self, provider_id: UUID) -> List[ReviewItem]:
        """Reviewed bookings for a provider, newest review first."""
        stmt = (
            select(Booking)
            .where(
                Booking.provider_id == provider_id,
                Booking.status == BookingStatus.COMPLETED,
                Booking.rating.is_not(None),
            )
            .order_by(Booking.reviewed_at.desc(), Booking.created_at.desc())
        )
        return [
            ReviewItem(
                booking_id=booking.id,
                customer_id=booking.customer_id,
                rating=booking.rating,
                comment=booking.review,
                reviewed_at=booking.reviewed_at,
            )
            for booking in self.session.execute(stmt).scalars()
        ]
