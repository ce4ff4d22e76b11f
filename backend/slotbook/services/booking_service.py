"""
Booking lifecycle - creation, status transitions, and reviews.

State machine:
    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled
    completed, cancelled are terminal

Every public operation takes an explicit ``Actor`` and checks ownership
before anything else: a booking is visible and writable only to its
customer and to the provider it targets.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from slotbook.lib.clock import to_local_wall_time
from slotbook.lib.logging import get_logger
from slotbook.lib.settings import settings
from slotbook.models.bookings import TERMINAL_STATUSES, Booking, BookingStatus
from slotbook.models.providers import Provider
from slotbook.models.users import Actor, User
from slotbook.services.availability_service import AvailabilityResolver
from slotbook.services.conflict_service import ConflictChecker
from slotbook.services.errors import (
    AlreadyReviewedException,
    InvalidTransitionException,
    NotAuthorizedException,
    NotCompletedException,
    NotFoundException,
    RatingRecomputeError,
    SlotTakenException,
    SlotUnavailableException,
    ValidationException,
)
from slotbook.services.notification_service import (
    BookingEvent,
    NotificationService,
    get_notification_service,
)
from slotbook.services.rating_service import RatingAggregator, RatingSummary

logger = get_logger(__name__)


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    **{status: frozenset() for status in TERMINAL_STATUSES},
}

# Targets only the provider side may move a booking into
PROVIDER_ONLY_TARGETS = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED})

CUSTOMER_SIDE = "customer"
PROVIDER_SIDE = "provider"


def validate_transition(current: BookingStatus, new: BookingStatus) -> None:
    """Raise InvalidTransitionException unless ``new`` directly follows ``current``."""
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionException(current.value, new.value)


@dataclass(frozen=True)
class ReviewResult:
    """Stored review plus the refreshed aggregate, when the refresh succeeded."""
    booking: Booking
    rating_summary: Optional[RatingSummary]


class BookingLifecycle:
    """Booking state machine over a request-scoped session."""

    def __init__(
        self,
        session: Session,
        notifications: Optional[NotificationService] = None,
        ratings: Optional[RatingAggregator] = None,
    ):
        self.session = session
        self.notifications = notifications or get_notification_service()
        self.ratings = ratings or RatingAggregator(session)
        self.conflicts = ConflictChecker(session)

    # ------------------------------------------------------------------
    # Lookups and guards
    # ------------------------------------------------------------------

    def _get_booking(self, booking_id: UUID) -> Booking:
        booking = self.session.get(Booking, booking_id)
        if booking is None:
            raise NotFoundException("Booking", str(booking_id))
        return booking

    def _provider_owner_id(self, provider_id: UUID) -> Optional[UUID]:
        return self.session.execute(
            select(Provider.user_id).where(Provider.id == provider_id)
        ).scalar_one_or_none()

    def _side_of(self, actor: Actor, booking: Booking) -> Optional[str]:
        if actor.user_id == self._provider_owner_id(booking.provider_id):
            return PROVIDER_SIDE
        if actor.user_id == booking.customer_id:
            return CUSTOMER_SIDE
        return None

    def _require_side(self, actor: Actor, booking: Booking, action: str) -> str:
        side = self._side_of(actor, booking)
        if side is None:
            raise NotAuthorizedException(action)
        return side

    def _notify(
        self,
        event: BookingEvent,
        booking: Booking,
        recipient_id: Optional[UUID],
        previous_status: Optional[BookingStatus] = None,
    ) -> None:
        if recipient_id is not None:
            self.notifications.notify(event, booking, recipient_id, previous_status)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        actor: Actor,
        provider_id: UUID,
        service_id: UUID,
        scheduled_at: datetime,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Book a slot for the acting customer.

        The provider row is locked for the duration of the check-then-insert
        on backends that support it, and the partial unique index on active
        bookings backs the conflict check everywhere else.

        Raises:
            NotFoundException: Provider, service or acting user does not exist
            NotAuthorizedException: Actor owns the provider
            SlotUnavailableException: Time is not one of the resolved slots
            SlotTakenException: An active booking already holds the slot
        """
        provider = self.session.execute(
            select(Provider).where(Provider.id == provider_id).with_for_update()
        ).scalar_one_or_none()
        if provider is None:
            raise NotFoundException("Service provider", str(provider_id))
        if provider.user_id == actor.user_id:
            raise NotAuthorizedException("book this provider", "providers cannot book their own services")

        service = provider.get_service(service_id)
        if service is None:
            raise NotFoundException("Service", str(service_id))

        local_start = to_local_wall_time(scheduled_at, provider.timezone)

        if not AvailabilityResolver.is_bookable(provider, local_start, service.duration_minutes):
            window = AvailabilityResolver.resolve_window(provider, local_start.date())
            reason = "provider is closed on this date" if window is None else "time is not a bookable slot"
            raise SlotUnavailableException(provider.id, local_start, reason)

        if not self.conflicts.is_slot_free(provider.id, local_start):
            logger.warning(
                "Slot already booked",
                extra={"extra_fields": {
                    "provider_id": str(provider.id),
                    "scheduled_at": local_start.isoformat(),
                }},
            )
            raise SlotTakenException(provider.id, local_start)

        booking = Booking(
            customer_id=actor.user_id,
            provider_id=provider.id,
            service_id=service.id,
            service_name=service.name,
            service_duration_minutes=service.duration_minutes,
            service_price=service.price,
            scheduled_at=local_start,
            status=BookingStatus.PENDING,
            notes=(notes or "").strip() or None,
        )
        self.session.add(booking)

        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            # Lost the race to a concurrent create for the same slot
            if not self.conflicts.is_slot_free(provider.id, local_start):
                raise SlotTakenException(provider.id, local_start) from None
            # Token for a user that has since been deleted
            if self.session.get(User, actor.user_id) is None:
                raise NotFoundException("User", str(actor.user_id)) from None
            raise

        logger.info(
            "Booking created",
            extra={"extra_fields": {
                "booking_id": str(booking.id),
                "provider_id": str(provider.id),
                "customer_id": str(actor.user_id),
                "scheduled_at": local_start.isoformat(),
            }},
        )
        self._notify(BookingEvent.CREATED, booking, provider.user_id)
        return booking

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, actor: Actor, booking_id: UUID) -> Booking:
        """Fetch a booking visible to the actor."""
        booking = self._get_booking(booking_id)
        self._require_side(actor, booking, "view this booking")
        return booking

    def _list(
        self,
        criteria,
        status: Optional[BookingStatus],
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> List[Booking]:
        """
        Bookings matching ``criteria``, latest start first.

        Naive bounds are wall-clock times and filter in SQL. Aware bounds are
        converted into each booking's provider timezone before comparing.
        """
        stmt = (
            select(Booking, Provider.timezone)
            .join(Provider, Provider.id == Booking.provider_id)
            .where(criteria)
        )
        if status is not None:
            stmt = stmt.where(Booking.status == status)
        if start is not None and start.tzinfo is None:
            stmt = stmt.where(Booking.scheduled_at >= start)
        if end is not None and end.tzinfo is None:
            stmt = stmt.where(Booking.scheduled_at < end)
        stmt = stmt.order_by(Booking.scheduled_at.desc())

        bookings = []
        for booking, zone in self.session.execute(stmt):
            if start is not None and booking.scheduled_at < to_local_wall_time(start, zone):
                continue
            if end is not None and booking.scheduled_at >= to_local_wall_time(end, zone):
                continue
            bookings.append(booking)
        return bookings

    def list_for_customer(
        self,
        actor: Actor,
        status: Optional[BookingStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        """The actor's own bookings, latest start first."""
        return self._list(Booking.customer_id == actor.user_id, status, start, end)

    def list_for_provider(
        self,
        actor: Actor,
        status: Optional[BookingStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Booking]:
        """Bookings against the provider profile the actor owns."""
        provider_id = self.session.execute(
            select(Provider.id).where(Provider.user_id == actor.user_id)
        ).scalar_one_or_none()
        if provider_id is None:
            raise NotFoundException("Provider profile")
        return self._list(Booking.provider_id == provider_id, status, start, end)

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def change_status(
        self,
        actor: Actor,
        booking_id: UUID,
        new_status: Union[BookingStatus, str],
    ) -> Booking:
        """
        Move a booking along one edge of the state machine.

        Either side may cancel an active booking; only the provider may
        confirm or complete.

        Raises:
            NotFoundException: Booking does not exist
            NotAuthorizedException: Actor is not a party, or lacks the role
            InvalidTransitionException: Not a direct successor of the current status
        """
        booking = self._get_booking(booking_id)
        side = self._require_side(actor, booking, "update this booking")

        try:
            target = BookingStatus(new_status)
        except ValueError:
            raise InvalidTransitionException(booking.status.value, str(new_status)) from None

        previous = booking.status
        validate_transition(previous, target)

        if target in PROVIDER_ONLY_TARGETS and side != PROVIDER_SIDE:
            raise NotAuthorizedException(
                "update this booking", f"only the provider can mark it {target.value}"
            )

        # Compare-and-set so two concurrent transitions cannot both apply
        result = self.session.execute(
            update(Booking)
            .where(Booking.id == booking.id, Booking.status == previous)
            .values(status=target, updated_at=datetime.now(timezone.utc))
        )
        if result.rowcount == 0:
            self.session.rollback()
            self.session.refresh(booking)
            logger.warning(
                "Concurrent status change detected",
                extra={"extra_fields": {"booking_id": str(booking.id)}},
            )
            raise InvalidTransitionException(booking.status.value, target.value)
        self.session.commit()
        self.session.refresh(booking)

        logger.info(
            "Booking status changed",
            extra={"extra_fields": {
                "booking_id": str(booking.id),
                "from_status": previous.value,
                "to_status": target.value,
                "actor_side": side,
            }},
        )

        recipient = (
            booking.customer_id if side == PROVIDER_SIDE
            else self._provider_owner_id(booking.provider_id)
        )
        self._notify(BookingEvent.STATUS_CHANGED, booking, recipient, previous)
        return booking

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def add_review(
        self,
        actor: Actor,
        booking_id: UUID,
        rating: int,
        comment: Optional[str] = None,
    ) -> ReviewResult:
        """
        Attach the customer's one-time rating to a completed booking.

        The review write is the durable fact; the provider aggregate is
        refreshed afterwards with retries, and a refresh that still fails is
        logged without undoing the review.

        Raises:
            NotFoundException: Booking does not exist
            NotAuthorizedException: Actor is not the booking's customer
            NotCompletedException: Booking is not completed
            AlreadyReviewedException: Booking already has a rating
        """
        booking = self._get_booking(booking_id)
        if actor.user_id != booking.customer_id:
            raise NotAuthorizedException("review this booking")

        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationException("Rating must be between 1 and 5", errors={"rating": rating})

        if booking.status != BookingStatus.COMPLETED:
            raise NotCompletedException(booking.status.value)
        if booking.is_reviewed:
            raise AlreadyReviewedException(booking.id)

        result = self.session.execute(
            update(Booking)
            .where(
                Booking.id == booking.id,
                Booking.status == BookingStatus.COMPLETED,
                Booking.rating.is_(None),
            )
            .values(
                rating=rating,
                review=(comment or "").strip() or None,
                reviewed_at=datetime.now(timezone.utc),
            )
        )
        if result.rowcount == 0:
            self.session.rollback()
            raise AlreadyReviewedException(booking.id)
        self.session.commit()
        self.session.refresh(booking)

        logger.info(
            "Review stored",
            extra={"extra_fields": {
                "booking_id": str(booking.id),
                "provider_id": str(booking.provider_id),
                "rating": rating,
            }},
        )

        summary = self.refresh_provider_rating(booking.provider_id)
        self._notify(BookingEvent.REVIEWED, booking, self._provider_owner_id(booking.provider_id))
        return ReviewResult(booking=booking, rating_summary=summary)

    def refresh_provider_rating(self, provider_id: UUID) -> Optional[RatingSummary]:
        """Recompute the provider aggregate, retrying transient store failures."""
        retrying = Retrying(
            stop=stop_after_attempt(settings.rating_recompute_attempts),
            wait=wait_exponential(multiplier=settings.rating_recompute_backoff_seconds, max=10),
            retry=retry_if_exception_type(RatingRecomputeError),
            reraise=True,
        )
        try:
            return retrying(self.ratings.recompute, provider_id)
        except RatingRecomputeError as e:
            logger.error(
                f"Provider rating left stale: {e.cause}",
                extra={"extra_fields": {
                    "provider_id": str(provider_id),
                    "attempts": settings.rating_recompute_attempts,
                }},
            )
            return None
