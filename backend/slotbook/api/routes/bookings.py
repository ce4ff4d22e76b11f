"""
Booking API routes.

Thin adapter over ``BookingLifecycle``: every handler resolves the acting
user from the bearer token and passes it explicitly to the engine.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from slotbook.api.dependencies import get_booking_lifecycle, get_current_actor
from slotbook.models.bookings import BookingStatus
from slotbook.models.users import Actor
from slotbook.services.booking_service import BookingLifecycle


# Pydantic schemas
class BookingCreate(BaseModel):
    provider_id: UUID
    service_id: UUID
    scheduled_at: datetime = Field(
        ...,
        description="Start time; naive values are read in the provider's timezone",
    )
    notes: Optional[str] = Field(None, max_length=1000)


class StatusUpdate(BaseModel):
    status: str = Field(..., description="pending, confirmed, completed or cancelled")


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, min_length=10, max_length=500)

    model_config = {"str_strip_whitespace": True}


class BookingResponse(BaseModel):
    id: UUID
    customer_id: UUID
    provider_id: UUID
    service_id: Optional[UUID] = None
    service_name: str
    service_duration_minutes: int
    service_price: float
    status: BookingStatus
    scheduled_at: datetime
    notes: Optional[str] = None
    rating: Optional[int] = None
    review: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RatingSummaryResponse(BaseModel):
    provider_id: UUID
    rating: float
    total_ratings: int

    model_config = {"from_attributes": True}


class ReviewResponse(BaseModel):
    booking: BookingResponse
    rating_summary: Optional[RatingSummaryResponse] = None

    model_config = {"from_attributes": True}


# Router
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    body: BookingCreate,
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """
    Book one of a provider's slots.

    Returns 409 when the time is not a bookable slot or is already held
    by an active booking.
    """
    return lifecycle.create(
        actor,
        provider_id=body.provider_id,
        service_id=body.service_id,
        scheduled_at=body.scheduled_at,
        notes=body.notes,
    )


@router.get("/customer", response_model=List[BookingResponse])
def list_customer_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    start: Optional[datetime] = Query(None, description="Earliest start time, inclusive"),
    end: Optional[datetime] = Query(None, description="Latest start time, exclusive"),
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    return lifecycle.list_for_customer(actor, status=status_filter, start=start, end=end)


@router.get("/provider", response_model=List[BookingResponse])
def list_provider_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    start: Optional[datetime] = Query(None, description="Earliest start time, inclusive"),
    end: Optional[datetime] = Query(None, description="Latest start time, exclusive"),
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    return lifecycle.list_for_provider(actor, status=status_filter, start=start, end=end)


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    return lifecycle.get(actor, booking_id)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
def change_booking_status(
    booking_id: UUID,
    body: StatusUpdate,
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    return lifecycle.change_status(actor, booking_id, body.status)


@router.post("/{booking_id}/review", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
def add_review(
    booking_id: UUID,
    body: ReviewCreate,
    actor: Actor = Depends(get_current_actor),
    lifecycle: BookingLifecycle = Depends(get_booking_lifecycle),
):
    """Rate a completed booking. The provider's aggregate is refreshed afterwards."""
    return lifecycle.add_review(actor, booking_id, body.rating, body.comment)
