"""
Provider API routes - profiles, schedules, availability, and reviews.

Routes under ``/providers/me`` act on the caller's own profile and are
declared before the ``/providers/{provider_id}`` routes.
"""
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from slotbook.api.dependencies import get_current_actor, get_db, get_provider_catalog
from slotbook.models.providers import ProviderCategory, Weekday
from slotbook.models.users import Actor
from slotbook.services.availability_service import AvailabilityResolver
from slotbook.services.errors import NotFoundException
from slotbook.services.exception_service import AvailabilityExceptionStore
from slotbook.services.provider_service import ProviderCatalog
from slotbook.services.rating_service import RatingAggregator
from slotbook.services.working_hours_service import WorkingHoursCalendar


# Pydantic schemas
class WorkingHoursEntry(BaseModel):
    day: Weekday
    open: str = Field(..., description="Opening time, HH:mm")
    close: str = Field(..., description="Closing time, HH:mm")
    is_closed: bool = False


class WorkingHoursResponse(BaseModel):
    day: Weekday
    open_time: str
    close_time: str
    is_closed: bool

    model_config = {"from_attributes": True}


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    duration_minutes: int = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)
    description: Optional[str] = Field(None, max_length=1000)


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    duration_minutes: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = Field(None, max_length=1000)


class ServiceResponse(BaseModel):
    id: UUID
    name: str
    duration_minutes: int
    price: float
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class ProviderCreate(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=255)
    category: ProviderCategory
    subcategory: Optional[str] = Field(None, max_length=100)
    description: str = Field("", max_length=2000)
    timezone: Optional[str] = Field(None, description="IANA timezone, defaults to the server setting")
    services: List[ServiceCreate] = Field(default_factory=list)
    working_hours: List[WorkingHoursEntry] = Field(default_factory=list)


class ProviderUpdate(BaseModel):
    business_name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[ProviderCategory] = None
    subcategory: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    timezone: Optional[str] = Field(None, description="IANA timezone")


class ProviderResponse(BaseModel):
    id: UUID
    user_id: UUID
    business_name: str
    category: ProviderCategory
    subcategory: Optional[str] = None
    description: str
    timezone: str
    is_verified: bool
    rating: float
    total_ratings: int
    services: List[ServiceResponse]
    working_hours: List[WorkingHoursResponse]

    model_config = {"from_attributes": True}


class ExceptionUpsert(BaseModel):
    date: date_type
    is_available: bool
    custom_open: Optional[str] = Field(None, description="HH:mm, only for available days")
    custom_close: Optional[str] = Field(None, description="HH:mm, only for available days")


class ExceptionResponse(BaseModel):
    id: UUID
    date: date_type
    is_available: bool
    custom_open: Optional[str] = None
    custom_close: Optional[str] = None

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    provider_id: UUID
    service_id: UUID
    date: date_type
    duration_minutes: int
    is_open: bool
    open: Optional[str] = None
    close: Optional[str] = None
    source: Optional[str] = None
    slots: List[str]


class ReviewResponse(BaseModel):
    booking_id: UUID
    customer_id: UUID
    rating: int
    comment: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# Router
router = APIRouter(prefix="/providers", tags=["providers"])


@router.post("", response_model=ProviderResponse, status_code=status.HTTP_201_CREATED)
def create_provider(
    body: ProviderCreate,
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    """Create the caller's provider profile."""
    return catalog.create(
        actor,
        business_name=body.business_name,
        category=body.category,
        description=body.description,
        timezone=body.timezone,
        subcategory=body.subcategory,
        services=[service.model_dump() for service in body.services],
        working_hours=[entry.model_dump() for entry in body.working_hours],
    )


@router.get("/me", response_model=ProviderResponse)
def get_my_provider(
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    return catalog.get_owned(actor)


@router.put("/me", response_model=ProviderResponse)
def update_my_provider(
    body: ProviderUpdate,
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    """Edit the caller's business profile."""
    return catalog.update_profile(actor, **body.model_dump())


@router.put("/me/working-hours", response_model=List[WorkingHoursResponse])
def replace_working_hours(
    body: List[WorkingHoursEntry],
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
    db: Session = Depends(get_db),
):
    """Replace the whole weekly schedule; omitted weekdays become closed."""
    provider = catalog.get_owned(actor)
    return WorkingHoursCalendar(db).replace(provider, [entry.model_dump() for entry in body])


@router.get("/me/availability-exceptions", response_model=List[ExceptionResponse])
def list_availability_exceptions(
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    return AvailabilityExceptionStore.list_for(catalog.get_owned(actor))


@router.post("/me/availability-exceptions", response_model=ExceptionResponse)
def upsert_availability_exception(
    body: ExceptionUpsert,
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
    db: Session = Depends(get_db),
):
    """Add an exception for a date, replacing any existing one for that date."""
    provider = catalog.get_owned(actor)
    return AvailabilityExceptionStore(db).upsert(
        provider,
        body.date,
        body.is_available,
        custom_open=body.custom_open,
        custom_close=body.custom_close,
    )


@router.delete("/me/availability-exceptions/{exception_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability_exception(
    exception_id: UUID,
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
    db: Session = Depends(get_db),
):
    AvailabilityExceptionStore(db).remove(catalog.get_owned(actor), exception_id)


@router.post("/me/services", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def add_service(
    body: ServiceCreate,
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    return catalog.add_service(catalog.get_owned(actor), **body.model_dump())


@router.put("/me/services/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: UUID,
    body: ServiceUpdate,
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    return catalog.update_service(catalog.get_owned(actor), service_id, **body.model_dump())


@router.delete("/me/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_service(
    service_id: UUID,
    actor: Actor = Depends(get_current_actor),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    """Remove a service; bookings already made keep their service snapshot."""
    catalog.remove_service(catalog.get_owned(actor), service_id)


@router.get("/{provider_id}", response_model=ProviderResponse)
def get_provider(
    provider_id: UUID,
    catalog: ProviderCatalog = Depends(get_provider_catalog),
):
    return catalog.get(provider_id)


@router.get("/{provider_id}/availability", response_model=AvailabilityResponse)
def get_availability(
    provider_id: UUID,
    service_id: UUID = Query(..., description="Service whose duration sizes the slots"),
    on: date_type = Query(..., alias="date", description="Calendar date, YYYY-MM-DD"),
    catalog: ProviderCatalog = Depends(get_provider_catalog),
) -> AvailabilityResponse:
    """
    Bookable start times for one service on one date.

    Slots are computed from the schedule alone; starts already held by
    active bookings are still listed and rejected at booking time.
    """
    provider = catalog.get(provider_id)
    service = provider.get_service(service_id)
    if service is None:
        raise NotFoundException("Service", str(service_id))

    window = AvailabilityResolver.resolve_window(provider, on)
    return AvailabilityResponse(
        provider_id=provider.id,
        service_id=service.id,
        date=on,
        duration_minutes=service.duration_minutes,
        is_open=window is not None,
        open=window.open if window else None,
        close=window.close if window else None,
        source=window.source if window else None,
        slots=list(AvailabilityResolver.resolve_slots(provider, on, service.duration_minutes)),
    )


@router.get("/{provider_id}/reviews", response_model=List[ReviewResponse])
def list_provider_reviews(
    provider_id: UUID,
    catalog: ProviderCatalog = Depends(get_provider_catalog),
    db: Session = Depends(get_db),
):
    """Reviewed bookings for a provider, newest review first."""
    catalog.get(provider_id)
    return RatingAggregator(db).list_reviews(provider_id)
