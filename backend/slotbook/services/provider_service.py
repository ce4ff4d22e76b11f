"""
Provider catalog - provider profiles and the services they offer.

Service durations and prices are validated here; bookings copy them at
creation, so editing or removing a service never touches past bookings.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from slotbook.lib.clock import resolve_zone
from slotbook.lib.logging import get_logger
from slotbook.lib.settings import settings
from slotbook.models.providers import Provider, ProviderCategory, ProviderService
from slotbook.models.users import Actor, User, UserRole
from slotbook.services.errors import (
    NotFoundException,
    ProviderExistsException,
    ValidationException,
)
from slotbook.services.working_hours_service import WorkingHoursCalendar

logger = get_logger(__name__)


def _validate_duration(duration: Any) -> int:
    if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
        raise ValidationException(
            "Duration must be a positive number of minutes",
            errors={"duration_minutes": duration},
        )
    return duration


def _validate_price(price: Any) -> Decimal:
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise ValidationException("Price must be a number", errors={"price": price}) from None
    if not value.is_finite() or value < 0:
        raise ValidationException("Price must not be negative", errors={"price": price})
    return value


def _validate_business_name(name: Optional[str]) -> str:
    if not name or not name.strip():
        raise ValidationException("Business name is required", errors={"business_name": name})
    return name.strip()


def _validate_category(category: Any) -> ProviderCategory:
    try:
        return ProviderCategory(category)
    except ValueError:
        raise ValidationException("Invalid category", errors={"category": category}) from None


def _validate_timezone(zone: str) -> str:
    try:
        resolve_zone(zone)
    except ValueError as e:
        raise ValidationException(str(e), errors={"timezone": zone}) from None
    return zone


class ProviderCatalog:
    """Creates provider profiles and manages their service list."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, provider_id: UUID) -> Provider:
        provider = self.session.get(Provider, provider_id)
        if provider is None:
            raise NotFoundException("Service provider", str(provider_id))
        return provider

    def get_owned(self, actor: Actor) -> Provider:
        """The provider profile belonging to the acting user."""
        provider = self.session.execute(
            select(Provider).where(Provider.user_id == actor.user_id)
        ).scalar_one_or_none()
        if provider is None:
            raise NotFoundException("Provider profile")
        return provider

    def create(
        self,
        actor: Actor,
        business_name: str,
        category: ProviderCategory,
        description: str = "",
        timezone: Optional[str] = None,
        subcategory: Optional[str] = None,
        services: Iterable[Mapping[str, Any]] = (),
        working_hours: Iterable[Mapping[str, Any]] = (),
    ) -> Provider:
        """
        Create the acting user's provider profile and promote them to provider.

        Raises:
            ProviderExistsException: The user already owns a profile
            ValidationException: Bad timezone, service, or working hours
        """
        existing = self.session.execute(
            select(Provider.id).where(Provider.user_id == actor.user_id)
        ).scalar_one_or_none()
        if existing is not None:
            raise ProviderExistsException(actor.user_id)

        provider = Provider(
            user_id=actor.user_id,
            business_name=_validate_business_name(business_name),
            category=_validate_category(category),
            timezone=_validate_timezone(timezone or settings.default_timezone),
            subcategory=subcategory,
            description=(description or "").strip(),
            rating=0.0,
            total_ratings=0,
        )
        for raw in services:
            provider.services.append(self._build_service(raw))
        self.session.add(provider)

        user = self.session.get(User, actor.user_id)
        if user is not None and user.role == UserRole.CUSTOMER:
            user.role = UserRole.PROVIDER

        # Commits the profile together with its weekly schedule
        WorkingHoursCalendar(self.session).replace(provider, working_hours)

        logger.info(
            "Provider profile created",
            extra={"extra_fields": {
                "provider_id": str(provider.id),
                "user_id": str(actor.user_id),
                "category": provider.category.value,
            }},
        )
        return provider

    def update_profile(
        self,
        actor: Actor,
        business_name: Optional[str] = None,
        category: Optional[ProviderCategory] = None,
        subcategory: Optional[str] = None,
        description: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> Provider:
        """
        Edit the acting user's profile; omitted fields are left alone.

        Existing bookings keep their wall-clock start when the timezone changes.

        Raises:
            NotFoundException: The user has no provider profile
            ValidationException: Blank name, unknown category or timezone
        """
        provider = self.get_owned(actor)
        changed = []

        if business_name is not None:
            provider.business_name = _validate_business_name(business_name)
            changed.append("business_name")
        if category is not None:
            provider.category = _validate_category(category)
            changed.append("category")
        if subcategory is not None:
            provider.subcategory = subcategory.strip() or None
            changed.append("subcategory")
        if description is not None:
            provider.description = description.strip()
            changed.append("description")
        if timezone is not None:
            provider.timezone = _validate_timezone(timezone)
            changed.append("timezone")

        self.session.commit()
        logger.info(
            "Provider profile updated",
            extra={"extra_fields": {"provider_id": str(provider.id), "fields": changed}},
        )
        return provider

    @staticmethod
    def _build_service(raw: Mapping[str, Any]) -> ProviderService:
        name = (raw.get("name") or "").strip()
        if not name:
            raise ValidationException("Service name is required", errors={"name": raw.get("name")})
        return ProviderService(
            name=name,
            duration_minutes=_validate_duration(raw.get("duration_minutes")),
            price=_validate_price(raw.get("price")),
            description=raw.get("description"),
        )

    def add_service(self, provider: Provider, **fields) -> ProviderService:
        service = self._build_service(fields)
        provider.services.append(service)
        self.session.commit()
        logger.info(
            "Service added",
            extra={"extra_fields": {"provider_id": str(provider.id), "service_id": str(service.id)}},
        )
        return service

    def update_service(
        self,
        provider: Provider,
        service_id: UUID,
        name: Optional[str] = None,
        duration_minutes: Optional[int] = None,
        price: Optional[Any] = None,
        description: Optional[str] = None,
    ) -> ProviderService:
        """Update the given fields of one service; omitted fields are left alone."""
        service = provider.get_service(service_id)
        if service is None:
            raise NotFoundException("Service", str(service_id))

        if name is not None:
            if not name.strip():
                raise ValidationException("Service name is required", errors={"name": name})
            service.name = name.strip()
        if duration_minutes is not None:
            service.duration_minutes = _validate_duration(duration_minutes)
        if price is not None:
            service.price = _validate_price(price)
        if description is not None:
            service.description = description

        self.session.commit()
        logger.info(
            "Service updated",
            extra={"extra_fields": {"provider_id": str(provider.id), "service_id": str(service.id)}},
        )
        return service

    def remove_service(self, provider: Provider, service_id: UUID) -> None:
        service = provider.get_service(service_id)
        if service is None:
            raise NotFoundException("Service", str(service_id))
        provider.services.remove(service)
        self.session.commit()
        logger.info(
            "Service removed",
            extra={"extra_fields": {"provider_id": str(provider.id), "service_id": str(service_id)}},
        )
