"""
Availability exception store - date-specific overrides of the weekly schedule.
"""
from datetime import date, datetime
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from slotbook.lib.clock import calendar_day, weekday_name
from slotbook.lib.logging import get_logger
from slotbook.models.providers import AvailabilityException, Provider
from slotbook.services.errors import NotFoundException, ScheduleValidationException
from slotbook.services.working_hours_service import WorkingHoursCalendar, validate_window

logger = get_logger(__name__)


class AvailabilityExceptionStore:
    """Keeps at most one exception per provider and calendar date."""

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def find_for_date(provider: Provider, day: Union[date, datetime]) -> Optional[AvailabilityException]:
        """Exception covering a calendar date; time of day is ignored."""
        wanted = calendar_day(day)
        for exception in provider.availability_exceptions:
            if calendar_day(exception.date) == wanted:
                return exception
        return None

    @staticmethod
    def list_for(provider: Provider) -> List[AvailabilityException]:
        return sorted(provider.availability_exceptions, key=lambda exception: exception.date)

    @staticmethod
    def _validate_custom_hours(
        provider: Provider,
        on: date,
        custom_open: Optional[str],
        custom_close: Optional[str],
    ) -> Tuple[Optional[str], Optional[str]]:
        """Validate custom hours as the window they will resolve to; returns the normalized given sides."""
        weekly = None
        if custom_open is None or custom_close is None:
            weekly = WorkingHoursCalendar.entry_for(provider, on)
            if weekly is None:
                raise ScheduleValidationException(
                    f"No working hours on {weekday_name(on)} to complete the custom hours",
                    field="custom_hours",
                    value={"open": custom_open, "close": custom_close},
                    on=on,
                )

        open_time, close_time = validate_window(
            custom_open if custom_open is not None else weekly.open_time,
            custom_close if custom_close is not None else weekly.close_time,
            "custom_hours",
            on,
        )
        return (
            open_time if custom_open is not None else None,
            close_time if custom_close is not None else None,
        )

    def upsert(
        self,
        provider: Provider,
        day: Union[date, datetime],
        is_available: bool,
        custom_open: Optional[str] = None,
        custom_close: Optional[str] = None,
    ) -> AvailabilityException:
        """
        Record an exception, replacing any existing one for the same date.

        Custom hours only apply to available days. A single custom side is
        completed from the weekday entry when slots are resolved, so it is
        validated against that entry here and rejected when there is none.

        Raises:
            ScheduleValidationException: On malformed or inverted custom hours
        """
        on = calendar_day(day)

        if not is_available:
            custom_open = custom_close = None
        elif custom_open is not None or custom_close is not None:
            custom_open, custom_close = self._validate_custom_hours(provider, on, custom_open, custom_close)

        exception = self.find_for_date(provider, on)
        replaced = exception is not None
        if exception is None:
            exception = AvailabilityException(date=on)
            provider.availability_exceptions.append(exception)

        exception.is_available = is_available
        exception.custom_open = custom_open
        exception.custom_close = custom_close

        self.session.commit()

        logger.info(
            "Availability exception replaced" if replaced else "Availability exception added",
            extra={"extra_fields": {
                "provider_id": str(provider.id),
                "date": on.isoformat(),
                "is_available": is_available,
            }},
        )
        return exception

    def remove(self, provider: Provider, exception_id: UUID) -> None:
        """
        Delete one of the provider's exceptions.

        Raises:
            NotFoundException: If the provider has no exception with this id
        """
        for exception in provider.availability_exceptions:
            if exception.id == exception_id:
                provider.availability_exceptions.remove(exception)
                self.session.commit()
                logger.info(
                    "Availability exception removed",
                    extra={"extra_fields": {
                        "provider_id": str(provider.id),
                        "date": exception.date.isoformat(),
                    }},
                )
                return
        raise NotFoundException("Availability exception", str(exception_id))
