"""
Availability resolver - turns a provider's weekly hours and date exceptions
into the bookable start times for one service on one calendar date.

Pure computation over an already-loaded provider; no queries are issued.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterator, Optional, Union

from slotbook.lib.clock import calendar_day, format_minutes, minute_of_day, parse_hhmm
from slotbook.models.providers import Provider
from slotbook.services.exception_service import AvailabilityExceptionStore
from slotbook.services.working_hours_service import WorkingHoursCalendar


@dataclass(frozen=True)
class OpenWindow:
    """Effective opening window for a date, as minutes since midnight."""
    open_minute: int
    close_minute: int
    source: str  # "weekly" or "exception"

    @property
    def open(self) -> str:
        return format_minutes(self.open_minute)

    @property
    def close(self) -> str:
        return format_minutes(self.close_minute)


class AvailabilityResolver:
    """
    Resolves the open window and slot start times for a provider.

    An exception for the date is authoritative: unavailable means closed,
    custom hours replace the weekly hours side by side. Without an
    exception the weekday entry applies. No entry at all means closed.
    """

    @staticmethod
    def resolve_window(provider: Provider, day: Union[date, datetime]) -> Optional[OpenWindow]:
        """Return the effective open window for a date, or None when closed."""
        on = calendar_day(day)
        weekly = WorkingHoursCalendar.entry_for(provider, on)
        exception = AvailabilityExceptionStore.find_for_date(provider, on)

        if exception is not None:
            if not exception.is_available:
                return None
            open_time = exception.custom_open or (weekly.open_time if weekly else None)
            close_time = exception.custom_close or (weekly.close_time if weekly else None)
            source = "exception"
        else:
            if weekly is None or weekly.is_closed:
                return None
            open_time, close_time = weekly.open_time, weekly.close_time
            source = "weekly"

        if open_time is None or close_time is None:
            return None

        open_minute = parse_hhmm(open_time)
        close_minute = parse_hhmm(close_time)
        if close_minute < open_minute:
            return None
        return OpenWindow(open_minute, close_minute, source)

    @classmethod
    def resolve_slots(
        cls,
        provider: Provider,
        day: Union[date, datetime],
        service_duration: int,
    ) -> Iterator[str]:
        """
        Yield slot start times (HH:mm) for a service of the given duration.

        Slots step by the service duration from opening time; a slot that
        would run past closing is dropped, never truncated. The iterator is
        single-use, call again to recompute.
        """
        if service_duration <= 0:
            raise ValueError(f"Service duration must be positive, got {service_duration}")

        window = cls.resolve_window(provider, day)
        if window is None:
            return iter(())
        return cls._iter_starts(window, service_duration)

    @staticmethod
    def _iter_starts(window: OpenWindow, service_duration: int) -> Iterator[str]:
        start = window.open_minute
        while start + service_duration <= window.close_minute:
            yield format_minutes(start)
            start += service_duration

    @classmethod
    def is_bookable(cls, provider: Provider, scheduled_at: datetime, service_duration: int) -> bool:
        """Whether a wall-clock start time is exactly one of the resolved slots."""
        if scheduled_at.second or scheduled_at.microsecond:
            return False
        wanted = format_minutes(minute_of_day(scheduled_at))
        return any(
            slot == wanted
            for slot in cls.resolve_slots(provider, scheduled_at.date(), service_duration)
        )
