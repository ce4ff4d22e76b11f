"""
Working hours calendar - a provider's recurring weekly schedule.

One entry per weekday. Writes replace the whole week: weekdays missing
from the submitted schedule are removed and therefore treated as closed.
"""
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from slotbook.lib.clock import normalize_hhmm, parse_hhmm, weekday_name
from slotbook.lib.logging import get_logger
from slotbook.models.providers import Provider, WorkingHours, Weekday
from slotbook.services.errors import ScheduleValidationException

logger = get_logger(__name__)


def validate_clock(value: Any, field: str, on: Optional[date] = None) -> str:
    """Return the zero-padded form of an HH:mm value or raise a validation error."""
    try:
        return normalize_hhmm(value)
    except (ValueError, AttributeError, TypeError):
        raise ScheduleValidationException(
            f"{field} must be in HH:mm format", field=field, value=value, on=on
        ) from None


def validate_window(
    open_time: Any,
    close_time: Any,
    field: str,
    on: Optional[date] = None,
) -> Tuple[str, str]:
    """
    Validate an opening window.

    Overnight windows are not supported, so ``close`` may not precede
    ``open``. An equal pair is a valid, empty window.
    """
    open_value = validate_clock(open_time, f"{field}.open", on)
    close_value = validate_clock(close_time, f"{field}.close", on)
    if parse_hhmm(close_value) < parse_hhmm(open_value):
        raise ScheduleValidationException(
            f"{field} closes ({close_value}) before it opens ({open_value})",
            field=field,
            value={"open": open_value, "close": close_value},
            on=on,
        )
    return open_value, close_value


class WorkingHoursCalendar:
    """Reads and replaces a provider's weekly working hours."""

    def __init__(self, session: Session):
        self.session = session

    @staticmethod
    def entry_for(provider: Provider, day: date) -> Optional[WorkingHours]:
        """Weekly entry that applies to a calendar date, if the provider defined one."""
        wanted = Weekday(weekday_name(day))
        for entry in provider.working_hours:
            if Weekday(entry.day) == wanted:
                return entry
        return None

    @staticmethod
    def _parse_entries(entries: Iterable[Mapping[str, Any]]) -> Dict[Weekday, Dict[str, Any]]:
        parsed: Dict[Weekday, Dict[str, Any]] = {}
        for raw in entries:
            day = raw.get("day")
            try:
                if not isinstance(day, Weekday):
                    day = Weekday(str(day).strip().lower())
            except ValueError:
                raise ScheduleValidationException(
                    "Invalid day", field="working_hours.day", value=raw.get("day")
                ) from None

            if day in parsed:
                raise ScheduleValidationException(
                    f"Duplicate working hours for {day.value}",
                    field="working_hours.day",
                    value=day.value,
                )

            is_closed = bool(raw.get("is_closed", False))
            field = f"working_hours.{day.value}"
            if is_closed:
                # Closed days still carry well-formed times
                open_time = validate_clock(raw.get("open"), f"{field}.open")
                close_time = validate_clock(raw.get("close"), f"{field}.close")
            else:
                open_time, close_time = validate_window(raw.get("open"), raw.get("close"), field)

            parsed[day] = {"open_time": open_time, "close_time": close_time, "is_closed": is_closed}
        return parsed

    def replace(self, provider: Provider, entries: Iterable[Mapping[str, Any]]) -> List[WorkingHours]:
        """
        Replace the provider's weekly schedule.

        Args:
            provider: Provider being edited
            entries: Mappings with ``day``, ``open``, ``close`` and optional ``is_closed``

        Returns:
            The provider's working hours after the update

        Raises:
            ScheduleValidationException: On a malformed or duplicated entry
        """
        parsed = self._parse_entries(entries)

        # Update rows in place so the (provider, day) unique key never collides mid-flush
        existing = {entry.day: entry for entry in provider.working_hours}
        for day, entry in existing.items():
            if day not in parsed:
                provider.working_hours.remove(entry)

        for day, values in parsed.items():
            entry = existing.get(day)
            if entry is None:
                provider.working_hours.append(WorkingHours(day=day, **values))
            else:
                entry.open_time = values["open_time"]
                entry.close_time = values["close_time"]
                entry.is_closed = values["is_closed"]

        self.session.commit()

        logger.info(
            "Working hours updated",
            extra={"extra_fields": {
                "provider_id": str(provider.id),
                "days": sorted(day.value for day in parsed),
            }},
        )
        return sorted(provider.working_hours, key=lambda entry: list(Weekday).index(entry.day))
