"""
Command option validation and event filtering.

parse_criteria() validates the raw option strings at the command boundary
and produces FilterCriteria; filter_events() applies them to a fetched
batch. Each predicate is vacuously true when its criterion is unset.
"""

import calendar
import re
from typing import Callable, Iterable, List, Optional

from .errors import ValidationError
from .models import Event, FilterCriteria, LocationType

MONTHS = [
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
]

# Sunday=0 .. Saturday=6
DAYS_OF_WEEK = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}

CLASS_NAME_RE = re.compile(r"^cisc\d{3}$", re.IGNORECASE)
EVENT_DATE_RE = re.compile(r"^(" + "|".join(MONTHS) + r") (\d{1,2})$", re.IGNORECASE)

CLASS_NAME_ERROR = (
    'Invalid class name format. Please enter a class name starting with "cisc" '
    'followed by exactly three digits (e.g., "cisc123").'
)
LOCATION_TYPE_ERROR = (
    'Invalid location type. Please enter "IP" for In-Person or "V" for Virtual events.'
)
EVENT_DATE_ERROR = (
    'Invalid date format. Please enter a date starting with "month" followed by '
    '1-2 digits (e.g., "december 9").'
)
DAY_OF_WEEK_ERROR = (
    'Invalid day of the week. Please enter a day name (e.g., "Monday").'
)


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _parse_event_date(value: str):
    match = EVENT_DATE_RE.match(value.strip())
    if not match:
        raise ValidationError(EVENT_DATE_ERROR)
    month = MONTHS.index(match.group(1).lower()) + 1
    day = int(match.group(2))
    # Leap year so that "february 29" is accepted
    if not 1 <= day <= calendar.monthrange(2000, month)[1]:
        raise ValidationError(EVENT_DATE_ERROR)
    return month, day


def parse_criteria(
    classname: Optional[str] = None,
    locationtype: Optional[str] = None,
    eventholder: Optional[str] = None,
    eventdate: Optional[str] = None,
    dayofweek: Optional[str] = None,
) -> FilterCriteria:
    """
    Validate command options and build FilterCriteria.

    Raises:
        ValidationError: With a user-facing message for the first bad option
    """
    class_name = None
    if not _blank(classname):
        if not CLASS_NAME_RE.match(classname.strip()):
            raise ValidationError(CLASS_NAME_ERROR)
        class_name = classname.strip().lower()

    location_type = None
    if not _blank(locationtype):
        try:
            location_type = LocationType(locationtype.strip().upper())
        except ValueError:
            raise ValidationError(LOCATION_TYPE_ERROR) from None

    event_date = None
    if not _blank(eventdate):
        event_date = _parse_event_date(eventdate)

    day_of_week = None
    if not _blank(dayofweek):
        day_of_week = DAYS_OF_WEEK.get(dayofweek.strip().lower())
        if day_of_week is None:
            raise ValidationError(DAY_OF_WEEK_ERROR)

    return FilterCriteria(
        class_name=class_name,
        location_type=location_type,
        event_holder=None if _blank(eventholder) else eventholder.strip(),
        event_date=event_date,
        day_of_week=day_of_week,
    )


def _normalize_course(value: str) -> str:
    return "".join(value.split()).lower()


def weekday_index(event: Event) -> Optional[int]:
    """Weekday of the event start, Sunday=0 .. Saturday=6."""
    start = event.start_datetime()
    if start is None:
        return None
    return (start.weekday() + 1) % 7


def predicates(criteria: FilterCriteria) -> List[Callable[[Event], bool]]:
    """One predicate per criterion that is set."""
    checks: List[Callable[[Event], bool]] = []

    if criteria.class_name is not None:
        wanted = _normalize_course(criteria.class_name)
        checks.append(lambda e: _normalize_course(e.course_id) == wanted)

    if criteria.location_type is not None:
        checks.append(lambda e: e.location_type is criteria.location_type)

    if criteria.event_holder is not None:
        holder = criteria.event_holder.lower()
        checks.append(lambda e: holder in e.instructor.lower())

    if criteria.event_date is not None:
        month, day = criteria.event_date

        def on_date(e: Event) -> bool:
            start = e.start_datetime()
            return start is not None and (start.month, start.day) == (month, day)

        checks.append(on_date)

    if criteria.day_of_week is not None:
        checks.append(lambda e: weekday_index(e) == criteria.day_of_week)

    return checks


def filter_events(events: Iterable[Event], criteria: FilterCriteria) -> List[Event]:
    """Keep the events matching every criterion, in input order."""
    checks = predicates(criteria)
    return [e for e in events if all(check(e) for check in checks)]


def describe(criteria: FilterCriteria) -> str:
    """Heading fragment such as "for cisc123 (In-Person)"."""
    parts = []
    if criteria.class_name:
        parts.append(f"for {criteria.class_name}")
    if criteria.location_type is not None:
        parts.append(f"({criteria.location_type.label})")
    return " ".join(parts)
