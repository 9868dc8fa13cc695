"""
Data model for calendar events.

RawEvent is the provider record as fetched, with every optional field made
explicit. Event is the normalized record that gets persisted and paged.
FilterCriteria and PageViewState hold the per-invocation filter and the
per-session paging position.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


def parse_instant(value: str) -> Optional[datetime]:
    """Parse a provider date or date-time string; None if unparseable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class LocationType(Enum):
    """Where an event takes place."""
    IN_PERSON = "IP"
    VIRTUAL = "V"

    @property
    def label(self) -> str:
        return "Virtual" if self is LocationType.VIRTUAL else "In-Person"


@dataclass(frozen=True)
class EventTime:
    """A start or end instant; all-day events carry only ``date``."""
    date: Optional[str] = None
    date_time: Optional[str] = None

    @property
    def value(self) -> str:
        """The date-time when present, else the date, else empty."""
        return self.date_time or self.date or ""

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]]) -> "EventTime":
        if not isinstance(data, dict):
            return cls()
        return cls(date=data.get("date") or None, date_time=data.get("dateTime") or None)


@dataclass(frozen=True)
class RawEvent:
    """Calendar event as returned by the provider."""
    event_id: str
    summary: Optional[str] = None
    start: EventTime = field(default_factory=EventTime)
    end: EventTime = field(default_factory=EventTime)
    location: Optional[str] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "RawEvent":
        """Build from an item of the Google Calendar ``events.list`` response."""
        return cls(
            event_id=str(item.get("id") or ""),
            summary=item.get("summary"),
            start=EventTime.from_api(item.get("start")),
            end=EventTime.from_api(item.get("end")),
            location=item.get("location"),
        )


@dataclass
class Event:
    """
    Normalized calendar event.

    Attributes:
        event_id: Provider event id, unique key in the repository
        course_id: First summary segment, e.g. "CISC123"
        instructor: Second summary segment, the event holder
        date: Human-readable start, e.g. "December 12, 09:00 AM UTC-05:00"
        start: Start instant string, date-only for all-day events
        end: End instant string, date-only for all-day events
        location: Free-text location, possibly empty
        location_type: IP or V, derived from the third summary segment
        summary: Raw summary the fields were derived from
        event_type: Raw third summary segment
    """
    event_id: str
    course_id: str
    instructor: str
    date: str
    start: str
    end: str
    location: str
    location_type: LocationType
    summary: str = ""
    event_type: str = ""

    def start_datetime(self) -> Optional[datetime]:
        return parse_instant(self.start)

    def to_document(self) -> Dict[str, Any]:
        """Persisted form, keyed the way the events collection stores it."""
        return {
            "eventId": self.event_id,
            "courseID": self.course_id,
            "instructor": self.instructor,
            "date": self.date,
            "start": self.start,
            "end": self.end,
            "location": self.location,
            "locationType": self.location_type.value,
            "summary": self.summary,
            "eventType": self.event_type,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Event":
        return cls(
            event_id=doc["eventId"],
            course_id=doc.get("courseID", ""),
            instructor=doc.get("instructor", ""),
            date=doc.get("date", ""),
            start=doc.get("start", ""),
            end=doc.get("end", ""),
            location=doc.get("location", ""),
            location_type=LocationType(doc.get("locationType", "IP")),
            summary=doc.get("summary", ""),
            event_type=doc.get("eventType", ""),
        )


@dataclass(frozen=True)
class FilterCriteria:
    """
    Optional filters for one calendar invocation. Every criterion that is
    set must hold for an event to be kept.
    """
    class_name: Optional[str] = None
    location_type: Optional[LocationType] = None
    event_holder: Optional[str] = None
    event_date: Optional[Tuple[int, int]] = None  # (month, day)
    day_of_week: Optional[int] = None  # Sunday=0 .. Saturday=6

    @property
    def is_empty(self) -> bool:
        return (
            self.class_name is None
            and self.location_type is None
            and self.event_holder is None
            and self.event_date is None
            and self.day_of_week is None
        )


@dataclass
class PageViewState:
    """Paging position for one session."""
    total_items: int
    page_size: int = 3
    current_page_index: int = 0

    def __post_init__(self):
        if self.page_size <= 0:
            raise ValueError(f"page_size must be positive, got {self.page_size}")

    @property
    def page_count(self) -> int:
        return max(1, math.ceil(self.total_items / self.page_size))

    @property
    def is_first(self) -> bool:
        return self.current_page_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_page_index >= self.page_count - 1

    def previous(self) -> bool:
        """Move back one page. Returns False at the first page."""
        if self.is_first:
            return False
        self.current_page_index -= 1
        return True

    def next(self) -> bool:
        """Move forward one page. Returns False at the last page."""
        if self.is_last:
            return False
        self.current_page_index += 1
        return True
