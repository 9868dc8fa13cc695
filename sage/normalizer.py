"""
Event normalizer.

Calendar summaries follow the convention "COURSE - HOLDER - MODE", e.g.
"CISC123 - Dr. Smith - Virtual". normalize() splits that convention into
structured fields; summaries with fewer segments degrade to empty strings.
"""

from typing import List

from .models import Event, LocationType, RawEvent, parse_instant

SUMMARY_DELIMITER = "-"
NONE_TEXT = "NONE"


def split_summary(summary: str) -> List[str]:
    """Split a summary into exactly three stripped segments."""
    parts = (summary or "").split(SUMMARY_DELIMITER)
    segments = [p.strip() for p in parts[:3]]
    return segments + [""] * (3 - len(segments))


def location_type_of(mode: str) -> LocationType:
    if "virtual" in mode.lower():
        return LocationType.VIRTUAL
    return LocationType.IN_PERSON


def format_instant(value: str) -> str:
    """
    Render an instant for display.

    "2024-12-12T09:00:00-05:00" -> "December 12, 09:00 AM UTC-05:00"
    "2024-12-12"                -> "December 12"
    ""                          -> "NONE"
    """
    if not value:
        return NONE_TEXT
    dt = parse_instant(value)
    if dt is None:
        return value
    text = f"{dt:%B} {dt.day}"
    if "T" not in value:
        return text
    text += f", {dt:%I:%M %p}"
    tz = dt.tzname()
    if tz:
        text += f" {tz}"
    return text


def normalize(raw: RawEvent) -> Event:
    """Convert a provider record into an Event. Never raises on short summaries."""
    summary = raw.summary or ""
    course_id, instructor, mode = split_summary(summary)
    start = raw.start.value
    return Event(
        event_id=raw.event_id,
        course_id=course_id,
        instructor=instructor,
        date=format_instant(start),
        start=start,
        end=raw.end.value,
        location=raw.location or "",
        location_type=location_type_of(mode),
        summary=summary,
        event_type=mode,
    )
