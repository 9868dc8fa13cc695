"""
Fixed-size pagination of filtered events and the page payload shown to users.

The payload types are platform-neutral; the chat adapter turns them into
an embed and a row of buttons.
"""

import math
from dataclasses import dataclass, field
from typing import Generic, Iterator, List, Sequence, TypeVar

from .models import Event
from .normalizer import NONE_TEXT, format_instant

T = TypeVar("T")

EVENTS_PER_PAGE = 3

PREV_ID = "prev"
NEXT_ID = "next"
DONE_ID = "done"


class Pager(Generic[T]):
    """Splits an ordered sequence into pages of ``page_size`` items."""

    def __init__(self, items: Sequence[T], page_size: int = EVENTS_PER_PAGE):
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.items = list(items)
        self.page_size = page_size

    def __len__(self) -> int:
        return len(self.items)

    @property
    def page_count(self) -> int:
        """Number of pages; an empty sequence still has one (empty) page."""
        return max(1, math.ceil(len(self.items) / self.page_size))

    def page_of(self, index: int) -> List[T]:
        if not 0 <= index < self.page_count:
            raise IndexError(f"page {index} out of range 0..{self.page_count - 1}")
        start = index * self.page_size
        return self.items[start:start + self.page_size]

    def pages(self) -> Iterator[List[T]]:
        for index in range(self.page_count):
            yield self.page_of(index)


@dataclass(frozen=True)
class ButtonSpec:
    custom_id: str
    label: str
    style: str = "primary"  # primary | danger
    disabled: bool = False


@dataclass(frozen=True)
class PageField:
    name: str
    value: str


@dataclass
class RenderedPage:
    """An embed-like message body plus its navigation buttons."""
    title: str
    fields: List[PageField] = field(default_factory=list)
    buttons: List[ButtonSpec] = field(default_factory=list)
    color: str = "green"

    def without_buttons(self) -> "RenderedPage":
        return RenderedPage(title=self.title, fields=list(self.fields), color=self.color)


def navigation_buttons(index: int, page_count: int) -> List[ButtonSpec]:
    return [
        ButtonSpec(PREV_ID, "Previous", "primary", disabled=index <= 0),
        ButtonSpec(NEXT_ID, "Next", "primary", disabled=index >= page_count - 1),
        ButtonSpec(DONE_ID, "Done", "danger"),
    ]


def event_field(number: int, event: Event) -> PageField:
    value = (
        f"**Event Holder:** {event.instructor or NONE_TEXT}\n"
        f"**Start:** {format_instant(event.start)}\n"
        f"**End:** {format_instant(event.end)}\n"
        f"**Location:** {event.location or NONE_TEXT}\n"
        f"**Event Type:** {event.event_type or event.location_type.label}"
    )
    return PageField(name=f"Event {number}: {event.course_id or f'Event {number}'}", value=value)


def render_page(pager: Pager, index: int, heading: str = "", strip: bool = False) -> RenderedPage:
    """Render page ``index``; ``strip`` drops the navigation buttons."""
    title = "Upcoming Events"
    if heading:
        title += f" {heading}"
    title += f" (Page {index + 1} of {pager.page_count})"

    offset = index * pager.page_size
    fields = [
        event_field(offset + i + 1, event)
        for i, event in enumerate(pager.page_of(index))
    ]
    buttons = [] if strip else navigation_buttons(index, pager.page_count)
    return RenderedPage(title=title, fields=fields, buttons=buttons)
