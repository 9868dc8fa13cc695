"""
Pytest fixtures for SAGE testing.

Provides:
- In-memory stand-ins for the chat client (context, DM channel, message, button press)
- Stand-ins for the credential store and calendar provider
- Raw event factories and a temporary JSON event repository
"""

import asyncio
from typing import List, Optional

import pytest

from sage.adapters.base import CommandContext, ComponentInteraction, MessageChannel, PageMessage
from sage.errors import DeliveryError
from sage.models import EventTime, RawEvent
from sage.pager import RenderedPage
from sage.repository import EventRepository, JsonEventCollection, UserEventCache


# =============================================================================
# CHAT CLIENT FAKES
# =============================================================================

class FakeInteraction(ComponentInteraction):
    """A recorded button press."""

    def __init__(self, custom_id: str):
        self._custom_id = custom_id
        self.acknowledged = False
        self.replies: List[str] = []

    @property
    def custom_id(self) -> str:
        return self._custom_id

    async def acknowledge(self):
        self.acknowledged = True

    async def reply(self, text: str):
        self.replies.append(text)


class FakeMessage(PageMessage):
    """Records every version of the message body."""

    def __init__(self, page: RenderedPage, edit_delay: float = 0.0):
        self.pages: List[RenderedPage] = [page]
        self.edit_delay = edit_delay
        self.edits = 0
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def current(self) -> RenderedPage:
        return self.pages[-1]

    @property
    def stripped(self) -> bool:
        return not self.current.buttons

    async def edit(self, page: RenderedPage):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.edit_delay:
                await asyncio.sleep(self.edit_delay)
            self.pages.append(page)
            self.edits += 1
        finally:
            self.in_flight -= 1

    async def strip(self):
        self.pages.append(self.current.without_buttons())


class FakeChannel(MessageChannel):
    """A DM channel holding the paged messages sent to it."""

    def __init__(self, fail: bool = False, edit_delay: float = 0.0):
        self.fail = fail
        self.edit_delay = edit_delay
        self.messages: List[FakeMessage] = []
        self.sink = None

    async def send_page(self, page, on_interaction):
        if self.fail:
            raise DeliveryError("Cannot send messages to this user")
        message = FakeMessage(page, edit_delay=self.edit_delay)
        self.messages.append(message)
        self.sink = on_interaction
        return message

    @property
    def message(self) -> FakeMessage:
        return self.messages[-1]

    def press(self, custom_id: str) -> FakeInteraction:
        interaction = FakeInteraction(custom_id)
        interaction.accepted = self.sink(interaction)
        return interaction

    async def wait_for_message(self, timeout: float = 1.0):
        async def _wait():
            while not self.messages:
                await asyncio.sleep(0)
        await asyncio.wait_for(_wait(), timeout)


async def settle(condition=None, timeout: float = 1.0):
    """Yield to the loop until ``condition()`` holds (or a few rounds if None)."""
    async def _wait():
        if condition is None:
            for _ in range(20):
                await asyncio.sleep(0)
            return
        while not condition():
            await asyncio.sleep(0.001)
    await asyncio.wait_for(_wait(), timeout)


class FakeContext(CommandContext):
    """A slash-command invocation that records what the user saw."""

    def __init__(self, user_id: str = "1001", channel: Optional[FakeChannel] = None, dm_fails: bool = False):
        self._user_id = user_id
        self.channel = channel or FakeChannel()
        self.dm_fails = dm_fails
        self.replies: List[tuple] = []
        self.follow_ups: List[tuple] = []

    @property
    def user_id(self) -> str:
        return self._user_id

    async def reply(self, text: str, ephemeral: bool = False):
        self.replies.append((text, ephemeral))

    async def follow_up(self, text: str, ephemeral: bool = False):
        self.follow_ups.append((text, ephemeral))

    async def open_private_channel(self):
        if self.dm_fails:
            raise DeliveryError("Cannot open DM")
        return self.channel

    @property
    def messages(self) -> List[str]:
        return [text for text, _ in self.replies + self.follow_ups]


# =============================================================================
# PROVIDER FAKES
# =============================================================================

class FakeCredentialStore:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = 0

    async def authorize(self):
        self.calls += 1
        if self.error:
            raise self.error
        return object()


class FakeProvider:
    def __init__(self, events: Optional[List[RawEvent]] = None, error: Optional[Exception] = None):
        self.events = events or []
        self.error = error
        self.calls = []

    async def list_events(self, time_min, time_max, credentials=None):
        self.calls.append((time_min, time_max))
        if self.error:
            raise self.error
        return list(self.events)


# =============================================================================
# EVENT FIXTURES
# =============================================================================

def make_raw(
    event_id: str,
    summary: Optional[str] = "CISC123 - Dr. Smith - In Person",
    start: str = "2024-12-09T10:00:00-05:00",
    end: str = "2024-12-09T11:00:00-05:00",
    location: Optional[str] = "Smith Hall 101",
    all_day: bool = False,
) -> RawEvent:
    if all_day:
        return RawEvent(event_id, summary, EventTime(date=start), EventTime(date=end), location)
    return RawEvent(event_id, summary, EventTime(date_time=start), EventTime(date_time=end), location)


@pytest.fixture
def week_of_events() -> List[RawEvent]:
    """Seven events across Mon Dec 9 .. Sun Dec 15, 2024."""
    return [
        make_raw("evt1", "CISC123 - Dr. Smith - In Person", "2024-12-09T10:00:00-05:00", "2024-12-09T11:00:00-05:00"),
        make_raw("evt2", "CISC220 - Prof. Jones - Virtual", "2024-12-10T13:00:00-05:00", "2024-12-10T14:00:00-05:00", location=None),
        make_raw("evt3", "CISC123 - Alice Doe - Virtual office hours", "2024-12-11T09:00:00-05:00", "2024-12-11T10:00:00-05:00"),
        make_raw("evt4", "CISC275 - Dr. Smith - In Person", "2024-12-12T15:00:00-05:00", "2024-12-12T16:30:00-05:00"),
        make_raw("evt5", "CISC108 - Bob Roe - In Person", "2024-12-13T11:00:00-05:00", "2024-12-13T12:00:00-05:00"),
        make_raw("evt6", "CISC220 - Prof. Jones - In Person", "2024-12-14T10:00:00-05:00", "2024-12-14T11:00:00-05:00"),
        make_raw("evt7", "Study Day", "2024-12-15", "2024-12-16", location=None, all_day=True),
    ]


@pytest.fixture
def events_path(tmp_path):
    return tmp_path / "data" / "events.json"


@pytest.fixture
def repository(events_path):
    return EventRepository(JsonEventCollection(events_path))


@pytest.fixture
def cache():
    return UserEventCache()
