"""
/calendar: browse the shared course calendar in a private paged view.

The command fetches the events of the next few days, stores every one of
them, narrows the batch with the optional filters and sends the result to
the user's DMs, three events per page, with Previous/Next/Done buttons.
The buttons stop working after five idle minutes.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..adapters.base import CommandContext
from ..controller import SESSION_TIMEOUT, PagingSession
from ..credentials import CredentialStore
from ..errors import AuthorizationError, DeliveryError, ProviderQueryError, ValidationError
from ..filters import describe, filter_events, parse_criteria
from ..normalizer import normalize
from ..pager import EVENTS_PER_PAGE, Pager
from ..provider import QUERY_WINDOW_DAYS, GoogleCalendarProvider, query_window
from ..repository import EventRepository, UserEventCache
from .base import Command, CommandOption

AUTH_FAILED = "An error occurred during authentication or event retrieval."
FETCH_FAILED = "Failed to retrieve calendar events."
NO_MATCHES = "No events found matching the specified filters."
DM_FAILED = "I couldn't send you a direct message. Please check your privacy settings."


class CalendarCommand(Command):
    """Retrieve, store, filter and page upcoming calendar events."""

    name = "calendar"
    description = "Retrieve calendar events over the next 10 days with pagination, optionally filter"
    options = [
        CommandOption("classname", 'Enter the class name to filter events (e.g., "cisc123")'),
        CommandOption("locationtype", 'Enter "IP" for In-Person or "V" for Virtual events'),
        CommandOption("eventholder", "Enter the name of the event holder you are looking for."),
        CommandOption(
            "eventdate",
            'Enter the date you are looking for as [month name] [day] (e.g., "december 12").',
        ),
        CommandOption("dayofweek", 'Enter the day of the week to filter events (e.g., "Monday")'),
    ]

    def __init__(
        self,
        credentials: CredentialStore,
        provider: GoogleCalendarProvider,
        repository: EventRepository,
        cache: UserEventCache,
        window_days: int = QUERY_WINDOW_DAYS,
        page_size: int = EVENTS_PER_PAGE,
        session_timeout: float = SESSION_TIMEOUT,
    ):
        self.credentials = credentials
        self.provider = provider
        self.repository = repository
        self.cache = cache
        self.window_days = window_days
        self.page_size = page_size
        self.session_timeout = session_timeout
        self.logger = logging.getLogger("Sage.CalendarCommand")

    async def run(
        self,
        ctx: CommandContext,
        classname: Optional[str] = None,
        locationtype: Optional[str] = None,
        eventholder: Optional[str] = None,
        eventdate: Optional[str] = None,
        dayofweek: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[PagingSession]:
        """
        Handle one /calendar invocation.

        Returns the paging session after it has closed, or None when the
        invocation ended before a session was opened.
        """
        try:
            criteria = parse_criteria(classname, locationtype, eventholder, eventdate, dayofweek)
        except ValidationError as e:
            await ctx.reply(e.message, ephemeral=True)
            return None

        await ctx.reply("Authenticating and fetching events...")

        try:
            auth = await self.credentials.authorize()
            time_min, time_max = query_window(now or datetime.now(timezone.utc), self.window_days)
            raw_events = await self.provider.list_events(time_min, time_max, credentials=auth)
        except AuthorizationError as e:
            self.logger.error(f"Authorization failed: {e}")
            await ctx.follow_up(AUTH_FAILED)
            return None
        except ProviderQueryError as e:
            self.logger.error(f"Event retrieval failed: {e}")
            await ctx.follow_up(FETCH_FAILED)
            return None

        if not raw_events:
            self.cache.clear(ctx.user_id)
            await ctx.follow_up(f"No events found over the next {self.window_days} days.")
            return None

        events = [normalize(raw) for raw in raw_events]
        stored = await self.repository.upsert_all(events)
        if stored < len(events):
            self.logger.warning(f"Stored {stored} of {len(events)} events")
        self.cache.replace(ctx.user_id, events)

        matches = filter_events(events, criteria)
        if not matches:
            await ctx.follow_up(NO_MATCHES)
            return None

        session = await self._open_session(ctx, matches, describe(criteria))
        if session is None:
            return None

        await ctx.follow_up(f"Sent {len(matches)} event(s) to your DMs.", ephemeral=True)
        await session.run()
        return session

    async def _open_session(self, ctx: CommandContext, events: List, heading: str) -> Optional[PagingSession]:
        session = PagingSession(Pager(events, self.page_size), heading, timeout=self.session_timeout)
        try:
            channel = await ctx.open_private_channel()
            await session.open(channel)
        except DeliveryError as e:
            self.logger.error(f"Could not open paged view for user {ctx.user_id}: {e}")
            await ctx.follow_up(DM_FAILED, ephemeral=True)
            return None
        return session
