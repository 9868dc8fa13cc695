"""/reminder: DM the user shortly before an event they fetched with /calendar."""

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..adapters.base import CommandContext
from ..errors import ValidationError
from ..repository import UserEventCache
from ..scheduler import ReminderScheduler
from .base import Command, CommandOption

OFFSET_RE = re.compile(r"^(\d+)([mh])$")
OFFSET_UNITS = {"m": timedelta(minutes=1), "h": timedelta(hours=1)}


def parse_reminder_offset(text: str) -> timedelta:
    """
    Parse "15m", "30m" or "1h" into a timedelta.

    Raises:
        ValidationError: If the text is not <digits><m|h>
    """
    match = OFFSET_RE.match((text or "").strip().lower())
    if not match:
        raise ValidationError("Invalid time format. Use '15m', '30m', or '1h'.")
    value, unit = match.groups()
    return int(value) * OFFSET_UNITS[unit]


class ReminderCommand(Command):
    name = "reminder"
    description = "Sets a reminder for an event"
    options = [
        CommandOption("event_name", "The name of the event for which to set a reminder", required=True),
        CommandOption(
            "reminder_time",
            "How many minutes before the event to set the reminder (e.g., 15m, 30m)",
            required=True,
        ),
    ]

    def __init__(self, cache: UserEventCache, scheduler: ReminderScheduler):
        self.cache = cache
        self.scheduler = scheduler
        self.logger = logging.getLogger("Sage.ReminderCommand")

    async def run(
        self,
        ctx: CommandContext,
        event_name: str = "",
        reminder_time: str = "",
        now: Optional[datetime] = None,
    ):
        if not self.cache.get(ctx.user_id):
            await ctx.reply("You have no events fetched. Please use `/calendar` first.", ephemeral=True)
            return

        try:
            offset = parse_reminder_offset(reminder_time)
        except ValidationError as e:
            await ctx.reply(e.message, ephemeral=True)
            return

        event = self.cache.find(ctx.user_id, event_name or "")
        if event is None:
            await ctx.reply(f'Event "{event_name}" not found.', ephemeral=True)
            return

        start = event.start_datetime()
        if start is None:
            await ctx.reply(f'Event "{event_name}" has no start time.', ephemeral=True)
            return
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)

        remind_at = start - offset
        if remind_at <= (now or datetime.now(timezone.utc)):
            await ctx.reply("That reminder time has already passed.", ephemeral=True)
            return

        title = event.summary or event.course_id
        self.scheduler.schedule(
            ctx.user_id,
            event.event_id,
            remind_at,
            f"Reminder: **{title}** is scheduled for {event.date}.",
        )
        self.logger.info(f"Reminder for {event.event_id} set for user {ctx.user_id} at {remind_at}")

        await ctx.reply(
            f'Reminder set for "{title}" {reminder_time.strip()} before the event.',
            ephemeral=True,
        )
