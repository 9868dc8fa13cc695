"""SAGE slash commands."""
from .base import Command, CommandOption
from .calendar_command import CalendarCommand
from .reminder_command import ReminderCommand, parse_reminder_offset

__all__ = [
    "Command",
    "CommandOption",
    "CalendarCommand",
    "ReminderCommand",
    "parse_reminder_offset",
]
