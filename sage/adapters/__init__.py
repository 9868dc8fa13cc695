"""SAGE chat platform adapters."""
from .base import (
    BaseAdapter,
    CommandContext,
    ComponentInteraction,
    MessageChannel,
    PageMessage,
)
from .discord_adapter import DiscordAdapter

__all__ = [
    "BaseAdapter",
    "CommandContext",
    "ComponentInteraction",
    "MessageChannel",
    "PageMessage",
    "DiscordAdapter",
]
