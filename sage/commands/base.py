"""Command descriptors shared by all slash commands."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from ..adapters.base import CommandContext


@dataclass(frozen=True)
class CommandOption:
    """A named string option of a slash command."""
    name: str
    description: str
    required: bool = False


class Command(ABC):
    """A slash command: descriptor plus one asynchronous entry point."""

    name: str = ""
    description: str = ""
    options: List[CommandOption] = []

    @abstractmethod
    async def run(self, ctx: CommandContext, **options):
        """Handle one invocation; ``options`` maps option names to strings or None."""
        pass
