"""Base classes for the chat platform boundary."""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..pager import RenderedPage


class ComponentInteraction(ABC):
    """A button press on a paged message."""

    @property
    @abstractmethod
    def custom_id(self) -> str:
        """Control id of the pressed button (prev, next, done)."""
        pass

    @abstractmethod
    async def acknowledge(self):
        """Acknowledge the press without sending anything."""
        pass

    @abstractmethod
    async def reply(self, text: str):
        """Answer the press with a visible message."""
        pass


InteractionSink = Callable[[ComponentInteraction], bool]


class PageMessage(ABC):
    """A sent message whose body and buttons can be replaced in place."""

    @abstractmethod
    async def edit(self, page: RenderedPage):
        """Replace the message body and buttons."""
        pass

    @abstractmethod
    async def strip(self):
        """Remove all buttons, keeping the current body."""
        pass


class MessageChannel(ABC):
    """A private channel with one user."""

    @abstractmethod
    async def send_page(self, page: RenderedPage, on_interaction: InteractionSink) -> PageMessage:
        """
        Send a paged message.

        Button presses on the message are passed to ``on_interaction``.
        """
        pass


class CommandContext(ABC):
    """One slash-command invocation."""

    @property
    @abstractmethod
    def user_id(self) -> str:
        pass

    @abstractmethod
    async def reply(self, text: str, ephemeral: bool = False):
        """First response to the invocation."""
        pass

    @abstractmethod
    async def follow_up(self, text: str, ephemeral: bool = False):
        """Any response after the first."""
        pass

    @abstractmethod
    async def open_private_channel(self) -> MessageChannel:
        pass


class BaseAdapter(ABC):
    """
    Base class for chat platform adapters.

    An adapter owns the platform connection, exposes the commands to users
    and delivers reminder notifications.
    """

    def __init__(self, config: dict):
        """
        Initialize the adapter.

        Args:
            config: Platform-specific configuration
        """
        self.config = config
        self.logger = logging.getLogger(f"Sage.{self.__class__.__name__}")
        self._running = False
        self._started_at: Optional[datetime] = None

    @property
    @abstractmethod
    def platform_name(self) -> str:
        """Return platform identifier."""
        pass

    @abstractmethod
    async def start(self) -> bool:
        """
        Connect and begin serving commands.
        Returns True if started successfully.
        """
        pass

    @abstractmethod
    async def stop(self):
        """Stop the adapter gracefully."""
        pass

    @abstractmethod
    async def send_direct_message(self, user_id: str, text: str):
        """Send a private message to a user."""
        pass

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def uptime_seconds(self) -> float:
        if not self._started_at:
            return 0
        return (datetime.now() - self._started_at).total_seconds()


Notifier = Callable[[str, str], Awaitable[None]]
