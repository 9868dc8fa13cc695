"""
Paging session controller.

A PagingSession owns one paged message. Button presses are queued by
submit() and consumed one at a time by run(), so an edit always completes
before the next press is handled and the visible page cannot drift from
the session's page index.

States:
    RENDERING --prev/next--> RENDERING   (clamped at the first/last page)
    RENDERING --done-------> CLOSED      (buttons stripped, acknowledged)
    RENDERING --timeout----> CLOSED      (buttons stripped, silent)
CLOSED is terminal; presses arriving afterwards are ignored.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from .adapters.base import ComponentInteraction, MessageChannel, PageMessage
from .errors import DeliveryError
from .models import PageViewState
from .pager import DONE_ID, NEXT_ID, PREV_ID, Pager, render_page

SESSION_TIMEOUT = 300.0
CLOSED_ACKNOWLEDGEMENT = "Collector manually terminated."


class SessionState(Enum):
    RENDERING = "rendering"
    CLOSED = "closed"


class PagingSession:
    """Serves navigation for one paged message until done or idle timeout."""

    def __init__(self, pager: Pager, heading: str = "", timeout: float = SESSION_TIMEOUT):
        self.pager = pager
        self.heading = heading
        self.timeout = timeout
        self.view = PageViewState(total_items=len(pager), page_size=pager.page_size)
        self.state = SessionState.RENDERING
        self.logger = logging.getLogger("Sage.PagingSession")
        self._queue: "asyncio.Queue[Optional[ComponentInteraction]]" = asyncio.Queue()
        self._message: Optional[PageMessage] = None

    @property
    def is_closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def current_page(self) -> int:
        return self.view.current_page_index

    async def open(self, channel: MessageChannel) -> PageMessage:
        """
        Send the first page.

        Raises:
            DeliveryError: If the message cannot be sent; no session starts
        """
        page = render_page(self.pager, 0, self.heading)
        self._message = await channel.send_page(page, self.submit)
        return self._message

    def submit(self, interaction: ComponentInteraction) -> bool:
        """Queue a button press. Returns False if the session is closed."""
        if self.is_closed:
            self.logger.debug(f"Ignored late '{interaction.custom_id}' press on closed session")
            return False
        self._queue.put_nowait(interaction)
        return True

    async def run(self):
        """Process presses in arrival order until the session closes."""
        if self._message is None:
            raise RuntimeError("PagingSession.run() called before open()")

        while not self.is_closed:
            try:
                interaction = await asyncio.wait_for(self._queue.get(), timeout=self.timeout)
            except asyncio.TimeoutError:
                self.logger.info(f"Session idle for {self.timeout:.0f}s, closing")
                await self.close()
                break

            if interaction is None:
                break
            await self._handle(interaction)

    async def _handle(self, interaction: ComponentInteraction):
        if self.is_closed:
            return

        control = interaction.custom_id
        if control == DONE_ID:
            await self.close(acknowledge=interaction)
            return

        await self._acknowledge(interaction)

        if control == PREV_ID:
            moved = self.view.previous()
        elif control == NEXT_ID:
            moved = self.view.next()
        else:
            self.logger.warning(f"Unknown control id: {control}")
            return

        if moved:
            await self._render()

    async def _render(self):
        page = render_page(self.pager, self.view.current_page_index, self.heading)
        try:
            await self._message.edit(page)
        except DeliveryError as e:
            self.logger.error(f"Failed to update page: {e}")

        # Closed while the edit was in flight; the edit put the buttons back
        if self.is_closed:
            await self._strip()

    async def close(self, acknowledge: Optional[ComponentInteraction] = None):
        """
        Close the session and strip the buttons.

        Args:
            acknowledge: Press that requested the close; answered with a
                         confirmation. None closes silently.
        """
        if self.is_closed:
            return
        self.state = SessionState.CLOSED
        self._queue.put_nowait(None)

        await self._strip()

        if acknowledge is not None:
            try:
                await acknowledge.reply(CLOSED_ACKNOWLEDGEMENT)
            except DeliveryError as e:
                self.logger.warning(f"Could not acknowledge close: {e}")

    async def _strip(self):
        if self._message is None:
            return
        try:
            await self._message.strip()
        except DeliveryError as e:
            self.logger.warning(f"Could not remove buttons: {e}")

    async def _acknowledge(self, interaction: ComponentInteraction):
        try:
            await interaction.acknowledge()
        except DeliveryError as e:
            self.logger.warning(f"Could not acknowledge '{interaction.custom_id}': {e}")
