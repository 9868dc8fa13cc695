"""
Discord adapter using discord.py.

Slash commands are registered on an app command tree and synced either
globally or to one guild. Paged views are sent to the invoking user's DMs
with Previous/Next/Done buttons; button presses are handed to the paging
session that owns the message.
"""
import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Dict, List, Optional

import discord
from discord import app_commands

from ..errors import DeliveryError
from ..pager import ButtonSpec, RenderedPage
from .base import (
    BaseAdapter,
    CommandContext,
    ComponentInteraction,
    InteractionSink,
    MessageChannel,
    PageMessage,
)

if TYPE_CHECKING:
    from ..commands.base import Command

COMMAND_FAILED = "An error occurred while running this command."

BUTTON_STYLES = {
    "primary": discord.ButtonStyle.primary,
    "danger": discord.ButtonStyle.danger,
    "secondary": discord.ButtonStyle.secondary,
}


def to_embed(page: RenderedPage) -> discord.Embed:
    """Build the embed for a rendered page."""
    color_factory = getattr(discord.Color, page.color, discord.Color.default)
    embed = discord.Embed(title=page.title, color=color_factory())
    for f in page.fields:
        embed.add_field(name=f.name, value=f.value, inline=False)
    return embed


class DiscordComponentInteraction(ComponentInteraction):
    """A button press wrapped for the paging session."""

    def __init__(self, interaction: discord.Interaction, custom_id: str):
        self.interaction = interaction
        self._custom_id = custom_id

    @property
    def custom_id(self) -> str:
        return self._custom_id

    async def acknowledge(self):
        try:
            if not self.interaction.response.is_done():
                await self.interaction.response.defer()
        except discord.HTTPException as e:
            raise DeliveryError(f"Could not acknowledge button press: {e}") from e

    async def reply(self, text: str):
        try:
            if self.interaction.response.is_done():
                await self.interaction.followup.send(text)
            else:
                await self.interaction.response.send_message(text)
        except discord.HTTPException as e:
            raise DeliveryError(f"Could not reply to button press: {e}") from e


class PageView(discord.ui.View):
    """Button row of one rendered page. Timeouts are owned by the session."""

    def __init__(self, buttons: List[ButtonSpec], on_interaction: InteractionSink):
        super().__init__(timeout=None)
        self.on_interaction = on_interaction
        for spec in buttons:
            button = discord.ui.Button(
                label=spec.label,
                style=BUTTON_STYLES.get(spec.style, discord.ButtonStyle.primary),
                custom_id=spec.custom_id,
                disabled=spec.disabled,
            )
            button.callback = self._make_callback(spec.custom_id)
            self.add_item(button)

    def _make_callback(self, custom_id: str):
        async def callback(interaction: discord.Interaction):
            accepted = self.on_interaction(DiscordComponentInteraction(interaction, custom_id))
            if not accepted and not interaction.response.is_done():
                # Late press on a closed session
                try:
                    await interaction.response.defer()
                except discord.HTTPException:
                    pass
        return callback

    def apply(self, buttons: List[ButtonSpec]):
        """Update the enabled state of the existing buttons in place."""
        specs = {spec.custom_id: spec for spec in buttons}
        for item in self.children:
            spec = specs.get(getattr(item, "custom_id", None))
            if spec is not None:
                item.label = spec.label
                item.disabled = spec.disabled


class DiscordPageMessage(PageMessage):
    """
    A sent DM whose embed is replaced on every render.

    The message keeps one PageView for its lifetime and renders update its
    buttons in place. The view store keys components by (message id,
    custom id), so the message never swaps in a second view.
    """

    def __init__(self, message: discord.Message, view: Optional[PageView], on_interaction: InteractionSink):
        self.message = message
        self.view = view
        self.on_interaction = on_interaction

    async def edit(self, page: RenderedPage):
        if not page.buttons:
            if self.view is not None:
                self.view.stop()
                self.view = None
            try:
                await self.message.edit(embed=to_embed(page), view=None)
            except discord.HTTPException as e:
                raise DeliveryError(f"Could not edit message {self.message.id}: {e}") from e
            return

        created = self.view is None
        if created:
            self.view = PageView(page.buttons, self.on_interaction)
        else:
            self.view.apply(page.buttons)
        try:
            await self.message.edit(embed=to_embed(page), view=self.view)
        except discord.HTTPException as e:
            if created:
                self.view.stop()
                self.view = None
            raise DeliveryError(f"Could not edit message {self.message.id}: {e}") from e

    async def strip(self):
        if self.view is not None:
            self.view.stop()
            self.view = None
        try:
            await self.message.edit(view=None)
        except discord.HTTPException as e:
            raise DeliveryError(f"Could not strip buttons from {self.message.id}: {e}") from e


class DiscordChannel(MessageChannel):
    def __init__(self, channel: discord.abc.Messageable):
        self.channel = channel

    async def send_page(self, page: RenderedPage, on_interaction: InteractionSink) -> PageMessage:
        view = PageView(page.buttons, on_interaction) if page.buttons else None
        try:
            if view is None:
                message = await self.channel.send(embed=to_embed(page))
            else:
                message = await self.channel.send(embed=to_embed(page), view=view)
        except discord.HTTPException as e:
            if view is not None:
                view.stop()
            raise DeliveryError(f"Could not send paged message: {e}") from e
        return DiscordPageMessage(message, view, on_interaction)


class DiscordCommandContext(CommandContext):
    """A slash-command interaction."""

    def __init__(self, interaction: discord.Interaction):
        self.interaction = interaction

    @property
    def user_id(self) -> str:
        return str(self.interaction.user.id)

    @property
    def responded(self) -> bool:
        return self.interaction.response.is_done()

    async def reply(self, text: str, ephemeral: bool = False):
        if self.responded:
            await self.follow_up(text, ephemeral=ephemeral)
            return
        try:
            await self.interaction.response.send_message(text, ephemeral=ephemeral)
        except discord.HTTPException as e:
            raise DeliveryError(f"Could not reply: {e}") from e

    async def follow_up(self, text: str, ephemeral: bool = False):
        try:
            await self.interaction.followup.send(text, ephemeral=ephemeral)
        except discord.HTTPException as e:
            raise DeliveryError(f"Could not send follow-up: {e}") from e

    async def open_private_channel(self) -> MessageChannel:
        try:
            dm = await self.interaction.user.create_dm()
        except discord.HTTPException as e:
            raise DeliveryError(f"Could not open DM channel: {e}") from e
        return DiscordChannel(dm)


def _describe(command: "Command") -> Dict[str, str]:
    return {option.name: option.description for option in command.options}


class SageBot(discord.Client):
    """discord.py client exposing the SAGE slash commands."""

    def __init__(
        self,
        commands: List["Command"],
        guild_id: Optional[int] = None,
        intents: Optional[discord.Intents] = None,
    ):
        super().__init__(intents=intents or discord.Intents.default())
        self.tree = app_commands.CommandTree(self)
        self.guild_id = guild_id
        self.sage_commands: Dict[str, "Command"] = {c.name: c for c in commands}
        self.logger = logging.getLogger("Sage.SageBot")
        self._register_commands()

    def _register_commands(self):
        calendar = self.sage_commands.get("calendar")
        if calendar is not None:
            @self.tree.command(name=calendar.name, description=calendar.description)
            @app_commands.describe(**_describe(calendar))
            async def calendar_command(
                interaction: discord.Interaction,
                classname: Optional[str] = None,
                locationtype: Optional[str] = None,
                eventholder: Optional[str] = None,
                eventdate: Optional[str] = None,
                dayofweek: Optional[str] = None,
            ):
                await self.run_command(
                    calendar,
                    interaction,
                    classname=classname,
                    locationtype=locationtype,
                    eventholder=eventholder,
                    eventdate=eventdate,
                    dayofweek=dayofweek,
                )

        reminder = self.sage_commands.get("reminder")
        if reminder is not None:
            @self.tree.command(name=reminder.name, description=reminder.description)
            @app_commands.describe(**_describe(reminder))
            async def reminder_command(
                interaction: discord.Interaction,
                event_name: str,
                reminder_time: str,
            ):
                await self.run_command(
                    reminder,
                    interaction,
                    event_name=event_name,
                    reminder_time=reminder_time,
                )

    async def setup_hook(self):
        if self.guild_id:
            guild = discord.Object(id=int(self.guild_id))
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
        else:
            synced = await self.tree.sync()
        self.logger.info(f"Synced {len(synced)} application commands")

    async def run_command(self, command: "Command", interaction: discord.Interaction, **options):
        """Run a command, reporting unexpected failures to the user."""
        ctx = DiscordCommandContext(interaction)
        self.logger.info(f"/{command.name} from user {ctx.user_id}")
        try:
            await command.run(ctx, **options)
        except DeliveryError as e:
            self.logger.error(f"/{command.name} could not reach user {ctx.user_id}: {e}")
        except Exception:
            self.logger.exception(f"/{command.name} failed")
            try:
                await ctx.reply(COMMAND_FAILED, ephemeral=True)
            except DeliveryError:
                pass


class DiscordAdapter(BaseAdapter):
    """Discord messaging adapter using discord.py."""

    def __init__(self, config: dict, commands: List["Command"]):
        super().__init__(config)
        self.commands = commands
        self.client: Optional[SageBot] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def platform_name(self) -> str:
        return "discord"

    async def start(self) -> bool:
        """Start Discord bot."""
        token = self.config.get("bot_token")
        if not token:
            self.logger.error("Discord bot_token not configured!")
            self.logger.error("Create a new app at: https://discord.com/developers/applications")
            return False

        self.client = SageBot(self.commands, guild_id=self.config.get("guild_id"))

        @self.client.event
        async def on_ready():
            self._running = True
            self._started_at = datetime.now()
            self.logger.info(f"Discord connected as {self.client.user}")

        @self.client.event
        async def on_disconnect():
            self.logger.warning("Discord disconnected")

        @self.client.event
        async def on_resumed():
            self.logger.info("Discord connection resumed")

        self._task = asyncio.create_task(self._run_client(token))
        return True

    async def _run_client(self, token: str):
        """Run the Discord client with auto-reconnect."""
        while True:
            try:
                await self.client.start(token)
                break
            except discord.LoginFailure:
                self.logger.error("Invalid Discord token")
                break
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if not self._running:
                    break
                self.logger.error(f"Discord error, reconnecting: {e}")
                await asyncio.sleep(5)

    async def stop(self):
        """Stop Discord bot gracefully."""
        self._running = False
        if self.client is not None:
            await self.client.close()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self.logger.info("Discord adapter stopped")

    async def send_direct_message(self, user_id: str, text: str):
        """
        DM a user.

        Raises:
            DeliveryError: If the adapter is not running or the DM fails
        """
        if self.client is None:
            raise DeliveryError("Discord adapter not running")
        try:
            user = self.client.get_user(int(user_id)) or await self.client.fetch_user(int(user_id))
            await user.send(text)
        except discord.HTTPException as e:
            raise DeliveryError(f"Could not DM user {user_id}: {e}") from e
        self.logger.info(f"Reminder sent to user {user_id}")
