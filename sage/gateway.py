#!/usr/bin/env python3
"""
SAGE Gateway - runs the calendar bot.

Builds the credential store, calendar provider, event repository and
commands from the configuration, then serves them over Discord until
SIGINT/SIGTERM.

Usage:
    python -m sage.gateway [config.yaml]
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .adapters import DiscordAdapter
from .commands import CalendarCommand, ReminderCommand
from .config import load_config, validate_config
from .credentials import CredentialStore
from .errors import ConfigError, DeliveryError
from .provider import GoogleCalendarProvider
from .repository import EventRepository, JsonEventCollection, UserEventCache
from .scheduler import ReminderScheduler


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure logging for the bot."""
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        Path(log_file).expanduser().parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(Path(log_file).expanduser())
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Reduce noise from libraries
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("google_auth_oauthlib").setLevel(logging.WARNING)


def build_services(config: Dict[str, Any]) -> Dict[str, Any]:
    """Build the calendar services shared by the bot and the CLI."""
    google = config["google"]
    credentials = CredentialStore(
        token_path=Path(google["token_path"]),
        client_secrets_path=Path(google["client_secrets_path"]),
    )
    window_days = config["calendar"]["window_days"]
    return {
        "credentials": credentials,
        "provider": GoogleCalendarProvider(credentials, google["calendar_id"]),
        "repository": EventRepository(JsonEventCollection(Path(config["storage"]["events_path"]))),
        "cache": UserEventCache(max_age=window_days * 24 * 60 * 60),
    }


class SageGateway:
    """Wires the commands to the Discord adapter and manages its lifetime."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.logger = logging.getLogger("Sage.Gateway")
        self.adapter: Optional[DiscordAdapter] = None
        self._shutdown_event = asyncio.Event()

        services = build_services(config)
        calendar = config["calendar"]
        self.scheduler = ReminderScheduler(self._notify)
        self.commands = [
            CalendarCommand(
                services["credentials"],
                services["provider"],
                services["repository"],
                services["cache"],
                window_days=calendar["window_days"],
                page_size=calendar["page_size"],
                session_timeout=calendar["session_timeout"],
            ),
            ReminderCommand(services["cache"], self.scheduler),
        ]

    async def _notify(self, user_id: str, text: str):
        if self.adapter is None:
            raise DeliveryError("No adapter running")
        await self.adapter.send_direct_message(user_id, text)

    async def start(self):
        """Start the adapter and wait for shutdown."""
        self.logger.info("Starting SAGE...")

        for warning in validate_config(self.config):
            self.logger.warning(warning)

        adapter = DiscordAdapter(self.config["discord"], self.commands)
        if not await adapter.start():
            self.logger.error("Discord adapter did not start! Check your configuration.")
            return
        self.adapter = adapter

        self.logger.info("=" * 50)
        self.logger.info("SAGE running")
        self.logger.info(f"Commands: {', '.join('/' + c.name for c in self.commands)}")
        self.logger.info(f"Calendar: {self.config['google']['calendar_id']}")
        self.logger.info("=" * 50)

        await self._shutdown_event.wait()

    async def stop(self):
        """Cancel reminders and stop the adapter."""
        self.logger.info("Shutting down SAGE...")
        await self.scheduler.shutdown()
        if self.adapter is not None:
            uptime = self.adapter.uptime_seconds
            await self.adapter.stop()
            self.logger.info(f"SAGE stopped after {uptime:.0f}s")
        else:
            self.logger.info("SAGE stopped.")

    def request_shutdown(self):
        self._shutdown_event.set()


async def serve(config: Dict[str, Any]):
    """Run the gateway until a shutdown signal arrives."""
    gateway = SageGateway(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, gateway.request_shutdown)

    try:
        await gateway.start()
    finally:
        await gateway.stop()


def main(config_path: Optional[str] = None):
    """Main entry point."""
    if config_path is None:
        config_path = sys.argv[1] if len(sys.argv) > 1 else "config.yaml"

    try:
        config = load_config(config_path)
    except ConfigError as e:
        print(f"ERROR: {e}")
        print("Create a config.yaml file with your bot token and calendar id.")
        sys.exit(1)

    setup_logging(config["logging"]["level"], config["logging"].get("file"))

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        print("\nShutdown requested by user")


if __name__ == "__main__":
    main()
