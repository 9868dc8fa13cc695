#!/usr/bin/env python3
"""
SAGE CLI - operate the calendar bot from a terminal.

Usage:
    sage run                         - Start the Discord bot
    sage auth                        - Authorize Google Calendar access
    sage events [filters]            - Fetch, store and list upcoming events

Options:
    --config PATH                    - Configuration file (default: config.yaml)
    --json                           - Output in JSON format for scripting
"""

import asyncio
import json
import sys
from typing import Any, Dict, List

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import load_config
from .errors import AuthorizationError, ConfigError, ProviderQueryError, ValidationError
from .filters import describe, filter_events, parse_criteria
from .gateway import build_services, main as run_gateway, setup_logging
from .models import Event
from .normalizer import format_instant, normalize
from .provider import query_window

console = Console()


def output_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def create_events_table(events: List[Event], title: str) -> Table:
    table = Table(
        title=title,
        box=box.SIMPLE,
        show_header=True,
        header_style="bold magenta",
    )

    table.add_column("#", style="dim", width=3)
    table.add_column("Course", style="cyan")
    table.add_column("Holder")
    table.add_column("Start", style="green")
    table.add_column("End", style="green")
    table.add_column("Location")
    table.add_column("Type", width=4)

    for number, event in enumerate(events, start=1):
        table.add_row(
            str(number),
            event.course_id,
            event.instructor,
            event.date,
            format_instant(event.end),
            event.location or "-",
            event.location_type.value,
        )

    return table


def _load(config_path: str) -> Dict[str, Any]:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(1)


@click.group()
@click.option('--config', 'config_path', default='config.yaml', show_default=True,
              help='Configuration file')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.pass_context
def cli(ctx: click.Context, config_path: str, json_output: bool) -> None:
    """SAGE - course calendar bot."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['json'] = json_output


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Start the Discord bot."""
    run_gateway(ctx.obj['config_path'])


@cli.command()
@click.pass_context
def auth(ctx: click.Context) -> None:
    """Authorize Google Calendar access (opens a browser on first use)."""
    config = _load(ctx.obj['config_path'])
    setup_logging(config["logging"]["level"])
    store = build_services(config)["credentials"]

    already = store.load() is not None
    try:
        asyncio.run(store.authorize())
    except AuthorizationError as e:
        console.print(f"[bold red]Authorization failed:[/bold red] {e}")
        sys.exit(1)

    if ctx.obj['json']:
        output_json({"authorized": True, "token_path": str(store.token_path), "existing": already})
        return

    message = "Existing token is present" if already else "New token saved"
    console.print(Panel(
        f"[bold]{message}[/bold]\n[dim]{store.token_path}[/dim]",
        title="[bold green]Google Calendar[/bold green]",
        border_style="green",
        box=box.ROUNDED,
    ))


async def _fetch(config: Dict[str, Any], criteria) -> Dict[str, Any]:
    services = build_services(config)
    time_min, time_max = query_window(days=config["calendar"]["window_days"])
    raw_events = await services["provider"].list_events(time_min, time_max)
    events = [normalize(raw) for raw in raw_events]
    stored = await services["repository"].upsert_all(events)
    return {
        "fetched": events,
        "stored": stored,
        "matches": filter_events(events, criteria),
    }


@cli.command()
@click.option('--classname', help='Course code, e.g. cisc123')
@click.option('--locationtype', help='IP (in person) or V (virtual)')
@click.option('--eventholder', help='Event holder name, or part of it')
@click.option('--eventdate', help='Month and day, e.g. "december 12"')
@click.option('--dayofweek', help='Weekday name, e.g. Monday')
@click.pass_context
def events(ctx: click.Context, classname, locationtype, eventholder, eventdate, dayofweek) -> None:
    """Fetch, store and list upcoming events."""
    try:
        criteria = parse_criteria(classname, locationtype, eventholder, eventdate, dayofweek)
    except ValidationError as e:
        raise click.BadParameter(e.message)

    config = _load(ctx.obj['config_path'])
    setup_logging(config["logging"]["level"])

    try:
        result = asyncio.run(_fetch(config, criteria))
    except AuthorizationError as e:
        console.print(f"[bold red]Authorization failed:[/bold red] {e}")
        sys.exit(1)
    except ProviderQueryError as e:
        console.print(f"[bold red]Failed to retrieve calendar events:[/bold red] {e}")
        sys.exit(1)

    matches = result["matches"]
    if ctx.obj['json']:
        output_json({
            "fetched": len(result["fetched"]),
            "stored": result["stored"],
            "events": [e.to_document() for e in matches],
        })
        return

    window = config["calendar"]["window_days"]
    console.print()
    if not result["fetched"]:
        console.print(f"[dim]No events found over the next {window} days.[/dim]")
    elif not matches:
        console.print("[dim]No events found matching the specified filters.[/dim]")
    else:
        title = " ".join(filter(None, ["Upcoming Events", describe(criteria)]))
        console.print(create_events_table(matches, title))
    console.print(
        f"[dim]Fetched {len(result['fetched'])}, stored {result['stored']}, "
        f"showing {len(matches)}.[/dim]"
    )
    console.print()


def main():
    """Main entry point for the SAGE CLI."""
    cli(obj={})


if __name__ == '__main__':
    main()
