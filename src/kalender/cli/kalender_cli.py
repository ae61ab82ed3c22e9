#!/usr/bin/env python3
"""
Kalender CLI
Command line front end for the personal event calendar.
"""

import asyncio
import sys
from contextlib import asynccontextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml

from kalender import __version__
from kalender.config import CalendarConfig, load_config, setup_logging
from kalender.core.errors import EventNotFoundError, KalenderError
from kalender.core.filters import format_event_count
from kalender.core.models import STANDARD_CATEGORIES, CalendarEvent, FilterCriteria, category_color
from kalender.scheduling.notifications import describe_reminder
from kalender.service import CalendarService

DATETIME_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M"]
DATE_FORMATS = ["%Y-%m-%d"]

PRIORITY_ICONS = {"low": "🟢", "medium": "🟡", "high": "🔴"}
CATEGORY_HELP = f"Category ({', '.join(STANDARD_CATEGORIES)} or any other name)"


@asynccontextmanager
async def open_service(config: CalendarConfig, save: bool = True, **kwargs):
    """Service loaded from disk, without background schedulers"""
    service = CalendarService(config, **kwargs)
    await service.start(run_schedulers=False)
    try:
        yield service
    finally:
        await service.shutdown(save=save)


def _run(coro) -> Any:
    try:
        return asyncio.run(coro)
    except KalenderError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)


def _format_event(event: CalendarEvent) -> str:
    icon = PRIORITY_ICONS[event.priority_level.value]
    line = f"{event.id[:8]}  {event.timestamp:%Y-%m-%d %H:%M}  {icon} {event.title}  [{event.category}] P{event.priority}"
    if event.notified:
        line += "  (reminded)"
    return line


def _color_hex(category: str) -> str:
    return "#{:02x}{:02x}{:02x}".format(*category_color(category))


async def _resolve_id(service: CalendarService, prefix: str) -> str:
    """Accept a full id or any unique prefix of one"""
    if await service.has_event(prefix):
        return prefix
    matches = [e.id for e in await service.list_all() if e.id.startswith(prefix)]
    if not matches:
        raise EventNotFoundError(prefix)
    if len(matches) > 1:
        raise click.ClickException(f"Event id prefix '{prefix}' is ambiguous ({len(matches)} matches)")
    return matches[0]


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), help='Path to config.yaml')
@click.option('--store', 'store_path', type=click.Path(dir_okay=False), help='Override the store file')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.version_option(version=__version__, prog_name='Kalender')
@click.pass_context
def cli(ctx, config_path: Optional[str], store_path: Optional[str], verbose: bool, debug: bool):
    """Kalender - personal event calendar with reminders"""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    if store_path:
        config.store_path = store_path
    config.log_level = 'DEBUG' if debug else 'INFO' if verbose else 'WARNING'

    setup_logging(config)
    ctx.obj = config


@cli.command()
@click.argument('title')
@click.option('--at', 'when', required=True, type=click.DateTime(formats=DATETIME_FORMATS),
              help='Date and time, e.g. "2026-10-20 14:30"')
@click.option('--description', '-d', default='', help='Longer description')
@click.option('--location', '-l', default='', help='Where it happens')
@click.option('--category', '-c', default=None, help=CATEGORY_HELP)
@click.option('--priority', '-p', type=int, default=None, help='Priority from 1 to 10')
@click.pass_obj
def add(config: CalendarConfig, title: str, when: datetime, description: str, location: str,
        category: Optional[str], priority: Optional[int]):
    """Add a new event"""
    fields: Dict[str, Any] = {
        'title': title,
        'timestamp': when,
        'description': description,
        'location': location,
    }
    if category is not None:
        fields['category'] = category
    if priority is not None:
        fields['priority'] = priority

    async def _add():
        async with open_service(config) as service:
            event_id = await service.add_event(fields)
            event = await service.get_event(event_id)
        click.echo(f"✅ Added {_format_event(event)}")

    _run(_add())


@cli.command()
@click.argument('event_id')
@click.option('--title', default=None)
@click.option('--at', 'when', default=None, type=click.DateTime(formats=DATETIME_FORMATS))
@click.option('--description', '-d', default=None)
@click.option('--location', '-l', default=None)
@click.option('--category', '-c', default=None, help=CATEGORY_HELP)
@click.option('--priority', '-p', type=int, default=None)
@click.pass_obj
def edit(config: CalendarConfig, event_id: str, title: Optional[str], when: Optional[datetime],
         description: Optional[str], location: Optional[str], category: Optional[str], priority: Optional[int]):
    """Change fields of an existing event"""
    changes = {
        key: value for key, value in {
            'title': title,
            'timestamp': when,
            'description': description,
            'location': location,
            'category': category,
            'priority': priority,
        }.items()
        if value is not None
    }
    if not changes:
        raise click.UsageError("Nothing to change")

    async def _edit():
        async with open_service(config) as service:
            event = await service.update_event(await _resolve_id(service, event_id), changes)
        click.echo(f"✅ Updated {_format_event(event)}")

    _run(_edit())


@cli.command()
@click.argument('event_id')
@click.pass_obj
def delete(config: CalendarConfig, event_id: str):
    """Delete an event"""

    async def _delete():
        async with open_service(config) as service:
            event = await service.delete_event(await _resolve_id(service, event_id))
        click.echo(f"🗑️  Deleted {event.title}")

    _run(_delete())


@cli.command()
@click.argument('event_id')
@click.pass_obj
def show(config: CalendarConfig, event_id: str):
    """Show all details of an event"""

    async def _show():
        async with open_service(config, save=False) as service:
            event = await service.get_event(await _resolve_id(service, event_id))
        click.echo(f"📅 {event.title}")
        click.echo(f"   Id:          {event.id}")
        click.echo(f"   When:        {event.timestamp:%Y-%m-%d %H:%M}")
        click.echo(f"   Location:    {event.location or '-'}")
        click.echo(f"   Category:    {event.category} ({_color_hex(event.category)})")
        click.echo(f"   Priority:    {event.priority} / 10")
        click.echo(f"   Reminded:    {'yes' if event.notified else 'no'}")
        if event.description:
            click.echo(f"   Description: {event.description}")

    _run(_show())


@cli.command(name='list')
@click.option('--search', '-s', default='', help='Text to find in title or description')
@click.option('--from', 'start', type=click.DateTime(formats=DATE_FORMATS), default=None, help='First day (inclusive)')
@click.option('--to', 'end', type=click.DateTime(formats=DATE_FORMATS), default=None, help='Last day (inclusive)')
@click.option('--category', '-c', default=None, help='Only this category')
@click.option('--hide-past', is_flag=True, help='Leave out events that already started')
@click.pass_obj
def list_events(config: CalendarConfig, search: str, start: Optional[datetime], end: Optional[datetime],
                category: Optional[str], hide_past: bool):
    """List events sorted by time"""
    criteria = FilterCriteria(
        search_text=search,
        start_date=start.date() if start else None,
        end_date=end.date() if end else None,
        show_past_events=not hide_past,
        category=category,
    )

    async def _list():
        async with open_service(config, save=False) as service:
            events = await service.list_filtered(criteria)
        for event in events:
            click.echo(_format_event(event))
        click.echo(f"📊 {format_event_count(len(events))}")

    _run(_list())


@cli.command()
@click.argument('month', required=False, type=click.DateTime(formats=["%Y-%m"]))
@click.pass_obj
def month(config: CalendarConfig, month: Optional[datetime]):
    """Show a month's events grouped by day (and remember the month)"""

    async def _month():
        async with open_service(config) as service:
            if month is not None:
                await service.set_display_month(month.date())
            shown: date = await service.get_display_month()
            overview = await service.month_overview(shown)
        click.echo(f"🗓️  {shown:%B %Y}")
        if not overview:
            click.echo("   No events")
        for day, events in overview.items():
            click.echo(f"   {day:%a %d}")
            for event in events:
                click.echo(f"      {event.timestamp:%H:%M} {event.title} [{event.category}]")

    _run(_month())


@cli.command(name='export')
@click.argument('path', type=click.Path(dir_okay=False))
@click.pass_obj
def export_events(config: CalendarConfig, path: str):
    """Export all events to a CSV file"""

    async def _export():
        async with open_service(config, save=False) as service:
            count = await service.export_csv(path)
        click.echo(f"✅ Exported {format_event_count(count).lower()} to {path}")

    _run(_export())


@cli.command(name='import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def import_events(config: CalendarConfig, path: str):
    """Append events from a CSV file"""

    async def _import():
        async with open_service(config) as service:
            count = await service.import_csv(path)
        click.echo(f"✅ Imported {format_event_count(count).lower()} from {path}")

    _run(_import())


@cli.command()
@click.option('--duration', type=float, default=None, help='Stop after this many seconds')
@click.pass_obj
def watch(config: CalendarConfig, duration: Optional[float]):
    """Run reminders and autosave in the foreground"""

    def _show_reminder(event: CalendarEvent):
        click.echo(f"🔔 {describe_reminder(event).replace(chr(10), ' | ')}")

    async def _watch():
        service = CalendarService(config, on_notify=_show_reminder)
        await service.start()
        click.echo(f"👀 Watching {service.adapter.location} (Ctrl-C to stop)")
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            await service.shutdown()
            click.echo("💾 Saved and stopped")

    try:
        _run(_watch())
    except KeyboardInterrupt:
        pass


@cli.command(name='config')
@click.pass_obj
def show_config(config: CalendarConfig):
    """Print the effective configuration"""
    click.echo(yaml.dump(config.to_dict(), default_flow_style=False, indent=2, sort_keys=False))


def main():
    cli()


if __name__ == '__main__':
    main()
