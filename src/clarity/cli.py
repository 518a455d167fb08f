"""Clarity CLI - Mind dump planner."""

import asyncio
import logging
import sys
from datetime import date, datetime

import click
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .adapters.cli_classifier import ClassifierError
from .adapters.console_notifier import ConsoleNotifier
from .config import Config, load_config
from .core.entries import Entry
from .core.ingest import SAMPLE_DUMP
from .core.reminders import ReminderError
from .core.views import GroupingMode, Scope, day_agenda
from .reminders import ReminderService
from .sync import EntryNotFoundError, InvalidFieldError, Mutation, SyncEngine
from .workflows import DumpOutcome, build_classifier, build_engine, commit_raw, dump_thoughts

SCOPES = [s.value for s in Scope]
GROUPINGS = [g.value for g in GroupingMode]


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _engine(config: Config) -> SyncEngine:
    try:
        return build_engine(config)
    except ValueError as e:
        _fail(str(e))


def _report(mutation: Mutation, success: str) -> None:
    if mutation.error:
        _fail(str(mutation.error))
    click.echo(success)


def _report_dump(outcome: DumpOutcome) -> None:
    if not outcome.result.ok:
        _fail(f"Could not understand the classifier response: {outcome.result.reason}")
    if outcome.mutation and outcome.mutation.error:
        _fail(str(outcome.mutation.error))
    entries = outcome.result.entries
    click.echo(f"Saved {len(entries)} entr{'y' if len(entries) == 1 else 'ies'}.")
    for entry in entries:
        click.echo(f"  [{entry.type.value}] {entry.text}")


def _format_entry(entry: Entry, tz) -> str:
    check = "x" if entry.is_completed else " "
    when = ""
    if entry.start_time:
        start = entry.start_time.astimezone(tz) if entry.start_time.tzinfo else entry.start_time
        when = f" @ {start.strftime('%a %b %d %H:%M')}"
        if entry.end_time:
            end = entry.end_time.astimezone(tz) if entry.end_time.tzinfo else entry.end_time
            when += f"-{end.strftime('%H:%M')}"
    return f"[{check}] {entry.text}{when}  ({entry.type.value}, {entry.id[:8]})"


async def _loaded(config: Config) -> SyncEngine:
    engine = _engine(config)
    await engine.refresh()
    if engine.last_error:
        _fail(str(engine.last_error))
    return engine


def _resolve_id(engine: SyncEngine, prefix: str) -> str:
    """Accept a full id or a unique prefix as shown by `list`."""
    matches = [e.id for e in engine.entries if e.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        _fail(f"No entry with id {prefix}")
    _fail(f"Id prefix {prefix} is ambiguous")


@click.group()
@click.version_option()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx, verbose: bool):
    """Clarity - Mind dump planner CLI."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if verbose else logging.WARNING,
    )
    ctx.obj = load_config()


@main.command()
@click.argument("text", required=False)
@click.option("--sample", is_flag=True, help="Use built-in sample text")
@click.pass_obj
def dump(config: Config, text: str | None, sample: bool):
    """Categorise a free-form text dump and save the entries."""
    if sample:
        text = SAMPLE_DUMP
    if not text:
        text = click.get_text_stream("stdin").read()

    async def run():
        engine = _engine(config)
        return await dump_thoughts(text, build_classifier(config), engine)

    try:
        outcome = asyncio.run(run())
    except (ClassifierError, ValueError) as e:
        _fail(str(e))
    _report_dump(outcome)


@main.command("ingest")
@click.argument("source", type=click.File("r"), default="-")
@click.pass_obj
def ingest_command(config: Config, source):
    """Save entries from raw classifier output (file or stdin)."""
    raw = source.read()

    async def run():
        return await commit_raw(raw, _engine(config))

    _report_dump(asyncio.run(run()))


@main.command("list")
@click.option("--scope", type=click.Choice(SCOPES), default=None, help="Time window")
@click.option("--group", "grouping", type=click.Choice(GROUPINGS), default="priority", help="Grouping mode")
@click.pass_obj
def list_entries(config: Config, scope: str | None, grouping: str):
    """Show the planning view."""
    try:
        scope_value = Scope(scope or config.default_scope)
    except ValueError:
        scope_value = Scope.DAY
    engine = asyncio.run(_loaded(config))
    now = datetime.now(config.tz)
    groups = engine.grouped_view(scope_value, GroupingMode(grouping), now)

    if not groups:
        click.echo("Nothing planned.")
        return

    for group in groups:
        click.secho(group.label, bold=True)
        for entry in group.entries:
            click.echo(f"  {_format_entry(entry, config.tz)}")


@main.command()
@click.argument("day", type=click.DateTime(formats=["%Y-%m-%d"]), required=False)
@click.pass_obj
def agenda(config: Config, day: datetime | None):
    """Show entries scheduled on a day (default today)."""
    target = day.date() if day else date.today()
    engine = asyncio.run(_loaded(config))
    entries = day_agenda(list(engine.entries), target, datetime.now(config.tz))

    if not entries:
        click.echo(f"No items scheduled for {target.strftime('%B %d, %Y')}.")
        return

    click.secho(target.strftime("%A, %B %d"), bold=True)
    for entry in entries:
        click.echo(f"  {_format_entry(entry, config.tz)}")
        if entry.note:
            click.echo(f"      {entry.note}")


@main.command()
@click.argument("text")
@click.pass_obj
def add(config: Config, text: str):
    """Add a task directly."""

    async def run():
        return await _engine(config).add_direct(text)

    try:
        mutation = asyncio.run(run())
    except InvalidFieldError as e:
        _fail(str(e))
    _report(mutation, "Task added.")


@main.command()
@click.argument("entry_id")
@click.pass_obj
def done(config: Config, entry_id: str):
    """Toggle completion of a task."""

    async def run():
        engine = await _loaded(config)
        return await engine.toggle_complete(_resolve_id(engine, entry_id))

    try:
        mutation = asyncio.run(run())
    except EntryNotFoundError as e:
        _fail(f"No entry with id {e}")
    _report(mutation, "Updated.")


@main.command()
@click.argument("entry_id")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_obj
def delete(config: Config, entry_id: str, yes: bool):
    """Delete an entry. This cannot be undone."""
    engine = asyncio.run(_loaded(config))
    full_id = _resolve_id(engine, entry_id)
    entry = engine.find(full_id)
    if not yes:
        click.confirm(f'Delete "{entry.text}"? You won\'t be able to revert this', abort=True)

    mutation = asyncio.run(engine.delete(full_id))
    _report(mutation, "Deleted.")


@main.command("set")
@click.argument("entry_id")
@click.argument("field")
@click.argument("value", required=False)
@click.option("--clear", is_flag=True, help="Clear an optional field (note, start, end)")
@click.pass_obj
def set_command(config: Config, entry_id: str, field: str, value: str | None, clear: bool):
    """Change one field: category, title, note, start, end, completed."""
    if value is None and not clear:
        _fail("Give a value or --clear")
    if field.lower() in ("completed", "completion", "is_completed") and value is not None:
        value = value.lower() in ("1", "true", "yes", "y")

    async def run():
        engine = await _loaded(config)
        return await engine.set_field(_resolve_id(engine, entry_id), field, None if clear else value)

    try:
        mutation = asyncio.run(run())
    except (InvalidFieldError, EntryNotFoundError) as e:
        _fail(str(e))
    _report(mutation, "Updated.")


@main.command()
@click.argument("entry_id")
@click.argument("position", type=int)
@click.pass_obj
def move(config: Config, entry_id: str, position: int):
    """Move an entry to a position (0 = top)."""

    async def run():
        engine = await _loaded(config)
        return await engine.move(_resolve_id(engine, entry_id), position)

    _report(asyncio.run(run()), "Reordered.")


@main.command()
@click.argument("entry_id")
@click.argument("when")
@click.option("--before", type=int, default=0, help="Minutes before the time")
@click.pass_obj
def remind(config: Config, entry_id: str, when: str, before: int):
    """Remind me about an entry at WHEN (e.g. "3pm", "in 20 minutes").

    Same-day reminders keep this command running until they fire.
    """
    if before and config.reminder_offsets and before not in config.reminder_offsets:
        click.echo(f"Note: usual lead times are {', '.join(map(str, config.reminder_offsets))} minutes")

    async def run():
        engine = await _loaded(config)
        entry = engine.find(_resolve_id(engine, entry_id))

        fired = asyncio.Event()
        scheduler = AsyncIOScheduler(timezone=config.tz)
        service = ReminderService(scheduler, ConsoleNotifier(on_notify=fired.set), config.tz)
        reminder = service.schedule(entry, when, before)

        if not reminder.is_scheduled:
            click.echo(
                f"Reminder set for {reminder.resolved.instant.strftime('%a %b %d %H:%M')} "
                "(only same-day reminders are delivered)."
            )
            return

        click.echo(f'Reminder set for "{entry.text}" {reminder.timing}. Waiting...')
        scheduler.start()
        try:
            await fired.wait()
        finally:
            scheduler.shutdown(wait=False)

    try:
        asyncio.run(run())
    except (ReminderError, ValueError) as e:
        _fail(str(e))
    except KeyboardInterrupt:
        click.echo("Reminder cancelled.")


if __name__ == "__main__":
    main()
