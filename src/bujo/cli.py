"""bujo CLI - bullet journal in the terminal."""

import asyncio
import json
import logging
import sys
from dataclasses import replace
from datetime import date

import click

from .adapters.http_gateway import HttpJournalGateway
from .config import CONFIG_FILE, Config, load_config
from .core.bullets import apply_type_prefix, indent_bullet, new_draft, toggle_checked
from .core.dates import InvalidInput, format_day_header, month_name, mood_calendar_rows, validate_day_input
from .core.journal import BulletKind, Day, Month
from .synchronizer import MonthSynchronizer, SessionPhase

MOOD_SYMBOLS = {0: " ", 1: "+", 2: "~", 3: "-"}
MOOD_LABELS = {1: "good / joyful", 2: "average / normal", 3: "bad / grumpy"}


def _month_args(month: int | None, year: int | None) -> tuple[int, int]:
    """CLI months are 1-12; the synchronizer uses 0-11."""
    today = date.today()
    return (month or today.month) - 1, year or today.year


async def _open_month(config: Config, month_index: int, year: int) -> MonthSynchronizer:
    """Select a month and wait until every day is loaded."""
    sync = MonthSynchronizer(
        HttpJournalGateway(config),
        max_concurrent_day_fetches=config.max_concurrent_day_fetches,
    )
    sync.select_month(month_index, year)
    await sync.drain()
    if sync.phase is SessionPhase.FAILED:
        raise RuntimeError(sync.errors[-1].message)
    return sync


def _find_day(sync: MonthSynchronizer, day_of_month: int) -> Day:
    day = sync.month.find_day_by_day_of_month(day_of_month)
    if day is None:
        raise InvalidInput(f"No entries for day {day_of_month}. Add it with 'bujo add-day {day_of_month}'.")
    return day


def _report_errors(sync: MonthSynchronizer) -> None:
    for error in sync.errors:
        click.echo(f"Warning: {error.operation}: {error.message}", err=True)


def _month_to_json(month: Month) -> dict:
    return {
        "id": month.id,
        "month": month.month_index + 1,
        "year": month.year,
        "mood": month.mood,
        "days": [
            {
                "id": day.id,
                "day": day.day_of_month,
                "bullet_points": [
                    {
                        "id": b.id,
                        "kind": b.kind.value,
                        "value": b.value,
                        "indent": b.indent,
                        "checked": b.checked,
                    }
                    for b in day.bullet_points
                ],
            }
            for day in month.days
        ],
    }


def _show_month(month: Month, active_day: int | None) -> None:
    click.echo(f"# {month_name(month.month_index)} {month.year}\n")

    if not month.days:
        click.echo("No days yet.")
    for day in month.days:
        if day.day_of_month is None:
            continue
        marker = ">" if day.day_of_month == active_day else " "
        click.echo(f"{marker} {format_day_header(day.day_of_month, month.month_index, month.year)}")
        for number, bullet in enumerate(day.bullet_points, start=1):
            pad = "  " * bullet.indent
            click.echo(f"  {number:>3}. {pad}{bullet.marker()} {bullet.value}")
        click.echo()

    click.echo("Mood")
    click.echo(" ".join(f"{name[:2]:>3}" for name in ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]))
    for row in mood_calendar_rows(month.month_index, month.year):
        if all(d is None for d in row):
            continue
        cells = []
        for d in row:
            if d is None:
                cells.append("   ")
            else:
                cells.append(f"{d:>2}{MOOD_SYMBOLS[month.mood_for(d)]}")
        click.echo(" ".join(cells))
    click.echo("  ".join(f"{MOOD_SYMBOLS[m]} {label}" for m, label in MOOD_LABELS.items()))


month_option = click.option("--month", "-m", type=click.IntRange(1, 12), help="Month (1-12), defaults to this month")
year_option = click.option("--year", "-y", type=int, help="Year, defaults to this year")


@click.group()
@click.version_option()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """bujo - calendar bullet journal CLI."""
    config = load_config()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING),
    )


@main.command()
@month_option
@year_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show(month: int | None, year: int | None, as_json: bool):
    """Show a month's days, bullets and mood."""
    config = load_config()
    month_index, year = _month_args(month, year)

    try:
        sync = asyncio.run(_open_month(config, month_index, year))
    except RuntimeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _report_errors(sync)

    if as_json:
        click.echo(json.dumps(_month_to_json(sync.month), indent=2))
    else:
        _show_month(sync.month, sync.active_day)


@main.command("add-day")
@click.argument("day")
@month_option
@year_option
def add_day(day: str, month: int | None, year: int | None):
    """Add a day to the month."""
    config = load_config()
    month_index, year = _month_args(month, year)
    try:
        day_of_month = validate_day_input(day, month_index, year)
    except InvalidInput as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    async def run() -> MonthSynchronizer:
        sync = await _open_month(config, month_index, year)
        sync.add_day(day_of_month)
        await sync.drain()
        return sync

    try:
        sync = asyncio.run(run())
    except (InvalidInput, RuntimeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _report_errors(sync)
    if sync.month.find_day_by_day_of_month(day_of_month):
        click.echo(format_day_header(day_of_month, month_index, year))


@main.command()
@click.argument("text")
@click.option("--day", "-d", "day_of_month", type=int, help="Day of month, defaults to today")
@month_option
@year_option
@click.option("--indent", type=click.IntRange(0, 4), default=0, help="Nesting depth")
def add(text: str, day_of_month: int | None, month: int | None, year: int | None, indent: int):
    """
    Add a bullet.

    Start TEXT with '#' for a task, '*' for an event or '-' for a note.
    A leading date like '5.3.2024:' files it under that date instead.
    """
    config = load_config()
    month_index, year = _month_args(month, year)
    day_of_month = day_of_month or date.today().day
    draft = apply_type_prefix(new_draft(indent=indent), text.strip())

    async def run() -> MonthSynchronizer:
        sync = await _open_month(config, month_index, year)
        day = sync.month.find_day_by_day_of_month(day_of_month)
        if day is None:
            sync.add_day(day_of_month)
            await sync.drain()
            day = _find_day(sync, day_of_month)
        sync.add_bullet(day, draft)
        await sync.drain()
        return sync

    try:
        sync = asyncio.run(run())
    except (InvalidInput, RuntimeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _report_errors(sync)
    click.echo(f"{draft.marker()} {draft.value}")


def _edit_bullet(day_of_month: int, number: int, month: int | None, year: int | None, apply) -> None:
    """Load the month, apply a change to one bullet and persist it."""
    config = load_config()
    month_index, year = _month_args(month, year)

    async def run() -> MonthSynchronizer:
        sync = await _open_month(config, month_index, year)
        day = _find_day(sync, day_of_month)
        if not 1 <= number <= len(day.bullet_points):
            raise InvalidInput(f"Day {day_of_month} has no bullet {number}")
        apply(sync, day, day.bullet_points[number - 1])
        await sync.drain()
        return sync

    try:
        sync = asyncio.run(run())
    except (InvalidInput, RuntimeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _report_errors(sync)


@main.command()
@click.argument("day_of_month", type=int)
@click.argument("number", type=int)
@month_option
@year_option
def check(day_of_month: int, number: int, month: int | None, year: int | None):
    """Toggle a task's checkbox."""

    def toggle(sync, day, bullet):
        if bullet.kind is not BulletKind.TASK:
            raise InvalidInput(f"Bullet {number} is not a task")
        sync.update_bullet(day, toggle_checked(bullet))

    _edit_bullet(day_of_month, number, month, year, toggle)


@main.command()
@click.argument("day_of_month", type=int)
@click.argument("number", type=int)
@click.option("--out", "outdent", is_flag=True, help="Decrease indentation instead")
@month_option
@year_option
def indent(day_of_month: int, number: int, outdent: bool, month: int | None, year: int | None):
    """Indent or outdent a bullet."""
    _edit_bullet(
        day_of_month,
        number,
        month,
        year,
        lambda sync, day, bullet: sync.update_bullet(day, indent_bullet(bullet, -1 if outdent else 1)),
    )


@main.command()
@click.argument("day_of_month", type=int)
@click.argument("number", type=int)
@click.argument("text")
@month_option
@year_option
def edit(day_of_month: int, number: int, text: str, month: int | None, year: int | None):
    """Replace a bullet's text (a leading '#', '*' or '-' changes its type)."""
    _edit_bullet(
        day_of_month,
        number,
        month,
        year,
        lambda sync, day, bullet: sync.update_bullet(day, replace(apply_type_prefix(bullet, text), dirty=False)),
    )


@main.command()
@click.argument("day_of_month", type=int)
@click.argument("number", type=int)
@month_option
@year_option
def delete(day_of_month: int, number: int, month: int | None, year: int | None):
    """Delete a bullet."""
    _edit_bullet(day_of_month, number, month, year, lambda sync, day, bullet: sync.delete_bullet(day, bullet))


@main.command()
@click.argument("day_of_month", type=int)
@click.argument("value", type=click.IntRange(0, 3), required=False)
@month_option
@year_option
def mood(day_of_month: int, value: int | None, month: int | None, year: int | None):
    """Set a day's mood (0 none, 1 good, 2 average, 3 bad); cycles it when VALUE is omitted."""
    config = load_config()
    month_index, year = _month_args(month, year)

    async def run() -> tuple[MonthSynchronizer, int]:
        sync = await _open_month(config, month_index, year)
        if value is None:
            new_value = sync.cycle_mood(day_of_month)
        else:
            sync.set_mood(day_of_month, value)
            new_value = value
        await sync.drain()
        return sync, new_value

    try:
        sync, new_value = asyncio.run(run())
    except (InvalidInput, RuntimeError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _report_errors(sync)
    click.echo(f"{day_of_month:02d}: {MOOD_LABELS.get(new_value, 'none')}")


@main.command("config")
def show_config():
    """Show the active configuration."""
    config = load_config()
    click.echo(f"Config file: {CONFIG_FILE}{'' if CONFIG_FILE.exists() else ' (not found, using defaults)'}")
    click.echo(f"API base URL: {config.api_base_url}")
    click.echo(f"Request timeout: {config.request_timeout or 'none'}")
    click.echo(f"Max concurrent day fetches: {config.max_concurrent_day_fetches or 'unbounded'}")
    click.echo(f"Log level: {config.log_level}")


if __name__ == "__main__":
    main()
