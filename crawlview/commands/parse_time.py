"""Show how a time string is resolved."""

from __future__ import annotations

import json
from datetime import datetime, tzinfo

import click

from crawlview import timestring
from crawlview.cli import Context, pass_context
from crawlview.config import Config
from crawlview.exceptions import TimeStringError
from crawlview.utils.output import console, error


def _describe(millis: int, tz: tzinfo) -> str:
    try:
        moment = timestring.from_millis(millis, tz)
    except OverflowError:
        return f"{millis} ms"
    return f"{moment.isoformat(timespec='milliseconds')} ({millis} ms)"


@click.command("parse-time")
@click.argument("value", nargs=-1, required=True)
@click.option(
    "--now",
    default=None,
    help="Reference time as ISO 8601 (default: current time)",
)
@click.option(
    "--timezone",
    "-z",
    "timezone_name",
    default=None,
    help="IANA timezone for calendar dates (default: search.timezone from config)",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print the result as JSON",
)
@pass_context
def cli(
    ctx: Context,
    value: tuple[str, ...],
    now: str | None,
    timezone_name: str | None,
    as_json: bool,
) -> None:
    """Resolve a time string the way after/before/during do.

    VALUE may be split over several arguments; they are joined with spaces.

    \b
    Examples:
      crawlview parse-time today
      crawlview parse-time 2 weeks ago
      crawlview parse-time "Jan 15, 2025" --timezone Europe/Berlin
      crawlview parse-time "last month" --now 2025-01-15T12:00:00-05:00
    """
    config = ctx.config if ctx.config is not None else Config()

    if timezone_name is not None:
        tz = timestring.get_timezone(timezone_name)
        if tz is None:
            error(f"Unknown timezone: {timezone_name}")
            raise SystemExit(1)
    else:
        tz = config.timezone

    if now is None:
        reference = datetime.now(tz)
    else:
        try:
            reference = datetime.fromisoformat(now)
        except ValueError:
            error(f"Invalid --now value: {now}", hint="Use ISO 8601, e.g. 2025-01-15T12:00:00")
            raise SystemExit(1)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=tz)

    text = " ".join(value)
    try:
        spec = timestring.parse(text, reference, tz)
    except TimeStringError as e:
        error(str(e))
        raise SystemExit(1)

    if as_json:
        if isinstance(spec, timestring.Range):
            payload = {"kind": "range", "start": spec.start, "end": spec.end}
        else:
            payload = {"kind": "moment", "at": spec.at}
        click.echo(json.dumps(payload))
        return

    if isinstance(spec, timestring.Range):
        console.print("[timespec]Range[/timespec]")
        console.print(f"  start: {_describe(spec.start, tz)}")
        console.print(f"  end:   {_describe(spec.end, tz)}")
    else:
        console.print(f"[timespec]Moment[/timespec] {_describe(spec.at, tz)}")
