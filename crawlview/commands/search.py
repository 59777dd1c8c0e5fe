"""Search crawled items with s-expression queries."""

from __future__ import annotations

import io
import json
from datetime import datetime, tzinfo
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from crawlview import timestring
from crawlview.cli import Context, pass_context
from crawlview.config import Config
from crawlview.exceptions import SearchParseError, WorkDirError
from crawlview.models import CrawlItem
from crawlview.search.parser import parse_search_expr
from crawlview.search.query import Page, execute_search
from crawlview.utils.output import (
    THEME,
    console,
    create_table,
    debug,
    error,
    info,
    pager_print,
    verbose,
)
from crawlview.workdir import load_work_dirs

EXIT_SUCCESS = 0
EXIT_NO_RESULTS = 0
EXIT_PARSE_ERROR = 1
EXIT_WORKDIR_ERROR = 2

_DATE_FORMAT = "%Y-%m-%d %H:%M"
_MAX_TAGS = 5


def _format_published(millis: int, tz: tzinfo) -> str:
    try:
        moment = timestring.from_millis(millis, tz)
    except OverflowError:
        return str(millis)
    return moment.strftime(_DATE_FORMAT)


def _format_tags(item: CrawlItem) -> str:
    tags = [str(t) for t in item.tags]
    if len(tags) > _MAX_TAGS:
        return ", ".join(tags[:_MAX_TAGS]) + f" (+{len(tags) - _MAX_TAGS})"
    return ", ".join(tags)


def _parse_now(value: str | None, tz: tzinfo) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"not an ISO 8601 datetime: {value}", param_hint="--now") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


@click.command("search")
@click.argument("query", nargs=-1, required=True)
@click.option(
    "--work-dir",
    "-w",
    "work_dirs",
    multiple=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Crawl work directory to search (repeatable; default: paths.work_dirs from config)",
)
@click.option(
    "--page",
    "-p",
    type=click.IntRange(min=1),
    default=1,
    show_default=True,
    help="Page of results to show (1-based)",
)
@click.option(
    "--per-page",
    "-n",
    type=click.IntRange(min=1),
    default=None,
    help="Results per page (default: search.per_page from config, 15)",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "keys", "json"]),
    default="table",
    help="Output format (default: table)",
)
@click.option(
    "--now",
    default=None,
    help="Reference time for relative dates, as ISO 8601 (default: current time)",
)
@pass_context
def cli(
    ctx: Context,
    query: tuple[str, ...],
    work_dirs: tuple[Path, ...],
    page: int,
    per_page: int | None,
    output_format: str,
    now: str | None,
) -> None:
    """Search crawled items with an s-expression query.

    QUERY is a search expression. Multiple arguments are joined with
    spaces. Results are sorted newest first and paginated.

    \b
    Syntax examples:
      crawlview search '(tag "landscape")'
      crawlview search '(and (type "video") (after "2 weeks ago"))'
      crawlview search '(or (site "blog") (title "release"))'
      crawlview search '(not (during "last month"))'

    \b
    Output formats:
      --format table   Rich table (default)
      --format keys    One site/key per line (for piping)
      --format json    JSON object with page info and items

    Run 'crawlview functions' for the full list of query functions.
    """
    config = ctx.config if ctx.config is not None else Config()

    tz = config.timezone
    reference = _parse_now(now, tz)

    query_string = " ".join(query)

    try:
        expr = parse_search_expr(query_string, now=reference, tz=tz)
    except SearchParseError as e:
        error(f"Parse error: {e}")
        raise SystemExit(EXIT_PARSE_ERROR)
    debug(escape(f"Parsed query: {expr!r}"))

    paths = list(work_dirs) or config.work_dirs
    if not paths:
        error(
            "No work directories to search",
            hint="Pass --work-dir or set paths.work_dirs in the config file",
        )
        raise SystemExit(EXIT_WORKDIR_ERROR)

    try:
        loaded = load_work_dirs(paths)
    except WorkDirError as e:
        error(str(e))
        raise SystemExit(EXIT_WORKDIR_ERROR)
    for work_dir in loaded:
        message = f"Loaded {len(work_dir.items)} items from {work_dir.slug} ({work_dir.path})"
        verbose(escape(message))

    items = [item for work_dir in loaded for item in work_dir.items]
    result = execute_search(
        items,
        expr,
        page=page,
        per_page=per_page or config.per_page,
        now=reference,
        tz=tz,
    )

    if output_format == "json":
        _print_json(result)
        raise SystemExit(EXIT_SUCCESS)

    if result.total == 0:
        info(f"No results for: {query_string}")
        raise SystemExit(EXIT_NO_RESULTS)

    if output_format == "table":
        _print_table(result, query_string, tz)
    elif output_format == "keys":
        _print_keys(result)

    raise SystemExit(EXIT_SUCCESS)


def _print_table(result: Page, query_string: str, tz: tzinfo) -> None:
    """Print results as a Rich table, using pager when appropriate."""
    info(
        f"Search: {query_string} ({result.total} results, "
        f"page {result.page}/{max(result.page_count, 1)})"
    )

    table = create_table(show_header=True, header_style="bold")
    table.add_column("Published", style="item.date", no_wrap=True)
    table.add_column("Site", style="item.site", no_wrap=True)
    table.add_column("Title", style="item.title")
    table.add_column("Tags", style="item.tags")
    table.add_column("Files", justify="right")
    table.add_column("Key", no_wrap=True)

    for item in result.items:
        table.add_row(
            _format_published(item.source_published, tz),
            item.site_slug,
            item.title,
            _format_tags(item),
            str(len(item.flat_files())),
            item.key,
        )

    # Render to a buffer so the output can go through the pager
    buf = io.StringIO()
    render_console = Console(
        file=buf,
        theme=THEME,
        force_terminal=not console.no_color,
        width=max(console.width, 120),
        no_color=console.no_color,
    )
    render_console.print(table)
    pager_print(buf.getvalue(), header_lines=3)


def _print_keys(result: Page) -> None:
    """Print one site/key pair per line."""
    for item in result.items:
        click.echo(f"{item.site_slug}/{item.key}")


def _print_json(result: Page) -> None:
    payload = {
        "page": result.page,
        "per_page": result.per_page,
        "total": result.total,
        "page_count": result.page_count,
        "items": [{"site": item.site_slug, **item.to_dict()} for item in result.items],
    }
    click.echo(json.dumps(payload, indent=2))
