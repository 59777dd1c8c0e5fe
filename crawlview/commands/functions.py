"""List the functions available in search queries."""

from __future__ import annotations

import click

from crawlview.cli import Context, pass_context
from crawlview.utils.output import console, create_table

# (name, arguments, description), in display order
FUNCTION_REFERENCE: list[tuple[str, str, str]] = [
    ("and", "EXPR...", "all arguments must match"),
    ("or", "EXPR...", "any argument must match"),
    ("not", "EXPR", "negates the argument"),
    ("tag", "STRING", "exact tag match (case-insensitive)"),
    ("type", "STRING", 'file type: "image", "video", or "text"'),
    ("site", "STRING", "site slug match (case-sensitive)"),
    ("fulltext", "STRING", "search in title, meta, description, url, and text files"),
    ("title", "STRING", "substring match in title (case-insensitive)"),
    ("meta", "STRING", "substring match in any meta key or value (case-insensitive)"),
    ("desc", "STRING", "substring match in description (case-insensitive)"),
    ("url", "STRING", "substring match in source URL (case-insensitive)"),
    ("after", "TIME", "items published at or after the time"),
    ("before", "TIME", "items published at or before the time"),
    ("during", "TIME", "items published within a time range"),
]

EXAMPLES: list[str] = [
    '(tag "foobar")',
    '(and (tag "foobar") (type "image") (not (type "video")))',
    '(or (title "example") (fulltext "search term"))',
    '(after "2024-01-01T00:00:00Z")',
    '(during "last week")',
    '(and (site "blog") (before "2 months ago"))',
]

TIME_FORMATS: list[str] = [
    "2024-01-01T00:00:00Z (RFC 3339)",
    "2 weeks ago, a month ago",
    "today, yesterday, this/last week, this/last month, this/last year",
    "january, sept (most recent one)",
    "2025",
    "1704067200000 (Unix milliseconds)",
    "1/15/2025, Jan 15th, 2025, 2025-01-15",
]


@click.command("functions")
@pass_context
def cli(ctx: Context) -> None:
    """Show the functions available in search queries, with examples."""
    table = create_table(title="Available Functions", show_header=True, header_style="bold")
    table.add_column("Function", style="info", no_wrap=True)
    table.add_column("Arguments", no_wrap=True)
    table.add_column("Description")
    for name, args, description in FUNCTION_REFERENCE:
        table.add_row(name, args, description)
    console.print(table)

    console.print()
    console.print("[bold]Time formats[/bold] (after, before, during)")
    for time_format in TIME_FORMATS:
        console.print(f"  {time_format}", markup=False)

    console.print()
    console.print("[bold]Examples[/bold]")
    for example in EXAMPLES:
        console.print(f"  {example}", markup=False, highlight=False)

