"""Write a starter configuration, optionally seeded with work directories."""

from __future__ import annotations

import re
from importlib import resources
from pathlib import Path

import click
import tomli_w

from crawlview.cli import Context, pass_context
from crawlview.config import get_default_config_path, load_config
from crawlview.exceptions import ConfigError
from crawlview.timestring import get_timezone
from crawlview.utils.output import error, info, success, warning

_TIMEZONE_LINE = re.compile(r"^timezone = .*$", re.MULTILINE)
_WORK_DIRS_LINE = re.compile(r"^work_dirs = \[\]$", re.MULTILINE)


def _load_example_config() -> str:
    """Load the example configuration from package data."""
    return resources.files("crawlview").joinpath("config.example.toml").read_text()


def _toml_line(key: str, value: object) -> str:
    return tomli_w.dumps({key: value}).rstrip("\n")


def render_config(
    template: str, *, timezone: str | None = None, work_dirs: tuple[Path, ...] = ()
) -> str:
    """Fill the example config with a timezone and work directories.

    Options that are not given leave the template lines untouched.
    """
    if timezone is not None:
        line = _toml_line("timezone", timezone)
        template = _TIMEZONE_LINE.sub(lambda _: line, template)
    if work_dirs:
        line = _toml_line("work_dirs", [str(p) for p in work_dirs])
        template = _WORK_DIRS_LINE.sub(lambda _: line, template)
    return template


@click.command("init-config")
@click.option(
    "--force",
    "-f",
    is_flag=True,
    default=False,
    help="Overwrite existing config file",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output path for config file (default: ~/.config/crawlview/config.toml)",
)
@click.option(
    "--work-dir",
    "-w",
    "work_dirs",
    type=click.Path(file_okay=False, path_type=Path),
    multiple=True,
    help="Crawl work directory to search by default (repeatable)",
)
@click.option(
    "--timezone",
    "-z",
    default=None,
    help="Timezone for interpreting dates in queries (e.g. Europe/Berlin)",
)
@pass_context
def cli(
    ctx: Context,
    force: bool,
    output: Path | None,
    work_dirs: tuple[Path, ...],
    timezone: str | None,
) -> None:
    """Create a configuration file for crawlview.

    The file is written to ~/.config/crawlview/config.toml unless
    --output is given. Work directories and the query timezone can be
    filled in directly; the written file is loaded back to check it.

    Examples:

    \b
      # Default settings
      crawlview init-config

    \b
      # Search two crawled sites by default, dates in Berlin time
      crawlview init-config -w ~/crawls/blog -w ~/crawls/gallery -z Europe/Berlin

    \b
      # Overwrite an existing config
      crawlview init-config --force
    """
    if timezone is not None and get_timezone(timezone) is None:
        error(f"Unknown timezone: {timezone}", hint="Use an IANA name such as America/New_York")
        raise SystemExit(1)

    config_path = output if output is not None else get_default_config_path()
    config_path = config_path.expanduser().resolve()

    if config_path.exists() and not force:
        error(
            f"Config file already exists: {config_path}",
            hint="Use --force to overwrite",
        )
        raise SystemExit(1)

    resolved_dirs = tuple(p.expanduser().resolve() for p in work_dirs)
    content = render_config(_load_example_config(), timezone=timezone, work_dirs=resolved_dirs)

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(content, encoding="utf-8")
    except OSError as e:
        error(f"Failed to write config file: {e}")
        raise SystemExit(1)

    try:
        config, warnings = load_config(config_path)
    except ConfigError as e:
        error(f"Written config does not load: {e}")
        raise SystemExit(1)

    success(f"Created config file: {config_path}")
    for message in warnings:
        warning(message)
    if config.work_dirs:
        info(f"Default work directories: {len(config.work_dirs)}")
    else:
        info("Add your crawl work directories under [paths] work_dirs, or pass --work-dir.")
