"""Configuration management for crawlview."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import Any

from crawlview.exceptions import (
    ConfigParseError,
    ConfigValidationError,
)
from crawlview.search.query import DEFAULT_PER_PAGE
from crawlview.timestring import DEFAULT_TIMEZONE_NAME, get_timezone


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".config" / "crawlview" / "config.toml"


@dataclass
class Config:
    """Application configuration.

    Attributes:
        timezone_name: IANA timezone used to interpret dates in queries.
        per_page: Default number of search results per page.
        work_dirs: Work directories searched when none are given.
        colored_output: Whether to use colored terminal output.
        config_path: Path where config was loaded from (None if defaults).
    """

    timezone_name: str = DEFAULT_TIMEZONE_NAME
    per_page: int = DEFAULT_PER_PAGE
    work_dirs: list[Path] = field(default_factory=list)
    colored_output: bool = True
    config_path: Path | None = None

    @property
    def timezone(self) -> tzinfo:
        tz = get_timezone(self.timezone_name)
        if tz is None:
            raise ConfigValidationError("search.timezone", self.timezone_name, "unknown timezone")
        return tz

    def validate(self) -> list[str]:
        """Validate configuration values.

        Returns:
            List of warning messages for non-fatal issues.

        Raises:
            ConfigValidationError: If a critical validation fails.
        """
        warnings: list[str] = []

        if get_timezone(self.timezone_name) is None:
            raise ConfigValidationError("search.timezone", self.timezone_name, "unknown timezone")

        if self.per_page < 1:
            raise ConfigValidationError("search.per_page", self.per_page, "must be at least 1")

        self.work_dirs = [p.expanduser().resolve() for p in self.work_dirs]
        # Missing directories are warnings, they may not have been crawled yet.
        for work_dir in self.work_dirs:
            if not work_dir.is_dir():
                warnings.append(f"Work directory not found: {work_dir}")

        return warnings


def load_config(config_path: Path | None = None) -> tuple[Config, list[str]]:
    """Load configuration from file or use defaults.

    Args:
        config_path: Explicit config file path. If None, uses default location.

    Returns:
        Tuple of (Config object, list of warning messages).

    Raises:
        ConfigParseError: If config file exists but has invalid syntax.
        ConfigValidationError: If config values are invalid.
    """
    warnings: list[str] = []

    if config_path is None:
        config_path = get_default_config_path()

    config_path = config_path.expanduser().resolve()

    if not config_path.exists():
        config = Config()
        warnings.append(
            f"No config file found at {config_path}. Using defaults. "
            f"Create config with: crawlview init-config"
        )
        return config, warnings + config.validate()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(config_path, str(e)) from e

    config = _parse_config_dict(data, config_path)
    config_warnings = config.validate()

    return config, warnings + config_warnings


def _parse_config_dict(data: dict[str, Any], config_path: Path) -> Config:
    """Parse configuration dictionary into Config object."""
    config = Config(config_path=config_path)

    # Parse [search] section
    search = data.get("search", {})
    if "timezone" in search:
        value = search["timezone"]
        if not isinstance(value, str):
            raise ConfigValidationError("search.timezone", value, "must be a string")
        config.timezone_name = value

    if "per_page" in search:
        value = search["per_page"]
        if not isinstance(value, int) or isinstance(value, bool):
            raise ConfigValidationError("search.per_page", value, "must be an integer")
        config.per_page = value

    # Parse [paths] section
    paths = data.get("paths", {})
    if "work_dirs" in paths:
        value = paths["work_dirs"]
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            raise ConfigValidationError("paths.work_dirs", value, "must be a list of string paths")
        config.work_dirs = [Path(p) for p in value]

    # Parse [display] section
    display = data.get("display", {})
    if "colored_output" in display:
        value = display["colored_output"]
        if not isinstance(value, bool):
            raise ConfigValidationError("display.colored_output", value, "must be a boolean")
        config.colored_output = value

    return config
