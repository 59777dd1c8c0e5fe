"""Exception hierarchy for crawlview."""

from pathlib import Path


class CrawlviewError(Exception):
    """Base exception for all crawlview errors.

    All exceptions in this package inherit from this class,
    allowing callers to catch all crawlview errors with
    a single except clause.
    """

    pass


# Configuration Errors
class ConfigError(CrawlviewError):
    """Configuration-related errors."""

    pass


class ConfigParseError(ConfigError):
    """Configuration file has invalid syntax."""

    def __init__(self, path: Path, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"Invalid config at {path}: {detail}")


class ConfigValidationError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid config value for '{key}': {reason}")


# Work Directory Errors
class WorkDirError(CrawlviewError):
    """A crawl work directory could not be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot load work directory {path}: {reason}")


class ItemFormatError(CrawlviewError):
    """A crawled item does not match the expected JSON shape."""

    def __init__(self, key: str | None, reason: str) -> None:
        self.key = key
        self.reason = reason
        label = key if key is not None else "<unknown>"
        super().__init__(f"Malformed item {label}: {reason}")


# Time String Errors
class TimeStringError(CrawlviewError, ValueError):
    """A time expression matched none of the supported formats."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Could not parse time string: {value}")


# Search Parse Errors
class SearchParseError(CrawlviewError):
    """Base class for search queries rejected while parsing.

    The string form of every subclass is suitable for showing
    to the user as the reason their query was rejected.
    """

    pass


class UnexpectedTokenError(SearchParseError):
    """A token appeared where the grammar does not allow it."""

    def __init__(self, context: str) -> None:
        self.context = context
        super().__init__(f"Unexpected token: {context}")


class UnexpectedEndError(SearchParseError):
    """The query ended before the expression was complete."""

    def __init__(self) -> None:
        super().__init__("Unexpected end of input")


class InvalidFunctionError(SearchParseError):
    """The function name of a form is not a known search function."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid function: {name}")


class InvalidArgumentError(SearchParseError):
    """A search function received the wrong number or kind of arguments."""

    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(f"Invalid argument: {description}")


class InvalidTimestampError(SearchParseError):
    """A temporal predicate's argument is not a recognised time string."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"Invalid timestamp: {raw}")
