"""Flexible time string parsing.

Turns human-readable time expressions into either a single moment or an
inclusive range, both expressed in milliseconds since the Unix epoch. The
caller supplies the reference "now" and the timezone used to interpret
calendar-based expressions.

Supported formats, tried in this order (the first match wins):

    - RFC 3339 / ISO 8601 with an offset: ``2024-01-01T00:00:00Z``
    - Relative durations: ``2 weeks ago``, ``1 year ago``, ``a month ago``
    - Named periods: ``today``, ``yesterday``, ``this week``, ``last week``,
      ``this month``, ``last month``, ``this year``, ``last year``
    - Month names: ``January``, ``jan`` (most recent started instance)
    - Years: ``2025``
    - Unix milliseconds: ``1704067200000`` (more than four characters)
    - American dates: ``1/15/2025``, ``01/15/2025``
    - Human dates: ``Jan 15, 2025``, ``January 15th 2025``
    - ISO dates: ``2025-01-15``
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable

from dateutil import parser as dateutil_parser
from dateutil import tz as dateutil_tz

from crawlview.exceptions import TimeStringError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE_NAME = "America/New_York"
DEFAULT_TIMEZONE: tzinfo = dateutil_tz.gettz(DEFAULT_TIMEZONE_NAME)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1

_MONTHS: dict[str, int] = {
    "january": 1,
    "jan": 1,
    "february": 2,
    "feb": 2,
    "march": 3,
    "mar": 3,
    "april": 4,
    "apr": 4,
    "may": 5,
    "june": 6,
    "jun": 6,
    "july": 7,
    "jul": 7,
    "august": 8,
    "aug": 8,
    "september": 9,
    "sep": 9,
    "sept": 9,
    "october": 10,
    "oct": 10,
    "november": 11,
    "nov": 11,
    "december": 12,
    "dec": 12,
}

# Fixed-length units, in seconds. Months and years walk the calendar instead.
_UNIT_SECONDS: dict[str, int] = {
    "second": 1,
    "minute": 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
    "week": 7 * 24 * 60 * 60,
}

_UNITS = "second|minute|hour|day|week|month|year"

_RFC3339_RE = re.compile(
    r"^[0-9]{4}-[0-9]{2}-[0-9]{2}[Tt ][0-9]{2}:[0-9]{2}:[0-9]{2}(?:\.[0-9]+)?(?:[Zz]|[+-][0-9]{2}:[0-9]{2})$"
)
_RELATIVE_RE = re.compile(rf"^([0-9]+)\s+({_UNITS})s?\s+ago$")
_RELATIVE_SINGLE_RE = re.compile(rf"^a\s+({_UNITS})\s+ago$")
_YEAR_RE = re.compile(r"^([0-9]{4})$")
_MILLIS_RE = re.compile(r"^[+-]?[0-9]+$")
_AMERICAN_RE = re.compile(r"^([0-9]{1,2})/([0-9]{1,2})/([0-9]{4})$")
_HUMAN_RE = re.compile(
    r"^(january|february|march|april|may|june|july|august|september|october|november|december"
    r"|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec)"
    r"\s+([0-9]{1,2})(?:st|nd|rd|th)?,?\s+([0-9]{4})$",
    re.IGNORECASE | re.ASCII,
)
_ISO_DATE_RE = re.compile(r"^([0-9]{4})-([0-9]{1,2})-([0-9]{1,2})$")


@dataclass(frozen=True)
class Moment:
    """A single instant, in milliseconds since the epoch."""

    at: int

    def for_after(self) -> int:
        return self.at

    def for_before(self) -> int:
        return self.at

    def contains(self, timestamp_ms: int) -> bool:
        return timestamp_ms == self.at

    def is_range(self) -> bool:
        return False


@dataclass(frozen=True)
class Range:
    """An inclusive span of time, in milliseconds since the epoch.

    ``for_after`` yields the end of the span and ``for_before`` its start,
    so "after last month" means after the whole of last month.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Range start {self.start} is after its end {self.end}")

    def for_after(self) -> int:
        return self.end

    def for_before(self) -> int:
        return self.start

    def contains(self, timestamp_ms: int) -> bool:
        return self.start <= timestamp_ms <= self.end

    def is_range(self) -> bool:
        return True


TimeSpec = Moment | Range


def get_timezone(name: str) -> tzinfo | None:
    """Look up an IANA timezone by name, returning None if it is unknown."""
    if not name or not name.strip():
        return None
    return dateutil_tz.gettz(name.strip())


def to_millis(moment: datetime) -> int:
    """Convert an aware datetime to milliseconds since the epoch."""
    return (moment - _EPOCH) // _ONE_MS


def from_millis(millis: int, tz: tzinfo) -> datetime:
    """Convert milliseconds since the epoch to an aware datetime in ``tz``.

    Raises:
        OverflowError: If the instant is outside the datetime range.
    """
    return (_EPOCH + millis * _ONE_MS).astimezone(tz)


def _localize(naive: datetime, tz: tzinfo) -> datetime | None:
    """Attach ``tz`` to a wall-clock time, rejecting skipped or repeated times."""
    local = naive.replace(tzinfo=tz)
    try:
        if not dateutil_tz.datetime_exists(local) or dateutil_tz.datetime_ambiguous(local):
            return None
    except OverflowError:
        return None
    return local


def _midnight(tz: tzinfo, day: date) -> datetime | None:
    return _localize(datetime(day.year, day.month, day.day), tz)


def _span(start: datetime | None, next_start: datetime | None) -> Range | None:
    """Range from ``start`` up to one millisecond before ``next_start``."""
    if start is None or next_start is None:
        return None
    return Range(start=to_millis(start), end=to_millis(next_start) - 1)


def _day_range(tz: tzinfo, year: int, month: int, day: int) -> Range | None:
    try:
        first = date(year, month, day)
        following = first + timedelta(days=1)
    except (ValueError, OverflowError):
        return None
    return _span(_midnight(tz, first), _midnight(tz, following))


def _week_range(tz: tzinfo, sunday: date) -> Range | None:
    try:
        following = sunday + timedelta(days=7)
    except OverflowError:
        return None
    return _span(_midnight(tz, sunday), _midnight(tz, following))


def _month_range(tz: tzinfo, year: int, month: int) -> Range | None:
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    try:
        first = date(year, month, 1)
        following = date(next_year, next_month, 1)
    except ValueError:
        return None
    return _span(_midnight(tz, first), _midnight(tz, following))


def _year_range(tz: tzinfo, year: int) -> Range | None:
    try:
        first = date(year, 1, 1)
        following = date(year + 1, 1, 1)
    except ValueError:
        return None
    return _span(_midnight(tz, first), _midnight(tz, following))


def _shift_calendar(now: datetime, *, months: int) -> datetime | None:
    """Move ``now`` back by whole months, keeping the wall-clock fields."""
    total = now.year * 12 + (now.month - 1) - months
    year, month_index = divmod(total, 12)
    try:
        naive = now.replace(tzinfo=None, year=year, month=month_index + 1)
    except ValueError:
        return None
    return _localize(naive, now.tzinfo)


def _subtract(now: datetime, amount: int, unit: str) -> Moment | None:
    if unit in _UNIT_SECONDS:
        try:
            target = now.astimezone(timezone.utc) - timedelta(seconds=amount * _UNIT_SECONDS[unit])
        except OverflowError:
            return None
        return Moment(to_millis(target))

    months = amount * 12 if unit == "year" else amount
    shifted = _shift_calendar(now, months=months)
    if shifted is None:
        return None
    return Moment(to_millis(shifted))


def _try_rfc3339(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    if not _RFC3339_RE.match(text):
        return None
    try:
        parsed = dateutil_parser.isoparse(text.upper())
    except ValueError:
        return None
    return Moment(to_millis(parsed))


def _try_relative_duration(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    lowered = text.lower()
    match = _RELATIVE_RE.match(lowered)
    if match:
        return _subtract(now, int(match.group(1)), match.group(2))
    match = _RELATIVE_SINGLE_RE.match(lowered)
    if match:
        return _subtract(now, 1, match.group(1))
    return None


def _try_named_period(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    lowered = text.lower()
    today = now.date()
    # Weeks run Sunday through Saturday.
    this_sunday = today - timedelta(days=(today.weekday() + 1) % 7)

    if lowered == "today":
        return _day_range(tz, today.year, today.month, today.day)
    if lowered == "yesterday":
        yesterday = today - timedelta(days=1)
        return _day_range(tz, yesterday.year, yesterday.month, yesterday.day)
    if lowered == "this week":
        return _week_range(tz, this_sunday)
    if lowered == "last week":
        return _week_range(tz, this_sunday - timedelta(days=7))
    if lowered == "this month":
        return _month_range(tz, today.year, today.month)
    if lowered == "last month":
        if today.month == 1:
            return _month_range(tz, today.year - 1, 12)
        return _month_range(tz, today.year, today.month - 1)
    if lowered == "this year":
        return _year_range(tz, today.year)
    if lowered == "last year":
        return _year_range(tz, today.year - 1)
    return None


def _try_month_name(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    month = _MONTHS.get(text.lower())
    if month is None:
        return None
    # Most recent year in which this month has already started.
    year = now.year if month <= now.month else now.year - 1
    return _month_range(tz, year, month)


def _try_year(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    match = _YEAR_RE.match(text)
    if not match:
        return None
    return _year_range(tz, int(match.group(1)))


def _try_epoch_millis(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    # Four characters or fewer is a year, never a timestamp.
    if len(text) <= 4 or not _MILLIS_RE.match(text):
        return None
    value = int(text)
    if not _I64_MIN <= value <= _I64_MAX:
        return None
    return Moment(value)


def _try_american_date(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    match = _AMERICAN_RE.match(text)
    if not match:
        return None
    month, day, year = (int(part) for part in match.groups())
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    return _day_range(tz, year, month, day)


def _try_human_date(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    match = _HUMAN_RE.match(text)
    if not match:
        return None
    month = _MONTHS.get(match.group(1).lower())
    day = int(match.group(2))
    if month is None or not 1 <= day <= 31:
        return None
    return _day_range(tz, int(match.group(3)), month, day)


def _try_iso_date(text: str, now: datetime, tz: tzinfo) -> TimeSpec | None:
    match = _ISO_DATE_RE.match(text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    return _day_range(tz, year, month, day)


_STRATEGIES: list[tuple[str, Callable[[str, datetime, tzinfo], TimeSpec | None]]] = [
    ("rfc3339", _try_rfc3339),
    ("relative duration", _try_relative_duration),
    ("named period", _try_named_period),
    ("month name", _try_month_name),
    ("year", _try_year),
    ("epoch millis", _try_epoch_millis),
    ("american date", _try_american_date),
    ("human date", _try_human_date),
    ("iso date", _try_iso_date),
]


def parse(value: str, now: datetime, tz: tzinfo) -> TimeSpec:
    """Parse a flexible time string into a TimeSpec.

    Args:
        value: The time string to parse. Surrounding whitespace is ignored.
        now: Timezone-aware reference time for relative expressions.
        tz: Timezone used to interpret calendar dates and periods.

    Returns:
        A Moment or a Range.

    Raises:
        TimeStringError: If no supported format matches.
        ValueError: If ``now`` is a naive datetime.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")

    text = value.strip()
    local_now = now.astimezone(tz)

    for name, strategy in _STRATEGIES:
        spec = strategy(text, local_now, tz)
        if spec is not None:
            logger.debug("Time string %r matched %s: %s", text, name, spec)
            return spec

    raise TimeStringError(text)
