"""Unit tests for flexible time string parsing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo

import pytest

from crawlview.exceptions import TimeStringError
from crawlview.timestring import Moment, Range, get_timezone, parse, to_millis

NOW_MS = 1736960400000


def _ms(tz: tzinfo, *args: int) -> int:
    return to_millis(datetime(*args, tzinfo=tz))


def _whole_days(tz: tzinfo, first: tuple[int, int, int], last: tuple[int, int, int]) -> Range:
    """Range from midnight of ``first`` through the last millisecond of ``last``."""
    following = datetime(*last) + timedelta(days=1)
    return Range(
        start=_ms(tz, *first),
        end=_ms(tz, following.year, following.month, following.day) - 1,
    )


# ---------------------------------------------------------------------------
# TimeSpec behaviour
# ---------------------------------------------------------------------------


class TestTimeSpec:
    def test_moment_bounds_are_the_instant(self) -> None:
        m = Moment(1000)
        assert m.for_after() == 1000
        assert m.for_before() == 1000
        assert m.is_range() is False

    def test_moment_contains_only_itself(self) -> None:
        m = Moment(1000)
        assert m.contains(1000)
        assert not m.contains(999)
        assert not m.contains(1001)

    def test_range_after_uses_end_before_uses_start(self) -> None:
        r = Range(start=100, end=200)
        assert r.for_after() == 200
        assert r.for_before() == 100
        assert r.is_range() is True

    def test_range_contains_is_inclusive(self) -> None:
        r = Range(start=100, end=200)
        assert r.contains(100)
        assert r.contains(150)
        assert r.contains(200)
        assert not r.contains(99)
        assert not r.contains(201)

    def test_range_rejects_start_after_end(self) -> None:
        with pytest.raises(ValueError):
            Range(start=201, end=200)

    def test_single_instant_range_allowed(self) -> None:
        assert Range(start=5, end=5).contains(5)


# ---------------------------------------------------------------------------
# Calendar boundaries (now = Wed Jan 15 2025 12:00 New York)
# ---------------------------------------------------------------------------


class TestCalendarBoundaries:
    def test_fixture_now(self, fixed_now: datetime) -> None:
        assert to_millis(fixed_now) == NOW_MS

    def test_year(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("2025", fixed_now, new_york) == Range(start=1735707600000, end=1767243599999)

    def test_yesterday(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("yesterday", fixed_now, new_york) == Range(
            start=1736830800000, end=1736917199999
        )

    def test_today(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("today", fixed_now, new_york) == Range(start=1736917200000, end=1737003599999)

    def test_this_week_starts_sunday(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("this week", fixed_now, new_york) == _whole_days(
            new_york, (2025, 1, 12), (2025, 1, 18)
        )

    def test_last_week(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("last week", fixed_now, new_york) == Range(
            start=1736053200000, end=1736657999999
        )

    def test_this_month(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("this month", fixed_now, new_york) == _whole_days(
            new_york, (2025, 1, 1), (2025, 1, 31)
        )

    def test_last_month_wraps_year(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("last month", fixed_now, new_york) == _whole_days(
            new_york, (2024, 12, 1), (2024, 12, 31)
        )

    def test_this_and_last_year(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("this year", fixed_now, new_york) == parse("2025", fixed_now, new_york)
        assert parse("last year", fixed_now, new_york) == parse("2024", fixed_now, new_york)

    def test_named_periods_case_insensitive(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("Last Week", fixed_now, new_york) == parse("last week", fixed_now, new_york)
        assert parse("TODAY", fixed_now, new_york) == parse("today", fixed_now, new_york)

    def test_month_after_current_means_previous_year(
        self, fixed_now: datetime, new_york: tzinfo
    ) -> None:
        assert parse("december", fixed_now, new_york) == Range(
            start=1733029200000, end=1735707599999
        )

    def test_march_spans_dst_change(self, fixed_now: datetime, new_york: tzinfo) -> None:
        # Starts at EST midnight, ends just before EDT midnight.
        assert parse("march", fixed_now, new_york) == Range(start=1709269200000, end=1711943999999)

    def test_current_month_name_is_this_year(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("jan", fixed_now, new_york) == parse("this month", fixed_now, new_york)

    def test_month_abbreviations(self, fixed_now: datetime, new_york: tzinfo) -> None:
        expected = _whole_days(new_york, (2024, 9, 1), (2024, 9, 30))
        for text in ("september", "sep", "sept", "SEPT"):
            assert parse(text, fixed_now, new_york) == expected

    def test_single_day_formats_agree(self, fixed_now: datetime, new_york: tzinfo) -> None:
        expected = Range(start=1736917200000, end=1737003599999)
        for text in (
            "1/15/2025",
            "01/15/2025",
            "2025-01-15",
            "Jan 15, 2025",
            "January 15th 2025",
            "jan 15th, 2025",
        ):
            assert parse(text, fixed_now, new_york) == expected, text

    def test_ordinal_suffixes(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("Mar 1st, 2024", fixed_now, new_york) == _whole_days(
            new_york, (2024, 3, 1), (2024, 3, 1)
        )
        assert parse("Mar 2nd 2024", fixed_now, new_york).for_before() == _ms(new_york, 2024, 3, 2)
        assert parse("Mar 3rd 2024", fixed_now, new_york).for_before() == _ms(new_york, 2024, 3, 3)

    def test_day_range_across_dst_is_23_hours(self, fixed_now: datetime, new_york: tzinfo) -> None:
        spec = parse("2024-03-10", fixed_now, new_york)
        assert isinstance(spec, Range)
        assert spec.end - spec.start + 1 == 23 * 60 * 60 * 1000

    def test_other_timezone(self, fixed_now: datetime) -> None:
        berlin = get_timezone("Europe/Berlin")
        assert berlin is not None
        spec = parse("2025-01-15", fixed_now, berlin)
        assert spec.for_before() == to_millis(datetime(2025, 1, 14, 23, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Absolute moments
# ---------------------------------------------------------------------------


class TestAbsoluteMoments:
    def test_rfc3339_utc(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("2024-01-01T00:00:00Z", fixed_now, new_york) == Moment(1704067200000)

    def test_rfc3339_offset(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("2024-01-01T00:00:00+02:00", fixed_now, new_york) == Moment(1704060000000)

    def test_rfc3339_fraction_and_lowercase(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("2024-01-01t00:00:00.5z", fixed_now, new_york) == Moment(1704067200500)

    def test_rfc3339_ignores_interpretation_timezone(self, fixed_now: datetime) -> None:
        tokyo = get_timezone("Asia/Tokyo")
        assert parse("2024-01-01T00:00:00Z", fixed_now, tokyo) == Moment(1704067200000)

    def test_epoch_millis(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("1704067200000", fixed_now, new_york) == Moment(1704067200000)
        assert parse("12345", fixed_now, new_york) == Moment(12345)

    def test_four_digits_is_a_year_not_millis(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert isinstance(parse("1999", fixed_now, new_york), Range)

    def test_millis_out_of_i64_range(self, fixed_now: datetime, new_york: tzinfo) -> None:
        with pytest.raises(TimeStringError):
            parse("99999999999999999999", fixed_now, new_york)


# ---------------------------------------------------------------------------
# Relative durations
# ---------------------------------------------------------------------------


class TestRelativeDurations:
    @pytest.mark.parametrize(
        ("text", "delta"),
        [
            ("30 seconds ago", timedelta(seconds=30)),
            ("1 second ago", timedelta(seconds=1)),
            ("5 minutes ago", timedelta(minutes=5)),
            ("3 hours ago", timedelta(hours=3)),
            ("2 days ago", timedelta(days=2)),
            ("2 weeks ago", timedelta(weeks=2)),
            ("a week ago", timedelta(weeks=1)),
            ("a minute ago", timedelta(minutes=1)),
        ],
    )
    def test_fixed_units(
        self, fixed_now: datetime, new_york: tzinfo, text: str, delta: timedelta
    ) -> None:
        expected = NOW_MS - delta // timedelta(milliseconds=1)
        assert parse(text, fixed_now, new_york) == Moment(expected)

    def test_a_month_ago_walks_calendar(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("a month ago", fixed_now, new_york) == Moment(1734282000000)

    def test_months_borrow_years(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("13 months ago", fixed_now, new_york) == Moment(
            _ms(new_york, 2023, 12, 15, 12)
        )

    def test_years(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("2 years ago", fixed_now, new_york) == Moment(_ms(new_york, 2023, 1, 15, 12))

    def test_case_insensitive(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("2 WEEKS AGO", fixed_now, new_york) == parse("2 weeks ago", fixed_now, new_york)

    def test_fixed_units_are_absolute_across_dst(self, new_york: tzinfo) -> None:
        # 24 hours before 12:00 EDT on Mar 10 2024 is 11:00 EST on Mar 9.
        now = datetime(2024, 3, 10, 12, 0, tzinfo=new_york)
        assert parse("1 day ago", now, new_york) == Moment(_ms(new_york, 2024, 3, 9, 11))

    def test_month_landing_on_missing_day(self, new_york: tzinfo) -> None:
        now = datetime(2025, 3, 31, 12, 0, tzinfo=new_york)
        with pytest.raises(TimeStringError):
            parse("1 month ago", now, new_york)

    def test_month_landing_in_dst_gap(self, new_york: tzinfo) -> None:
        now = datetime(2025, 4, 9, 2, 30, tzinfo=new_york)
        with pytest.raises(TimeStringError):
            parse("a month ago", now, new_york)

    def test_month_landing_on_ambiguous_time(self, new_york: tzinfo) -> None:
        now = datetime(2024, 12, 3, 1, 30, tzinfo=new_york)
        with pytest.raises(TimeStringError):
            parse("a month ago", now, new_york)

    def test_now_in_other_timezone_is_converted(self, fixed_now: datetime, new_york: tzinfo) -> None:
        utc_now = fixed_now.astimezone(timezone.utc)
        assert parse("yesterday", utc_now, new_york) == parse("yesterday", fixed_now, new_york)


# ---------------------------------------------------------------------------
# Rejected input
# ---------------------------------------------------------------------------


class TestInvalidInput:
    @pytest.mark.parametrize(
        "text",
        [
            "not a date",
            "",
            "   ",
            "13/45/2025",
            "2/30/2025",
            "0/10/2025",
            "2025-02-30",
            "Feb 30, 2025",
            "Jan 32, 2025",
            "yesterday-ish",
            "an hour ago",
            "2 fortnights ago",
            "123",
        ],
    )
    def test_rejected(self, fixed_now: datetime, new_york: tzinfo, text: str) -> None:
        with pytest.raises(TimeStringError):
            parse(text, fixed_now, new_york)

    @pytest.mark.parametrize("text", ["\u017fep 1, 2025", "\u017fept 1st, 2025"])
    def test_non_ascii_month_lookalikes(
        self, fixed_now: datetime, new_york: tzinfo, text: str
    ) -> None:
        with pytest.raises(TimeStringError):
            parse(text, fixed_now, new_york)

    def test_error_message_echoes_input(self, fixed_now: datetime, new_york: tzinfo) -> None:
        with pytest.raises(TimeStringError, match="Could not parse time string: not a date"):
            parse("not a date", fixed_now, new_york)

    def test_error_is_a_value_error(self, fixed_now: datetime, new_york: tzinfo) -> None:
        with pytest.raises(ValueError):
            parse("nope", fixed_now, new_york)

    def test_naive_now_rejected(self, new_york: tzinfo) -> None:
        with pytest.raises(ValueError, match="timezone-aware"):
            parse("today", datetime(2025, 1, 15, 12), new_york)

    def test_surrounding_whitespace_ignored(self, fixed_now: datetime, new_york: tzinfo) -> None:
        assert parse("  today \n", fixed_now, new_york) == parse("today", fixed_now, new_york)


class TestGetTimezone:
    def test_known(self) -> None:
        assert get_timezone("America/New_York") is not None

    def test_unknown(self) -> None:
        assert get_timezone("Mars/Olympus_Mons") is None

    def test_blank(self) -> None:
        assert get_timezone("") is None
