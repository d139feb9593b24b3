"""Tests for typed cell coercion: numbers, text, timestamps and date keys."""

import math
from datetime import date, datetime, timezone

import pytest

from post_insights.coercion import (
    NumberStatus,
    format_iso_instant,
    parse_instant,
    parse_number,
    to_date_key,
    to_text,
    to_timestamp_iso,
)


# ---------------------------------------------------------------------------
# parse_number
# ---------------------------------------------------------------------------


class TestParseNumber:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1000", 1000),
            ("12,450", 12450),
            ("1,234,567", 1234567),
            ("12.5", 12.5),
            (" 42 ", 42),
            ("1e3", 1000),
            ("-3", -3),
            (".5", 0.5),
            (7, 7),
            (2.0, 2),
            (0, 0),
        ],
    )
    def test_present(self, raw, expected):
        result = parse_number(raw)
        assert result.status is NumberStatus.PRESENT
        assert result.value == expected
        assert result.reason is None

    def test_integral_floats_become_ints(self):
        assert isinstance(parse_number("3.0").value, int)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        result = parse_number(raw)
        assert result.status is NumberStatus.MISSING
        assert result.value is None
        assert result.reason == "missing"

    @pytest.mark.parametrize("raw", ["abc", "12abc", "N/A", "-", "inf", "nan", "0x10", "1_000", True, math.inf, math.nan])
    def test_invalid(self, raw):
        result = parse_number(raw)
        assert result.status is NumberStatus.INVALID
        assert result.value is None
        assert result.reason == "invalid"

    def test_zero_is_present_not_missing(self):
        assert parse_number("0").status is NumberStatus.PRESENT


class TestToText:
    def test_none_is_empty(self):
        assert to_text(None) == ""

    def test_trims(self):
        assert to_text("  hello \n") == "hello"

    def test_stringifies(self):
        assert to_text(12) == "12"


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


class TestToTimestampIso:
    @pytest.mark.parametrize("raw", ["2025-01-06", "2025/01/06", "2025-1-6", "2025/1/6"])
    def test_bare_date_is_utc_midnight(self, raw):
        assert to_timestamp_iso(raw) == "2025-01-06T00:00:00.000Z"

    def test_impossible_calendar_date(self):
        assert to_timestamp_iso("2025-02-30") == ""

    def test_iso_with_z(self):
        assert to_timestamp_iso("2025-01-06T15:30:00Z") == "2025-01-06T15:30:00.000Z"

    def test_offset_converted_to_utc(self):
        assert to_timestamp_iso("2025-01-06T15:30:00+02:00") == "2025-01-06T13:30:00.000Z"

    def test_naive_time_taken_as_utc(self):
        assert to_timestamp_iso("2025-01-07 19:00") == "2025-01-07T19:00:00.000Z"

    def test_milliseconds_kept(self):
        assert to_timestamp_iso("2025-01-06T15:30:00.123456Z") == "2025-01-06T15:30:00.123Z"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Mon, Jan 06, 2025 15:00", "2025-01-06T15:00:00.000Z"),
            ("Wed Jan 08 13:00:00 +0000 2025", "2025-01-08T13:00:00.000Z"),
            ("01/06/2025 3:15 PM", "2025-01-06T15:15:00.000Z"),
            ("01/06/2025", "2025-01-06T00:00:00.000Z"),
            ("Jan 06, 2025", "2025-01-06T00:00:00.000Z"),
        ],
    )
    def test_export_formats(self, raw, expected):
        assert to_timestamp_iso(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "yesterday", "2025-13-01"])
    def test_unparsable_is_empty(self, raw):
        assert to_timestamp_iso(raw) == ""

    def test_datetime_passthrough(self):
        moment = datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc)
        assert to_timestamp_iso(moment) == "2025-01-06T10:00:00.000Z"


class TestToDateKey:
    def test_bare_date(self):
        assert to_date_key("2025-01-06") == "2025-01-06"

    def test_slashes(self):
        assert to_date_key("2025/1/6") == "2025-01-06"

    def test_bare_date_never_shifts(self):
        # A naive or local-midnight interpretation could land on Jan 5.
        assert to_date_key("2025-01-06") == "2025-01-06"
        assert to_date_key("2025-01-06T00:00:00.000Z") == "2025-01-06"

    def test_timestamp_bucketed_by_utc(self):
        assert to_date_key("2025-01-06T23:30:00-05:00") == "2025-01-07"

    def test_invalid_calendar_date(self):
        assert to_date_key("2025-02-30") == ""

    def test_date_object(self):
        assert to_date_key(date(2025, 1, 2)) == "2025-01-02"

    def test_empty(self):
        assert to_date_key("") == ""


class TestInstants:
    def test_format_iso_instant_converts_to_utc(self):
        moment = datetime.fromisoformat("2025-03-01T01:00:00+03:00")
        assert format_iso_instant(moment) == "2025-02-28T22:00:00.000Z"

    def test_parse_instant_round_trips_normalized_value(self):
        moment = parse_instant("2025-01-06T15:00:00.000Z")
        assert moment == datetime(2025, 1, 6, 15, tzinfo=timezone.utc)

    def test_parse_instant_none_for_garbage(self):
        assert parse_instant("not a date") is None
