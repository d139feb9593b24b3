"""Tests for content and overview schema normalization."""

import random

from post_insights.csv_parser import parse_csv
from post_insights.metrics import engagement_rate
from post_insights.normalize import normalize_content, normalize_overview

from conftest import make_csv


def _normalize_content_csv(headers, rows):
    parsed = parse_csv(make_csv(headers, rows))
    return normalize_content(parsed.rows, parsed.fields)


def _normalize_overview_csv(headers, rows):
    parsed = parse_csv(make_csv(headers, rows))
    return normalize_overview(parsed.rows, parsed.fields)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class TestNormalizeContent:
    def test_minimal_export(self):
        result = _normalize_content_csv(
            ["Tweet", "Created At", "Impressions", "Likes"],
            [["hello", "2025-01-06", "1000", "50"]],
        )
        assert result.ok
        assert result.missing_required == []
        assert len(result.rows) == 1
        row = result.rows[0]
        assert row.text == "hello"
        assert row.created_at == "2025-01-06T00:00:00.000Z"
        assert row.impressions == 1000
        assert row.likes == 50
        assert row.replies is None
        assert engagement_rate(row) == 0.05
        assert result.warnings == []

    def test_missing_optional_listed(self):
        result = _normalize_content_csv(
            ["Tweet", "Created At", "Impressions", "Likes"],
            [["hello", "2025-01-06", "1000", "50"]],
        )
        assert result.missing_optional == [
            "id", "replies", "reposts", "bookmarks", "shares", "profileVisits", "newFollows",
        ]

    def test_missing_required_short_circuits(self):
        result = _normalize_content_csv(["Tweet", "Likes"], [["hello", "5"]])
        assert not result.ok
        assert result.rows == []
        assert result.missing_required == ["createdAt", "impressions"]
        assert result.warnings == []

    def test_invalid_impressions_drop_row(self):
        result = _normalize_content_csv(
            ["Text", "Time", "Impressions"],
            [["a", "2025-01-06", "100"], ["b", "2025-01-06", "lots"], ["c", "2025-01-06", ""]],
        )
        assert [r.text for r in result.rows] == ["a"]
        assert result.dropped_rows == 2
        assert result.warnings == [
            "2 row(s) were dropped because impressions were missing or invalid.",
        ]

    def test_invalid_timestamp_keeps_row(self):
        result = _normalize_content_csv(
            ["Text", "Time", "Impressions"],
            [["a", "not a time", "100"], ["b", "2025-01-06 10:00", "200"]],
        )
        assert len(result.rows) == 2
        assert result.rows[0].created_at == ""
        assert result.rows[1].created_at == "2025-01-06T10:00:00.000Z"
        assert result.dropped_rows == 0
        assert result.warnings == [
            "1 row(s) have invalid post timestamps and are excluded from time-based charts.",
        ]

    def test_invalid_optional_becomes_missing_with_labeled_warning(self):
        result = _normalize_content_csv(
            ["Text", "Time", "Impressions", "Likes", "Reposts"],
            [
                ["a", "2025-01-06", "100", "n/a", "x"],
                ["b", "2025-01-06", "100", "4", "y"],
                ["c", "2025-01-06", "100", "", "1"],
            ],
        )
        assert [r.likes for r in result.rows] == [None, 4, None]
        assert [r.reposts for r in result.rows] == [None, None, 1]
        # Empty cells are missing, not invalid, so they are not counted.
        assert result.warnings == [
            '1 row(s) had invalid "Likes" values and were treated as missing.',
            '2 row(s) had invalid "Reposts / Retweets" values and were treated as missing.',
        ]

    def test_warning_order_follows_first_invalid_field(self):
        result = _normalize_content_csv(
            ["Text", "Time", "Impressions", "Likes", "Shares"],
            [["a", "2025-01-06", "100", "1", "bad"], ["b", "2025-01-06", "100", "bad", "1"]],
        )
        assert result.warnings[0].endswith('"Shares" values and were treated as missing.')
        assert result.warnings[1].endswith('"Likes" values and were treated as missing.')

    def test_row_accounting(self):
        rows = [["t", "2025-01-06", str(i) if i % 3 else "?"] for i in range(30)]
        result = _normalize_content_csv(["Text", "Time", "Impressions"], rows)
        assert len(result.rows) + result.dropped_rows == 30

    def test_order_preserved(self):
        rows = [[f"post {i}", "2025-01-06", str(100 + i)] for i in range(5)]
        result = _normalize_content_csv(["Text", "Time", "Impressions"], rows)
        assert [r.text for r in result.rows] == [f"post {i}" for i in range(5)]

    def test_id_kept_as_text(self):
        result = _normalize_content_csv(
            ["Post id", "Post text", "Date", "Impressions"],
            [["1800000000000000001", "x", "2025-01-06", "10"]],
        )
        assert result.rows[0].id == "1800000000000000001"

    def test_idempotent(self):
        parsed = parse_csv(make_csv(
            ["Text", "Time", "Impressions", "Likes"],
            [["a", "bad", "1", "x"], ["b", "2025-01-06", "", "1"]],
        ))
        first = normalize_content(parsed.rows, parsed.fields)
        second = normalize_content(parsed.rows, parsed.fields)
        assert first == second

    def test_permuted_and_restyled_headers_give_same_rows(self):
        canonical = ["text", "createdAt", "impressions", "likes", "replies", "newFollows"]
        restyled = ["TEXT", "Created_At", "impressions!!", "LIKES", "re-plies", "New Follows"]
        data = [
            ["one", "2025-01-06T10:00:00Z", "100", "3", "1", "0"],
            ["two", "2025-01-07", "250", "", "2", "4"],
        ]
        expected = _normalize_content_csv(canonical, data).rows

        order = list(range(len(canonical)))
        random.Random(7).shuffle(order)
        shuffled_headers = [restyled[i] for i in order]
        shuffled_rows = [[row[i] for i in order] for row in data]
        assert _normalize_content_csv(shuffled_headers, shuffled_rows).rows == expected


# ---------------------------------------------------------------------------
# Overview
# ---------------------------------------------------------------------------


class TestNormalizeOverview:
    def test_full_row(self, overview_csv):
        parsed = parse_csv(overview_csv)
        result = normalize_overview(parsed.rows, parsed.fields)
        assert result.ok
        assert result.missing_optional == []
        first = result.rows[0]
        assert first.date == "2025-01-06"
        assert first.impressions == 26500
        assert first.create_post == 1
        assert first.unfollows == 4
        assert first.media_views == 30

    def test_invalid_calendar_date_dropped(self):
        result = _normalize_overview_csv(
            ["Date", "Impressions"],
            [["2025-02-30", "100"], ["2025-02-28", "200"]],
        )
        assert [r.date for r in result.rows] == ["2025-02-28"]
        assert result.missing_required == []
        assert result.dropped_rows == 1
        assert result.warnings == ["1 overview row(s) were dropped due to invalid dates."]

    def test_date_checked_before_impressions(self):
        result = _normalize_overview_csv(["Date", "Impressions"], [["", "oops"]])
        assert result.warnings == ["1 overview row(s) were dropped due to invalid dates."]

    def test_invalid_impressions_dropped(self):
        result = _normalize_overview_csv(
            ["Date", "Impressions"],
            [["2025-01-01", "abc"], ["2025-01-02", "5"]],
        )
        assert len(result.rows) == 1
        assert result.warnings == [
            "1 overview row(s) were dropped because impressions were missing or invalid.",
        ]

    def test_timestamp_dates_bucketed_to_day(self):
        result = _normalize_overview_csv(
            ["Day", "Views"],
            [["2025-01-06T00:00:00.000Z", "10"], ["Mon, Jan 13, 2025", "20"]],
        )
        assert [r.date for r in result.rows] == ["2025-01-06", "2025-01-13"]

    def test_missing_required(self):
        result = _normalize_overview_csv(["Engagements", "Likes"], [["1", "2"]])
        assert result.missing_required == ["date", "impressions"]
        assert result.rows == []

    def test_optional_warning_uses_overview_noun(self):
        result = _normalize_overview_csv(
            ["Date", "Impressions", "Create Post"],
            [["2025-01-01", "5", "many"]],
        )
        assert result.rows[0].create_post is None
        assert result.warnings == [
            '1 overview row(s) had invalid "Posts created" values and were treated as missing.',
        ]

    def test_duplicate_dates_kept(self):
        result = _normalize_overview_csv(
            ["Date", "Impressions"],
            [["2025-01-01", "5"], ["2025-01-01", "7"]],
        )
        assert [r.impressions for r in result.rows] == [5, 7]

    def test_to_dict_uses_canonical_names(self):
        result = _normalize_overview_csv(
            ["Date", "Impressions", "New follows"],
            [["2025-01-01", "5", "2"]],
        )
        payload = result.to_dict()
        assert payload["rows"][0]["newFollows"] == 2
        assert payload["missingRequired"] == []
        assert "profileVisits" in payload["missingOptional"]
