"""Tests for header alias resolution."""

import pytest

from post_insights.aliases import CONTENT_ALIASES, OVERVIEW_ALIASES, build_header_map, normalize_header


class TestNormalizeHeader:
    @pytest.mark.parametrize("raw", ["New Follows", "new_follows", "NewFollows", "NEW-follows!!", " new follows "])
    def test_variants_normalize_identically(self, raw):
        assert normalize_header(raw) == "newfollows"

    def test_digits_kept(self):
        assert normalize_header("Top 10 Posts") == "top10posts"

    def test_non_ascii_letters_dropped(self):
        assert normalize_header("Impressões") == "impresses"


class TestBuildHeaderMap:
    def test_exact_matches(self):
        mapping = build_header_map(["Tweet", "Created At", "Impressions", "Likes"], CONTENT_ALIASES)
        assert mapping["text"] == "Tweet"
        assert mapping["createdAt"] == "Created At"
        assert mapping["impressions"] == "Impressions"
        assert mapping["likes"] == "Likes"
        assert mapping["replies"] is None

    def test_every_canonical_field_present_in_result(self):
        mapping = build_header_map([], OVERVIEW_ALIASES)
        assert set(mapping) == set(OVERVIEW_ALIASES)
        assert all(v is None for v in mapping.values())

    def test_shouty_punctuated_header_resolves(self):
        mapping = build_header_map(["Date", "Impressions", "NEW-follows!!"], OVERVIEW_ALIASES)
        assert mapping["newFollows"] == "NEW-follows!!"

    def test_substring_match_inside_longer_header(self):
        mapping = build_header_map(["Total impressions (organic)"], CONTENT_ALIASES)
        assert mapping["impressions"] == "Total impressions (organic)"

    def test_exact_match_beats_substring_match(self):
        mapping = build_header_map(["Post text", "Post"], CONTENT_ALIASES)
        # "post text" is the first alias and matches exactly.
        assert mapping["text"] == "Post text"

    def test_alias_order_decides_between_headers(self):
        # "tweet text" precedes "text" in the alias list
        mapping = build_header_map(["text", "Tweet Text"], CONTENT_ALIASES)
        assert mapping["text"] == "Tweet Text"

    def test_first_header_wins_for_identical_normalization(self):
        mapping = build_header_map(["Likes", "likes"], CONTENT_ALIASES)
        assert mapping["likes"] == "Likes"

    def test_header_can_satisfy_multiple_fields(self):
        mapping = build_header_map(["Date"], CONTENT_ALIASES)
        assert mapping["createdAt"] == "Date"

    def test_x_export_headers(self):
        headers = [
            "Post id", "Date", "Post text", "Post Link", "Impressions", "Likes",
            "Engagements", "Bookmarks", "Shares", "New follows", "Replies",
            "Reposts", "Profile visits",
        ]
        mapping = build_header_map(headers, CONTENT_ALIASES)
        assert mapping["id"] == "Post id"
        assert mapping["text"] == "Post text"
        assert mapping["createdAt"] == "Date"
        assert mapping["profileVisits"] == "Profile visits"
        assert mapping["newFollows"] == "New follows"

    def test_overview_create_post(self):
        mapping = build_header_map(["Date", "Impressions", "Create Post"], OVERVIEW_ALIASES)
        assert mapping["createPost"] == "Create Post"
