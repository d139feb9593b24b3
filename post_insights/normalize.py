"""Schema normalization: parsed CSV rows -> canonical content/overview rows.

Each call is pure. Required headers that cannot be resolved are a hard
failure (no rows, ``missing_required`` set). Everything else degrades: rows
failing a required value are dropped and counted, optional values failing to
parse become missing and are counted per field, and the counts are turned
into one warning each.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable

from post_insights.aliases import CONTENT_ALIASES, OVERVIEW_ALIASES, build_header_map
from post_insights.coercion import NumberStatus, parse_number, to_date_key, to_text, to_timestamp_iso
from post_insights.models import ContentRow, NormalizationResult, OverviewRow, field_label

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Schema:
    """Alias table and field policy for one record kind."""

    name: str
    aliases: dict[str, list[str]]
    required: tuple[str, ...]
    optional: tuple[str, ...]
    optional_numeric: tuple[str, ...]
    row_type: type
    # Prefix used in warnings, e.g. "overview row(s)"
    row_noun: str


CONTENT_SCHEMA = Schema(
    name="content",
    aliases=CONTENT_ALIASES,
    required=("text", "createdAt", "impressions"),
    optional=("id", "likes", "replies", "reposts", "bookmarks", "shares", "profileVisits", "newFollows"),
    optional_numeric=("likes", "replies", "reposts", "bookmarks", "shares", "profileVisits", "newFollows"),
    row_type=ContentRow,
    row_noun="row(s)",
)

OVERVIEW_SCHEMA = Schema(
    name="overview",
    aliases=OVERVIEW_ALIASES,
    required=("date", "impressions"),
    optional=(
        "engagements", "profileVisits", "newFollows", "likes", "bookmarks", "shares",
        "unfollows", "replies", "reposts", "createPost", "videoViews", "mediaViews",
    ),
    optional_numeric=(
        "engagements", "profileVisits", "newFollows", "likes", "bookmarks", "shares",
        "unfollows", "replies", "reposts", "createPost", "videoViews", "mediaViews",
    ),
    row_type=OverviewRow,
    row_noun="overview row(s)",
)


@dataclass
class _Tally:
    dropped_for_date: int = 0
    dropped_for_impressions: int = 0
    invalid_timestamps: int = 0

    def __post_init__(self) -> None:
        # Counter preserves first-seen order, which fixes warning order.
        self.invalid_optional: Counter[str] = Counter()


def _parse_optional_numbers(
    schema: Schema,
    row: dict[str, Any],
    header_map: dict[str, str | None],
    tally: _Tally,
) -> dict[str, Any]:
    attrs = schema.row_type.canonical_fields()
    values: dict[str, Any] = {}
    for canonical in schema.optional_numeric:
        column = header_map.get(canonical)
        if not column:
            values[attrs[canonical]] = None
            continue
        parsed = parse_number(row.get(column))
        if parsed.status is NumberStatus.INVALID:
            tally.invalid_optional[canonical] += 1
        values[attrs[canonical]] = parsed.value
    return values


def _content_row(row: dict[str, Any], header_map: dict[str, str | None], tally: _Tally) -> ContentRow | None:
    impressions = parse_number(row.get(header_map["impressions"]))
    if impressions.value is None:
        tally.dropped_for_impressions += 1
        return None

    created_at = to_timestamp_iso(row.get(header_map["createdAt"]))
    if not created_at:
        tally.invalid_timestamps += 1

    id_column = header_map.get("id")
    return ContentRow(
        id=to_text(row.get(id_column)) if id_column else None,
        text=to_text(row.get(header_map["text"])),
        created_at=created_at,
        impressions=impressions.value,
        **_parse_optional_numbers(CONTENT_SCHEMA, row, header_map, tally),
    )


def _overview_row(row: dict[str, Any], header_map: dict[str, str | None], tally: _Tally) -> OverviewRow | None:
    # The date is the row's identity; no date means no row.
    day = to_date_key(row.get(header_map["date"]))
    if not day:
        tally.dropped_for_date += 1
        return None

    impressions = parse_number(row.get(header_map["impressions"]))
    if impressions.value is None:
        tally.dropped_for_impressions += 1
        return None

    return OverviewRow(
        date=day,
        impressions=impressions.value,
        **_parse_optional_numbers(OVERVIEW_SCHEMA, row, header_map, tally),
    )


def _warnings(schema: Schema, tally: _Tally) -> list[str]:
    noun = schema.row_noun
    warnings: list[str] = []
    if tally.dropped_for_date:
        warnings.append(f"{tally.dropped_for_date} {noun} were dropped due to invalid dates.")
    if tally.dropped_for_impressions:
        warnings.append(
            f"{tally.dropped_for_impressions} {noun} were dropped because impressions were missing or invalid."
        )
    if tally.invalid_timestamps:
        warnings.append(
            f"{tally.invalid_timestamps} {noun} have invalid post timestamps and are excluded from time-based charts."
        )
    for canonical, count in tally.invalid_optional.items():
        warnings.append(
            f'{count} {noun} had invalid "{field_label(canonical)}" values and were treated as missing.'
        )
    return warnings


def _normalize(
    schema: Schema,
    rows: list[dict[str, Any]],
    fields: list[str],
    build_row: Callable[[dict[str, Any], dict[str, str | None], _Tally], Any],
) -> NormalizationResult:
    header_map = build_header_map(fields, schema.aliases)
    missing_required = [f for f in schema.required if not header_map.get(f)]
    missing_optional = [f for f in schema.optional if not header_map.get(f)]

    if missing_required:
        logger.debug("%s schema: missing required fields %s", schema.name, missing_required)
        return NormalizationResult(
            rows=[],
            missing_required=missing_required,
            missing_optional=missing_optional,
        )

    tally = _Tally()
    normalized = []
    for raw in rows:
        record = build_row(raw, header_map, tally)
        if record is not None:
            normalized.append(record)

    dropped = tally.dropped_for_date + tally.dropped_for_impressions
    logger.debug(
        "%s schema: %d rows kept, %d dropped, %d invalid optional values",
        schema.name,
        len(normalized),
        dropped,
        sum(tally.invalid_optional.values()),
    )
    return NormalizationResult(
        rows=normalized,
        missing_required=[],
        missing_optional=missing_optional,
        warnings=_warnings(schema, tally),
        dropped_rows=dropped,
    )


def normalize_content(rows: list[dict[str, Any]], fields: list[str]) -> NormalizationResult[ContentRow]:
    """Normalize parsed rows against the content (per-post) schema."""
    return _normalize(CONTENT_SCHEMA, rows, fields, _content_row)


def normalize_overview(rows: list[dict[str, Any]], fields: list[str]) -> NormalizationResult[OverviewRow]:
    """Normalize parsed rows against the overview (per-day) schema."""
    return _normalize(OVERVIEW_SCHEMA, rows, fields, _overview_row)
