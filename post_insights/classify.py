"""Decide whether a parsed CSV is a content export or an overview export."""

import enum
from dataclasses import dataclass

from post_insights.aliases import normalize_header
from post_insights.csv_parser import ParsedCsv
from post_insights.models import NormalizationResult
from post_insights.normalize import normalize_content, normalize_overview

CONTENT_MARKERS = (
    "posttext",
    "tweettext",
    "text",
    "tweet",
    "post",
    "content",
    "body",
    "createdat",
    "posttime",
    "tweettime",
    "timestamp",
)

OVERVIEW_MARKERS = ("date", "day", "engagements")


class FileKind(str, enum.Enum):
    CONTENT = "content"
    OVERVIEW = "overview"
    UNKNOWN = "unknown"


def _has_marker(headers: list[str], markers: tuple[str, ...]) -> bool:
    return any(marker in header for header in headers for marker in markers)


def classify_csv(fields: list[str], file_name: str) -> FileKind:
    """Heuristic classification from headers, then from the file name.

    Both schemas need impressions, so without an impressions-like header the
    answer is always UNKNOWN.
    """
    headers = [normalize_header(f) for f in fields]
    name = normalize_header(file_name)

    has_content = _has_marker(headers, CONTENT_MARKERS)
    has_overview = _has_marker(headers, OVERVIEW_MARKERS)
    has_impressions = any("impression" in h or "view" in h for h in headers)

    if not has_impressions:
        return FileKind.UNKNOWN
    if has_content and not has_overview:
        return FileKind.CONTENT
    if has_overview and not has_content:
        return FileKind.OVERVIEW
    if "overview" in name:
        return FileKind.OVERVIEW
    if "content" in name or "tweet" in name or "post" in name:
        return FileKind.CONTENT
    return FileKind.UNKNOWN


@dataclass(frozen=True)
class Classified:
    """The heuristic named a schema. ``result`` may still be missing
    required fields; that is a hard rejection for the caller to report."""

    kind: FileKind
    result: NormalizationResult


@dataclass(frozen=True)
class Ambiguous:
    """The heuristic gave up, but trial normalization found a schema."""

    kind: FileKind
    result: NormalizationResult


@dataclass(frozen=True)
class Rejected:
    """Neither schema could be satisfied."""

    missing: list[str]


Resolution = Classified | Ambiguous | Rejected


def _normalize_as(kind: FileKind, parsed: ParsedCsv) -> NormalizationResult:
    if kind is FileKind.CONTENT:
        return normalize_content(parsed.rows, parsed.fields)
    return normalize_overview(parsed.rows, parsed.fields)


def resolve_schema(parsed: ParsedCsv, file_name: str) -> Resolution:
    kind = classify_csv(parsed.fields, file_name)
    if kind is not FileKind.UNKNOWN:
        return Classified(kind, _normalize_as(kind, parsed))

    # Content is tried first and wins when both would succeed.
    content = normalize_content(parsed.rows, parsed.fields)
    if content.ok:
        return Ambiguous(FileKind.CONTENT, content)
    overview = normalize_overview(parsed.rows, parsed.fields)
    if overview.ok:
        return Ambiguous(FileKind.OVERVIEW, overview)

    missing = list(dict.fromkeys([*content.missing_required, *overview.missing_required]))
    return Rejected(missing)
