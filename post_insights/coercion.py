"""Typed parsing of raw CSV cell values.

Numbers distinguish "missing" (nothing supplied) from "invalid" (something
supplied that is not a number); only the latter is reported to the user.
Dates distinguish bare calendar dates from full timestamps: a bare date is
always pinned to UTC midnight so the bucketed day never shifts.
"""

import enum
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any

_DATE_ONLY = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")
_DECIMAL = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

# Formats tried after ISO-8601 parsing fails. Naive results are taken as UTC.
TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y",
    "%a %b %d %H:%M:%S %z %Y",
    "%a, %b %d %Y %H:%M",
    "%a, %b %d, %Y %H:%M",
    "%a, %b %d, %Y",
    "%b %d, %Y %I:%M %p",
    "%b %d, %Y",
)


class NumberStatus(enum.Enum):
    PRESENT = "present"
    MISSING = "missing"
    INVALID = "invalid"


@dataclass(frozen=True)
class ParsedNumber:
    """Result of parsing one numeric cell.

    ``value`` is only set when ``status`` is PRESENT. ``reason`` mirrors the
    status as "missing" / "invalid" / None for diagnostics.
    """

    value: int | float | None
    status: NumberStatus

    @classmethod
    def present(cls, value: int | float) -> "ParsedNumber":
        return cls(value, NumberStatus.PRESENT)

    @classmethod
    def missing(cls) -> "ParsedNumber":
        return cls(None, NumberStatus.MISSING)

    @classmethod
    def invalid(cls) -> "ParsedNumber":
        return cls(None, NumberStatus.INVALID)

    @property
    def reason(self) -> str | None:
        if self.status is NumberStatus.PRESENT:
            return None
        return self.status.value


def _tidy(number: float) -> int | float:
    return int(number) if number.is_integer() else number


def parse_number(value: Any) -> ParsedNumber:
    """Parse a numeric cell, tolerating thousands separators."""
    if value is None:
        return ParsedNumber.missing()
    if isinstance(value, bool):
        return ParsedNumber.invalid()
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return ParsedNumber.invalid()
        return ParsedNumber.present(_tidy(float(value)) if isinstance(value, float) else value)

    text = str(value).strip()
    if not text:
        return ParsedNumber.missing()
    cleaned = text.replace(",", "")
    if not _DECIMAL.match(cleaned):
        return ParsedNumber.invalid()
    number = float(cleaned)
    if not math.isfinite(number):
        return ParsedNumber.invalid()
    return ParsedNumber.present(_tidy(number))


def to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _bare_date(text: str) -> date | None:
    """Match YYYY-MM-DD / YYYY/MM/DD. Returns None for non-matches and for
    impossible calendar dates such as 2025-02-30."""
    match = _DATE_ONLY.match(text)
    if not match:
        return None
    year, month, day = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_datetime(text: str) -> datetime | None:
    """Parse a full timestamp into an aware UTC datetime."""
    normalized = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        for fmt in TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _to_utc_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    text = str(value).strip()
    if not text:
        return None

    # The date-only check must run first: a bare date is a calendar day,
    # never a local-time instant.
    if _DATE_ONLY.match(text):
        day = _bare_date(text)
        if day is None:
            return None
        return datetime.combine(day, time.min, tzinfo=timezone.utc)

    return _parse_datetime(text)


def format_iso_instant(moment: datetime) -> str:
    """Format an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def to_timestamp_iso(value: Any) -> str:
    """Normalize a post timestamp to an ISO-8601 UTC instant, or ""."""
    moment = _to_utc_datetime(value)
    if moment is None:
        return ""
    return format_iso_instant(moment)


def to_date_key(value: Any) -> str:
    """Normalize a day-granularity value to ``YYYY-MM-DD`` (UTC), or ""."""
    moment = _to_utc_datetime(value)
    if moment is None:
        return ""
    return moment.date().isoformat()


def parse_instant(value: Any) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime, or None."""
    return _to_utc_datetime(value)
