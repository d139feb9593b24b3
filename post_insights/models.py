"""Canonical row types produced by normalization.

Python attributes are snake_case; every field carries its canonical
(camelCase) name in the dataclass field metadata, which is the name used in
alias tables, diagnostics and the JSON wire shape.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Generic, TypeVar

Number = int | float


def _canonical(name: str, default: Any = None) -> Any:
    return field(default=default, metadata={"canonical": name})


class _CanonicalRow:
    """Shared (de)serialization for row dataclasses."""

    @classmethod
    def canonical_fields(cls) -> dict[str, str]:
        """Return {canonical name: attribute name} in declaration order."""
        return {f.metadata["canonical"]: f.name for f in fields(cls)}

    def to_dict(self) -> dict[str, Any]:
        return {f.metadata["canonical"]: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        kwargs = {
            attr: data[canonical]
            for canonical, attr in cls.canonical_fields().items()
            if canonical in data
        }
        return cls(**kwargs)


@dataclass(frozen=True)
class ContentRow(_CanonicalRow):
    """One post's performance. Optional numerics are None when missing."""

    text: str = _canonical("text", "")
    created_at: str = _canonical("createdAt", "")
    impressions: Number = _canonical("impressions", 0)
    id: str | None = _canonical("id")
    likes: Number | None = _canonical("likes")
    replies: Number | None = _canonical("replies")
    reposts: Number | None = _canonical("reposts")
    bookmarks: Number | None = _canonical("bookmarks")
    shares: Number | None = _canonical("shares")
    profile_visits: Number | None = _canonical("profileVisits")
    new_follows: Number | None = _canonical("newFollows")

    def __repr__(self) -> str:
        return f"<ContentRow created_at={self.created_at!r} impressions={self.impressions}>"


@dataclass(frozen=True)
class OverviewRow(_CanonicalRow):
    """One calendar day of account-level totals, keyed by ``date``."""

    date: str = _canonical("date", "")
    impressions: Number = _canonical("impressions", 0)
    engagements: Number | None = _canonical("engagements")
    profile_visits: Number | None = _canonical("profileVisits")
    new_follows: Number | None = _canonical("newFollows")
    likes: Number | None = _canonical("likes")
    bookmarks: Number | None = _canonical("bookmarks")
    shares: Number | None = _canonical("shares")
    unfollows: Number | None = _canonical("unfollows")
    replies: Number | None = _canonical("replies")
    reposts: Number | None = _canonical("reposts")
    create_post: Number | None = _canonical("createPost")
    video_views: Number | None = _canonical("videoViews")
    media_views: Number | None = _canonical("mediaViews")

    def __repr__(self) -> str:
        return f"<OverviewRow date={self.date} impressions={self.impressions}>"


RowT = TypeVar("RowT", ContentRow, OverviewRow)


@dataclass(frozen=True)
class NormalizationResult(Generic[RowT]):
    """Outcome of normalizing one parsed file against one schema."""

    rows: list[RowT] = field(default_factory=list)
    missing_required: list[str] = field(default_factory=list)
    missing_optional: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    dropped_rows: int = 0

    @property
    def ok(self) -> bool:
        return not self.missing_required

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "missingRequired": list(self.missing_required),
            "missingOptional": list(self.missing_optional),
            "warnings": list(self.warnings),
        }


# User-facing labels for canonical field names
FIELD_LABELS: dict[str, str] = {
    "text": "Post/Tweet text",
    "createdAt": "Created at / Post time",
    "impressions": "Impressions",
    "likes": "Likes",
    "replies": "Replies",
    "reposts": "Reposts / Retweets",
    "bookmarks": "Bookmarks",
    "shares": "Shares",
    "profileVisits": "Profile visits",
    "newFollows": "New follows",
    "date": "Date",
    "engagements": "Engagements",
    "unfollows": "Unfollows",
    "createPost": "Posts created",
    "videoViews": "Video views",
    "mediaViews": "Media views",
}


def field_label(canonical: str) -> str:
    return FIELD_LABELS.get(canonical, canonical)
