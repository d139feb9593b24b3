"""Pytest configuration and shared fixtures."""

import csv
import io
from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from post_insights.models import ContentRow, OverviewRow
from post_insights.state import AnalyticsState, MemoryStorage

# ---------------------------------------------------------------------------
# CSV builders
# ---------------------------------------------------------------------------


def make_csv(headers: list[str], rows: list[list]) -> bytes:
    """Render headers + rows as UTF-8 CSV bytes."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8")


def content_row(**overrides) -> ContentRow:
    values = {
        "text": "A post",
        "created_at": "2025-01-06T15:00:00.000Z",
        "impressions": 1000,
    }
    values.update(overrides)
    return ContentRow(**values)


def overview_days(start: date, count: int, **columns: list) -> list[OverviewRow]:
    """Build ``count`` consecutive OverviewRows; keyword lists supply per-day values."""
    rows = []
    for i in range(count):
        values = {"date": (start + timedelta(days=i)).isoformat(), "impressions": 1000}
        for attr, series in columns.items():
            values[attr] = series[i]
        rows.append(OverviewRow(**values))
    return rows


@pytest.fixture
def content_csv() -> bytes:
    """A small content export with export-style headers."""
    return make_csv(
        ["Post id", "Post text", "Created at", "Impressions", "Likes", "Replies",
         "Reposts", "Bookmarks", "Shares", "Profile visits", "New follows"],
        [
            ["1", "First post", "2025-01-06T15:00:00Z", "12,450", 420, 36, 58, 24, 10, 310, 64],
            ["2", "Second post", "2025-01-07 19:00", "18200", 530, 44, 90, 40, 18, 410, 92],
            ["3", "Third post", "2025-01-08", "7600", 210, 19, 28, 14, 6, 150, 27],
        ],
    )


@pytest.fixture
def overview_csv() -> bytes:
    """A small overview export covering four days."""
    return make_csv(
        ["Date", "Impressions", "Engagements", "Profile visits", "New follows",
         "Unfollows", "Likes", "Bookmarks", "Shares", "Replies", "Reposts",
         "Create Post", "Video views", "Media views"],
        [
            ["2025-01-06", 26500, 930, 520, 120, 4, 700, 50, 20, 90, 70, 1, 10, 30],
            ["2025-01-07", 31200, 1240, 610, 165, 9, 900, 80, 30, 120, 110, 2, 12, 41],
            ["2025-01-08", 21800, 760, 430, 98, 2, 560, 40, 12, 80, 68, 0, 8, 20],
            ["2025-01-09", 34800, 1520, 720, 190, 5, 1100, 90, 40, 160, 130, 1, 15, 52],
        ],
    )


# ---------------------------------------------------------------------------
# Application state and FastAPI test client
# ---------------------------------------------------------------------------


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def state(storage) -> AnalyticsState:
    """Fresh analytics state backed by in-memory storage."""
    return AnalyticsState(storage=storage)


@pytest.fixture(scope="function")
def client(state):
    """Return a FastAPI TestClient wired to the per-test ``state`` fixture."""
    from post_insights.main import create_app

    app = create_app(state=state)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c
