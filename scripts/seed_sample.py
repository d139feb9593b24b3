"""Write 90 days of realistic sample CSV exports for development and testing.

Usage:
    python scripts/seed_sample.py
    python scripts/seed_sample.py --out samples/ --check  # ingest them afterwards

Generates:
    - content_sample.csv: 60 posts with export-style headers
    - overview_sample.csv: 90 days of account totals, with one spike day
"""

import argparse
import csv
import random
import sys
from datetime import datetime, time, timedelta, timezone
from pathlib import Path

# Ensure the post_insights package is importable when running from the project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from post_insights.ingest import ingest_path
from post_insights.state import AnalyticsState

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

SEED = 42
random.seed(SEED)

NUM_POSTS = 60
DAYS = 90
BASE_DATE = datetime.now(timezone.utc).date() - timedelta(days=DAYS)
SPIKE_DAY = 61

# Header spellings as they appear in real exports, not canonical names
CONTENT_HEADERS = [
    "Post id", "Date", "Post text", "Impressions", "Likes", "Replies",
    "Reposts", "Bookmarks", "Shares", "Profile visits", "New follows",
]
OVERVIEW_HEADERS = [
    "Date", "Impressions", "Likes", "Engagements", "Bookmarks", "Shares",
    "New follows", "Unfollows", "Replies", "Reposts", "Profile visits",
    "Create Post", "Video views", "Media views",
]

POST_TEXTS = [
    "Shipped a new onboarding flow in 48 hours. Here are the lessons.",
    "Stop chasing engagement. Optimize for distribution instead.",
    "3 pricing mistakes I see founders make every week:",
    "A 5-minute teardown of a viral landing page. (Thread)",
    "Hot take: you only need 3 metrics to steer product growth.",
    "I tested 12 headlines so you don't have to. Winner inside.",
    "Built a weekly analytics ritual: what I track, what I ignore.",
    "Your changelog is a marketing channel. Treat it like one.",
    "What 100 customer calls taught me about churn",
    "The boring growth loop nobody talks about",
]

POSTING_HOURS = [8, 9, 12, 13, 15, 17, 19, 21]


def generate_posts() -> list[list]:
    rows = []
    for i in range(NUM_POSTS):
        day = BASE_DATE + timedelta(days=random.randint(0, DAYS - 1))
        posted = datetime.combine(day, time(random.choice(POSTING_HOURS), random.choice([0, 15, 30])))
        impressions = random.randint(800, 25000)
        likes = random.randint(int(impressions * 0.01), int(impressions * 0.05))
        replies = random.randint(int(likes * 0.05), int(likes * 0.2))
        reposts = random.randint(int(likes * 0.05), int(likes * 0.25))
        bookmarks = random.randint(0, int(likes * 0.15))
        shares = random.randint(0, int(likes * 0.05))
        visits = random.randint(int(impressions * 0.005), int(impressions * 0.03))
        follows = random.randint(0, max(1, int(visits * 0.3)))
        rows.append([
            str(1_800_000_000_000 + i),
            posted.strftime("%a, %b %d, %Y %H:%M"),
            POST_TEXTS[i % len(POST_TEXTS)],
            f"{impressions:,}",
            likes, replies, reposts, bookmarks, shares, visits, follows,
        ])
    rows.sort(key=lambda r: datetime.strptime(r[1], "%a, %b %d, %Y %H:%M"))
    return rows


def generate_overview() -> list[list]:
    rows = []
    for i in range(DAYS):
        d = BASE_DATE + timedelta(days=i)
        impressions = random.randint(3000, 9000) + int(i * 40)  # Slight upward trend
        if i == SPIKE_DAY:
            impressions *= 7
        likes = int(impressions * random.uniform(0.01, 0.03))
        replies = int(likes * random.uniform(0.05, 0.2))
        reposts = int(likes * random.uniform(0.05, 0.2))
        bookmarks = int(likes * random.uniform(0.02, 0.1))
        shares = int(likes * random.uniform(0.0, 0.05))
        engagements = likes + replies + reposts + bookmarks + shares
        visits = int(impressions * random.uniform(0.005, 0.02))
        follows = random.randint(2, max(3, visits // 4))
        posts = random.choice([0, 0, 1, 1, 1, 2, 3])
        rows.append([
            d.isoformat(), impressions, likes, engagements, bookmarks, shares,
            follows, random.randint(0, 6), replies, reposts, visits, posts,
            random.randint(0, 400), random.randint(0, 900),
        ])
    return rows


def write_csv(path: Path, headers: list[str], rows: list[list]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(headers)
        writer.writerows(rows)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> None:
    parser = argparse.ArgumentParser(description="Write sample content and overview CSV exports.")
    parser.add_argument("--out", type=Path, default=Path("samples"), help="Output directory.")
    parser.add_argument("--check", action="store_true", help="Ingest the written files and print diagnostics.")
    args = parser.parse_args()

    args.out.mkdir(parents=True, exist_ok=True)
    content_path = args.out / "content_sample.csv"
    overview_path = args.out / "overview_sample.csv"

    print(f"Generating {NUM_POSTS} posts...")
    write_csv(content_path, CONTENT_HEADERS, generate_posts())
    print(f"  Wrote {content_path}")

    print(f"Generating {DAYS} overview days...")
    write_csv(overview_path, OVERVIEW_HEADERS, generate_overview())
    print(f"  Wrote {overview_path}")

    if args.check:
        state = AnalyticsState()
        for path in (content_path, overview_path):
            report = ingest_path(path, state)
            for message in report.messages:
                print(f"  [{message.severity.value}] {message.text}")

    print("Sample data written.")


if __name__ == "__main__":
    main()
