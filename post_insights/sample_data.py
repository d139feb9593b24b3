"""Built-in demo dataset: one week of posts and the matching daily rollup."""

from post_insights.models import ContentRow, OverviewRow

DEMO_CONTENT_FILE = "demo_content.csv"
DEMO_OVERVIEW_FILE = "demo_overview.csv"

# id, text, created_at, impressions, likes, replies, reposts, bookmarks, shares, profile visits, new follows
_POSTS = [
    ("1", "Shipped a new onboarding flow in 48 hours. Here are the lessons.",
     "2025-01-06T15:00:00.000Z", 12450, 420, 36, 58, 24, 10, 310, 64),
    ("2", "Stop chasing engagement. Optimize for distribution instead.",
     "2025-01-07T19:00:00.000Z", 18200, 530, 44, 90, 40, 18, 410, 92),
    ("3", "3 pricing mistakes I see founders make every week:",
     "2025-01-08T13:00:00.000Z", 7600, 210, 19, 28, 14, 6, 150, 27),
    ("4", "A 5-minute teardown of a viral landing page. (Thread)",
     "2025-01-09T22:00:00.000Z", 24800, 760, 62, 140, 68, 22, 540, 128),
    ("5", "Hot take: you only need 3 metrics to steer product growth.",
     "2025-01-10T10:00:00.000Z", 9800, 300, 22, 36, 18, 8, 210, 39),
    ("6", "I tested 12 headlines so you don't have to. Winner inside.",
     "2025-01-11T16:00:00.000Z", 15400, 470, 33, 70, 30, 12, 360, 81),
    ("7", "The fastest way to tank your engagement rate? Post at 3am.",
     "2025-01-12T03:00:00.000Z", 4600, 140, 10, 16, 8, 3, 90, 12),
    ("8", "Built a weekly analytics ritual: what I track, what I ignore.",
     "2025-01-12T18:00:00.000Z", 11200, 350, 26, 44, 20, 9, 260, 52),
]

# date, impressions, engagements, profile visits, new follows, unfollows, posts created
_DAYS = [
    ("2025-01-06", 26500, 930, 520, 120, 14, 1),
    ("2025-01-07", 31200, 1240, 610, 165, 9, 1),
    ("2025-01-08", 21800, 760, 430, 98, 21, 1),
    ("2025-01-09", 34800, 1520, 720, 190, 12, 1),
    ("2025-01-10", 28900, 940, 580, 132, 17, 1),
    ("2025-01-11", 30100, 1100, 640, 150, 11, 1),
    ("2025-01-12", 27400, 980, 560, 142, 16, 2),
]


def demo_content_rows() -> list[ContentRow]:
    return [
        ContentRow(
            id=post_id,
            text=text,
            created_at=created_at,
            impressions=impressions,
            likes=likes,
            replies=replies,
            reposts=reposts,
            bookmarks=bookmarks,
            shares=shares,
            profile_visits=visits,
            new_follows=follows,
        )
        for post_id, text, created_at, impressions, likes, replies, reposts, bookmarks, shares, visits, follows in _POSTS
    ]


def demo_overview_rows() -> list[OverviewRow]:
    return [
        OverviewRow(
            date=day,
            impressions=impressions,
            engagements=engagements,
            profile_visits=visits,
            new_follows=follows,
            unfollows=unfollows,
            create_post=posts,
        )
        for day, impressions, engagements, visits, follows, unfollows, posts in _DAYS
    ]
