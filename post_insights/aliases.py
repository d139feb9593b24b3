"""Header alias resolution: messy export headers -> canonical field names.

Headers are compared in a normalized form (lowercase, only a-z and 0-9), so
"New Follows", "new_follows" and "NEW-follows!!" are all the same header.
"""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Canonical field -> accepted header spellings, in priority order.
CONTENT_ALIASES: dict[str, list[str]] = {
    "id": ["post id", "tweet id", "tweetid", "postid", "id"],
    "text": ["post text", "tweet text", "text", "tweet", "post", "content", "body"],
    "createdAt": ["created at", "post time", "tweet time", "time", "created", "timestamp", "date"],
    "impressions": ["impressions", "impression", "views", "view"],
    "likes": ["likes", "like"],
    "replies": ["replies", "reply", "comments"],
    "reposts": ["reposts", "repost", "retweets", "retweet", "reposts/retweets", "retweets/reposts"],
    "bookmarks": ["bookmarks", "bookmark", "saves", "saved", "save"],
    "shares": ["shares", "share"],
    "profileVisits": [
        "profile visits", "profile visit", "profile views", "profile view",
        "profile clicks", "profile click",
    ],
    "newFollows": [
        "new follows", "new follow", "newfollows", "follows",
        "followers gained", "follower gains", "follows gained",
    ],
}

OVERVIEW_ALIASES: dict[str, list[str]] = {
    "date": ["date", "day"],
    "impressions": ["impressions", "impression", "views", "view"],
    "engagements": ["engagements", "engagement"],
    "profileVisits": [
        "profile visits", "profile visit", "profile views", "profile view",
        "profile clicks", "profile click",
    ],
    "newFollows": [
        "new follows", "new follow", "newfollows", "follows",
        "followers gained", "follower gains", "follows gained",
    ],
    "likes": ["likes", "like"],
    "bookmarks": ["bookmarks", "bookmark"],
    "shares": ["shares", "share"],
    "unfollows": ["unfollows", "unfollow", "followers lost"],
    "replies": ["replies", "reply"],
    "reposts": ["reposts", "repost", "retweets", "retweet"],
    "createPost": ["create post", "posts created", "tweets", "posts", "post count"],
    "videoViews": ["video views", "video view"],
    "mediaViews": ["media views", "media view", "media engagements"],
}


def normalize_header(header: str) -> str:
    """Lowercase and strip every character outside a-z and 0-9."""
    return _NON_ALNUM.sub("", str(header).lower())


def build_header_map(
    fields: list[str],
    aliases: dict[str, list[str]],
) -> dict[str, str | None]:
    """Map each canonical field to the literal header that satisfies it.

    For each canonical field, aliases are tried in declaration order: first
    for an exact normalized match, then for a header whose normalized form
    contains the alias. Unsatisfied fields map to None.
    """
    normalized_fields: list[tuple[str, str]] = []
    by_normalized: dict[str, str] = {}
    for header in fields:
        key = normalize_header(header)
        normalized_fields.append((key, header))
        # Earliest header wins when two normalize identically.
        by_normalized.setdefault(key, header)

    header_map: dict[str, str | None] = {}
    for canonical, alias_list in aliases.items():
        normalized_aliases = [normalize_header(a) for a in alias_list]
        match: str | None = None

        for alias in normalized_aliases:
            if alias in by_normalized:
                match = by_normalized[alias]
                break

        if match is None:
            for alias in normalized_aliases:
                match = next(
                    (original for key, original in normalized_fields if alias and alias in key),
                    None,
                )
                if match is not None:
                    break

        header_map[canonical] = match
    return header_map
