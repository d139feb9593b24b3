"""Derived metrics over normalized content and overview rows.

Every function here is pure: it reads rows and returns new values, never
mutating its input. Missing optional numbers count as zero inside sums only.
"""

import enum
import math
import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Iterable, Sequence, TypeVar

from post_insights.coercion import parse_instant
from post_insights.models import ContentRow, Number, OverviewRow

T = TypeVar("T")

DAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
ENGAGEMENT_FIELDS = ("likes", "replies", "reposts", "bookmarks", "shares")


def _n(value: Number | None) -> Number:
    return value if value is not None else 0


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (the builtin round() is banker's rounding)."""
    return math.floor(value + 0.5)


def truncate_text(value: str, max_length: int = 54) -> str:
    clean = value.strip()
    if not clean:
        return "(No text)"
    if len(clean) <= max_length:
        return clean
    return f"{clean[: max_length - 3]}..."


# ---------------------------------------------------------------------------
# Per-row metrics
# ---------------------------------------------------------------------------


def engagement_count(row: ContentRow) -> Number:
    return sum(_n(getattr(row, name)) for name in ENGAGEMENT_FIELDS)


def engagement_rate(row: ContentRow) -> float:
    """Engagements per impression; 0 when impressions <= 0."""
    if not row.impressions or row.impressions <= 0:
        return 0
    return engagement_count(row) / row.impressions


def follows_per_1k(row: ContentRow) -> float:
    """New follows per 1,000 impressions; 0 when impressions <= 0."""
    if not row.impressions or row.impressions <= 0:
        return 0
    return _n(row.new_follows) / row.impressions * 1000


def hour_of(row: ContentRow) -> int | None:
    """UTC hour (0-23) of the post, or None when the timestamp is unusable."""
    moment = parse_instant(row.created_at) if row.created_at else None
    return moment.hour if moment else None


def day_of(row: ContentRow) -> int | None:
    """UTC day of week with Sunday = 0, or None when the timestamp is unusable."""
    moment = parse_instant(row.created_at) if row.created_at else None
    if moment is None:
        return None
    return (moment.weekday() + 1) % 7


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def top_by(rows: Iterable[T], metric: Callable[[T], float], n: int) -> list[T]:
    """Return the n highest-scoring rows. Ties keep their input order."""
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    # sorted() is stable, and reverse=True keeps equal keys in input order.
    return sorted(rows, key=metric, reverse=True)[:n]


def average(values: Sequence[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)


def median(values: Sequence[float]) -> float:
    if not values:
        return 0
    return statistics.median(values)


def percentile(values: Sequence[float], q: float) -> float:
    """Nearest-rank percentile: sorted[floor((n - 1) * q)], index clamped."""
    if not values:
        return 0
    ordered = sorted(values)
    index = min(len(ordered) - 1, max(0, math.floor((len(ordered) - 1) * q)))
    return ordered[index]


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> float | None:
    """Pearson's r, or None when it cannot be computed.

    None (not 0) is returned for fewer than three pairs, unequal lengths and
    zero variance in either series.
    """
    if len(xs) != len(ys) or len(xs) < 3:
        return None
    # Float rounding in the mean leaves tiny nonzero variance for constant series.
    if len(set(xs)) == 1 or len(set(ys)) == 1:
        return None
    x_mean = average(xs)
    y_mean = average(ys)
    numerator = 0.0
    x_var = 0.0
    y_var = 0.0
    for x, y in zip(xs, ys):
        dx = x - x_mean
        dy = y - y_mean
        numerator += dx * dy
        x_var += dx * dx
        y_var += dy * dy
    denominator = math.sqrt(x_var * y_var)
    if denominator == 0:
        return None
    return numerator / denominator


def percent_change(previous: float, current: float) -> float | None:
    if previous == 0:
        return None
    return (current - previous) / previous * 100


# ---------------------------------------------------------------------------
# Day x hour heatmap
# ---------------------------------------------------------------------------


class HeatmapMetric(str, enum.Enum):
    FREQUENCY = "frequency"
    ENGAGEMENT_RATE = "engagementRate"
    FOLLOWS_PER_1K = "followsPer1k"


_CELL_METRICS: dict[HeatmapMetric, Callable[[ContentRow], float]] = {
    HeatmapMetric.FREQUENCY: lambda row: 1,
    HeatmapMetric.ENGAGEMENT_RATE: engagement_rate,
    HeatmapMetric.FOLLOWS_PER_1K: follows_per_1k,
}


@dataclass(frozen=True)
class HeatmapCell:
    count: int = 0
    total: float = 0
    value: float = 0


@dataclass(frozen=True)
class Slot:
    day: int
    hour: int
    value: float
    posts: int

    @property
    def label(self) -> str:
        return f"{DAY_LABELS[self.day]} {self.hour:02d}:00"


@dataclass(frozen=True)
class Heatmap:
    """7 x 24 grid indexed [day][hour], day 0 = Sunday, hours in UTC."""

    metric: HeatmapMetric
    cells: list[list[HeatmapCell]]

    def cell(self, day: int, hour: int) -> HeatmapCell:
        return self.cells[day][hour]

    @property
    def max_value(self) -> float:
        return max((c.value for row in self.cells for c in row), default=0)

    def best_slot(self) -> Slot | None:
        """Highest-valued populated cell; earliest (day, hour) wins ties."""
        best: Slot | None = None
        for day, row in enumerate(self.cells):
            for hour, cell in enumerate(row):
                if not cell.count:
                    continue
                if best is None or cell.value > best.value:
                    best = Slot(day=day, hour=hour, value=cell.value, posts=cell.count)
        return best


def build_heatmap(rows: Iterable[ContentRow], metric: HeatmapMetric | str = HeatmapMetric.FREQUENCY) -> Heatmap:
    """Bucket posts by UTC (day, hour). Rows without a usable timestamp are skipped.

    Cell value is the post count for FREQUENCY, else the mean of the metric
    over the cell's posts. Empty cells are 0.
    """
    metric = HeatmapMetric(metric)
    score = _CELL_METRICS[metric]
    counts = [[0] * 24 for _ in range(7)]
    totals = [[0.0] * 24 for _ in range(7)]

    for row in rows:
        day, hour = day_of(row), hour_of(row)
        if day is None or hour is None:
            continue
        counts[day][hour] += 1
        totals[day][hour] += score(row)

    cells = []
    for day in range(7):
        cells.append([])
        for hour in range(24):
            count, total = counts[day][hour], totals[day][hour]
            if not count:
                value = 0
            elif metric is HeatmapMetric.FREQUENCY:
                value = count
            else:
                value = total / count
            cells[day].append(HeatmapCell(count=count, total=total, value=value))
    return Heatmap(metric=metric, cells=cells)


@dataclass(frozen=True)
class TimingSummary:
    timed_posts: int
    day_counts: list[int]
    hour_counts: list[int]
    best: Slot | None


def posting_timing(rows: Iterable[ContentRow], metric: HeatmapMetric | str = HeatmapMetric.FREQUENCY) -> TimingSummary:
    """Post counts per weekday and per hour, plus the best heatmap slot."""
    heatmap = build_heatmap(rows, metric)
    day_counts = [sum(c.count for c in heatmap.cells[day]) for day in range(7)]
    hour_counts = [sum(heatmap.cells[day][hour].count for day in range(7)) for hour in range(24)]
    return TimingSummary(
        timed_posts=sum(day_counts),
        day_counts=day_counts,
        hour_counts=hour_counts,
        best=heatmap.best_slot(),
    )


# ---------------------------------------------------------------------------
# Content rankings and correlation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RankedPost:
    rank: int
    score: float
    follows: Number
    impressions: Number
    text: str


@dataclass(frozen=True)
class ConversionSummary:
    posts_count: int
    top_score: float
    median_score: float
    top: list[RankedPost]


def conversion_summary(rows: Sequence[ContentRow], limit: int = 6) -> ConversionSummary | None:
    """Rank posts with impressions by follows per 1k. None when no post qualifies."""
    candidates = [row for row in rows if row.impressions > 0]
    if not candidates:
        return None
    ranked = top_by(candidates, follows_per_1k, len(candidates))
    scores = [follows_per_1k(row) for row in ranked]
    top = [
        RankedPost(
            rank=index + 1,
            score=round(scores[index], 2),
            follows=_n(row.new_follows),
            impressions=row.impressions,
            text=truncate_text(row.text),
        )
        for index, row in enumerate(ranked[:limit])
    ]
    return ConversionSummary(
        posts_count=len(candidates),
        top_score=scores[0],
        median_score=median(scores),
        top=top,
    )


@dataclass(frozen=True)
class ScatterPoint:
    engagements: Number
    follows: Number
    text: str


@dataclass(frozen=True)
class ScatterSummary:
    points: list[ScatterPoint]
    correlation: float | None
    high_engagement_cutoff: float
    high_engagement_points: int
    zero_follows: int


def engagement_vs_follows(
    rows: Iterable[ContentRow],
    max_points: int = 180,
    correlate: bool = True,
) -> ScatterSummary | None:
    """Engagement vs new follows per post.

    Posts with neither engagement nor follows are left out. ``correlate``
    lets callers skip the correlation when a source column was absent.
    Returns None when no post has a measurable point.
    """
    points = [
        ScatterPoint(engagements=engagement_count(row), follows=_n(row.new_follows), text=truncate_text(row.text, 42))
        for row in rows
    ]
    points = [p for p in points if p.engagements > 0 or p.follows > 0][:max_points]
    if not points:
        return None

    engagements = [p.engagements for p in points]
    follows = [p.follows for p in points]
    cutoff = percentile(engagements, 0.75)
    high = [p for p in points if p.engagements >= cutoff]
    return ScatterSummary(
        points=points,
        correlation=pearson_correlation(engagements, follows) if correlate else None,
        high_engagement_cutoff=cutoff,
        high_engagement_points=len(high),
        zero_follows=sum(1 for p in high if p.follows == 0),
    )


# ---------------------------------------------------------------------------
# Overview: calendar, streaks, viral days
# ---------------------------------------------------------------------------


def _dated(rows: Iterable[OverviewRow]) -> list[OverviewRow]:
    """Rows that carry a date, sorted by date (stable for duplicates)."""
    return sorted((row for row in rows if row.date), key=lambda row: row.date)


def _sunday_index(day: date) -> int:
    return (day.weekday() + 1) % 7


def _posts_by_day(rows: Iterable[OverviewRow]) -> dict[date, Number]:
    # Duplicate dates are not deduplicated; their counts add up.
    posts: dict[date, Number] = defaultdict(int)
    for row in rows:
        if row.date:
            posts[date.fromisoformat(row.date)] += _n(row.create_post)
    return posts


@dataclass(frozen=True)
class StreakSummary:
    current_streak: int = 0
    longest_streak: int = 0
    active_days: int = 0
    total_days: int = 0
    consistency: int = 0
    start: str | None = None
    end: str | None = None


def streak_summary(rows: Iterable[OverviewRow]) -> StreakSummary:
    """Posting streaks over the inclusive range of dates present in ``rows``.

    A day is active when at least one post was created. Days inside the range
    with no row are inactive. The range is never padded.
    """
    posts = _posts_by_day(rows)
    if not posts:
        return StreakSummary()

    first, last = min(posts), max(posts)
    total_days = (last - first).days + 1
    active = [posts.get(first + timedelta(days=i), 0) >= 1 for i in range(total_days)]

    longest = run = 0
    for is_active in active:
        run = run + 1 if is_active else 0
        longest = max(longest, run)

    current = 0
    for is_active in reversed(active):
        if not is_active:
            break
        current += 1

    active_days = sum(active)
    return StreakSummary(
        current_streak=current,
        longest_streak=longest,
        active_days=active_days,
        total_days=total_days,
        consistency=round_half_up(active_days / total_days * 100),
        start=first.isoformat(),
        end=last.isoformat(),
    )


@dataclass(frozen=True)
class CalendarDay:
    date: str
    weekday: int
    posts: Number
    follows: Number
    in_range: bool


def calendar_weeks(rows: Iterable[OverviewRow]) -> list[list[CalendarDay]]:
    """Calendar grid padded to whole Sunday..Saturday weeks.

    Padding days are marked ``in_range=False``. Streak arithmetic never looks
    at this grid.
    """
    rows = list(rows)
    posts = _posts_by_day(rows)
    if not posts:
        return []
    follows: dict[date, Number] = defaultdict(int)
    for row in rows:
        if row.date:
            follows[date.fromisoformat(row.date)] += _n(row.new_follows)

    first, last = min(posts), max(posts)
    cursor = first - timedelta(days=_sunday_index(first))
    end = last + timedelta(days=6 - _sunday_index(last))

    weeks: list[list[CalendarDay]] = []
    while cursor <= end:
        if _sunday_index(cursor) == 0:
            weeks.append([])
        weeks[-1].append(
            CalendarDay(
                date=cursor.isoformat(),
                weekday=_sunday_index(cursor),
                posts=posts.get(cursor, 0),
                follows=follows.get(cursor, 0),
                in_range=first <= cursor <= last,
            )
        )
        cursor += timedelta(days=1)
    return weeks


@dataclass(frozen=True)
class ViralDay:
    date: str
    impressions: Number
    multiplier: int
    new_follows: Number | None = None
    engagements: Number | None = None


@dataclass(frozen=True)
class ViralReport:
    median: float
    threshold: float | None
    days: list[ViralDay] = field(default_factory=list)


def detect_viral_days(rows: Iterable[OverviewRow], factor: float = 5, limit: int = 5) -> ViralReport:
    """Flag days whose impressions reach ``factor`` x the median day.

    With a median of 0 no threshold can be met: ``threshold`` is None and no
    day is flagged.
    """
    valid = [row for row in rows if row.date and row.impressions >= 0]
    if not valid:
        return ViralReport(median=0, threshold=None)

    med = median([row.impressions for row in valid])
    if med <= 0:
        return ViralReport(median=med, threshold=None)

    threshold = med * factor
    flagged = top_by([row for row in valid if row.impressions >= threshold], lambda row: row.impressions, limit)
    return ViralReport(
        median=med,
        threshold=threshold,
        days=[
            ViralDay(
                date=row.date,
                impressions=row.impressions,
                multiplier=round_half_up(row.impressions / med),
                new_follows=row.new_follows,
                engagements=row.engagements,
            )
            for row in flagged
        ],
    )


# ---------------------------------------------------------------------------
# Overview: funnels and daily series
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GrowthFunnel:
    impressions: Number
    profile_visits: Number
    new_follows: Number
    impression_to_visit_pct: float
    visit_to_follow_pct: float
    visits_per_1k: float
    follows_per_1k: float


def growth_funnel(rows: Iterable[OverviewRow]) -> GrowthFunnel:
    impressions = profile_visits = new_follows = 0
    for row in rows:
        impressions += _n(row.impressions)
        profile_visits += _n(row.profile_visits)
        new_follows += _n(row.new_follows)
    return GrowthFunnel(
        impressions=impressions,
        profile_visits=profile_visits,
        new_follows=new_follows,
        impression_to_visit_pct=profile_visits / impressions * 100 if impressions > 0 else 0,
        visit_to_follow_pct=new_follows / profile_visits * 100 if profile_visits > 0 else 0,
        visits_per_1k=profile_visits / impressions * 1000 if impressions > 0 else 0,
        follows_per_1k=new_follows / impressions * 1000 if impressions > 0 else 0,
    )


@dataclass(frozen=True)
class FollowerDay:
    date: str
    follows: Number
    unfollows: Number
    net: Number
    cumulative_net: Number


@dataclass(frozen=True)
class FollowerFlow:
    days: list[FollowerDay]
    total_gained: Number
    total_lost: Number
    net_growth: Number
    has_data: bool


def follower_flow(rows: Iterable[OverviewRow]) -> FollowerFlow:
    """Daily follows, unfollows and running net growth in date order."""
    days: list[FollowerDay] = []
    cumulative = gained = lost = 0
    for row in _dated(rows):
        follows, unfollows = _n(row.new_follows), _n(row.unfollows)
        net = follows - unfollows
        cumulative += net
        gained += follows
        lost += unfollows
        days.append(FollowerDay(row.date, follows, unfollows, net, cumulative))
    return FollowerFlow(
        days=days,
        total_gained=gained,
        total_lost=lost,
        net_growth=gained - lost,
        has_data=gained > 0 or lost > 0,
    )


@dataclass(frozen=True)
class EfficiencyPoint:
    date: str
    efficiency: float
    sma7: float | None
    impressions: Number
    engagements: Number


@dataclass(frozen=True)
class EfficiencyTrend:
    days: list[EfficiencyPoint]
    overall_average: float
    best_day: EfficiencyPoint | None
    # Last seven days at or above the overall average; None without data
    improving: bool | None


def efficiency_trend(rows: Iterable[OverviewRow], window: int = 7) -> EfficiencyTrend:
    """Daily engagements / impressions (percent) with a trailing moving average.

    Days with no impressions are skipped. The moving average is None until
    ``window`` days are available.
    """
    daily = [
        (row.date, _n(row.engagements) / row.impressions * 100, row.impressions, _n(row.engagements))
        for row in _dated(rows)
        if row.impressions > 0
    ]
    if not daily:
        return EfficiencyTrend(days=[], overall_average=0, best_day=None, improving=None)

    efficiencies = [entry[1] for entry in daily]
    points = []
    for i, (day, efficiency, impressions, engagements) in enumerate(daily):
        sma = average(efficiencies[i - window + 1 : i + 1]) if i >= window - 1 else None
        points.append(EfficiencyPoint(day, efficiency, sma, impressions, engagements))

    overall = average(efficiencies)
    best = points[0]
    for point in points:
        if point.efficiency > best.efficiency:
            best = point
    return EfficiencyTrend(
        days=points,
        overall_average=overall,
        best_day=best,
        improving=average(efficiencies[-window:]) >= overall,
    )


@dataclass(frozen=True)
class EngagementMix:
    totals: dict[str, Number]
    grand_total: Number
    dominant: str | None
    dominant_share: float | None
    days: list[dict[str, Any]]


def engagement_mix(rows: Iterable[OverviewRow]) -> EngagementMix:
    """Per-type engagement totals and the type with the largest share."""
    totals: dict[str, Number] = {name: 0 for name in ENGAGEMENT_FIELDS}
    days = []
    for row in _dated(rows):
        day = {"date": row.date}
        for name in ENGAGEMENT_FIELDS:
            value = _n(getattr(row, name))
            totals[name] += value
            day[name] = value
        days.append(day)

    grand_total = sum(totals.values())
    dominant = share = None
    if grand_total > 0:
        # First type wins ties, matching ENGAGEMENT_FIELDS order.
        dominant = max(ENGAGEMENT_FIELDS, key=lambda name: totals[name])
        share = totals[dominant] / grand_total * 100
    return EngagementMix(totals=totals, grand_total=grand_total, dominant=dominant, dominant_share=share, days=days)


@dataclass(frozen=True)
class FrequencyPoint:
    date: str
    posts: Number
    follows: Number
    impressions: Number


@dataclass(frozen=True)
class FrequencyGrowth:
    points: list[FrequencyPoint]
    median_posts: float
    median_follows: float
    correlation: float | None

    @property
    def posting_helps(self) -> bool:
        return self.correlation is not None and self.correlation > 0.05


def posting_frequency_vs_growth(rows: Iterable[OverviewRow]) -> FrequencyGrowth:
    """Relate posts created per day to new follows, over days with posts."""
    points = [
        FrequencyPoint(row.date, row.create_post, _n(row.new_follows), row.impressions)
        for row in rows
        if row.create_post is not None and row.create_post > 0
    ]
    posts = [p.posts for p in points]
    follows = [p.follows for p in points]
    return FrequencyGrowth(
        points=points,
        median_posts=median(posts),
        median_follows=median(follows),
        correlation=pearson_correlation(posts, follows),
    )


@dataclass(frozen=True)
class TrendPoint:
    date: str
    impressions_index: float
    follows_index: float


@dataclass(frozen=True)
class IndexedTrends:
    rows_count: int
    points: list[TrendPoint]
    impressions_change: float | None
    follows_change: float | None


def indexed_trends(rows: Iterable[OverviewRow], window: int = 30) -> IndexedTrends | None:
    """Impressions and follows over the last ``window`` days, indexed to 100.

    The baseline for each series is its first non-zero day inside the window
    (1 when every day is zero). Returns None when no row has a date.
    """
    dated = _dated(rows)
    if not dated:
        return None
    recent = dated[-window:]
    impressions_base = next((r.impressions for r in recent if r.impressions > 0), 1)
    follows_base = next((r.new_follows for r in recent if _n(r.new_follows) > 0), 1)
    points = [
        TrendPoint(
            date=row.date,
            impressions_index=row.impressions / impressions_base * 100,
            follows_index=_n(row.new_follows) / follows_base * 100,
        )
        for row in recent
    ]
    return IndexedTrends(
        rows_count=len(dated),
        points=points,
        impressions_change=percent_change(points[0].impressions_index, points[-1].impressions_index),
        follows_change=percent_change(points[0].follows_index, points[-1].follows_index),
    )


# ---------------------------------------------------------------------------
# Headline numbers
# ---------------------------------------------------------------------------


def summary(content_rows: Sequence[ContentRow], overview_rows: Sequence[OverviewRow]) -> dict[str, Any]:
    """Headline KPI numbers for the dashboard header cards."""
    return {
        "posts": len(content_rows),
        "impressions": sum(row.impressions for row in content_rows),
        "new_follows": sum(_n(row.new_follows) for row in content_rows),
        "best_engagement_rate": max((engagement_rate(row) for row in content_rows), default=0),
        "best_follows_per_1k": max((follows_per_1k(row) for row in content_rows), default=0),
        "overview_days": len(overview_rows),
        "overview_impressions": sum(row.impressions for row in overview_rows),
        "overview_new_follows": sum(_n(row.new_follows) for row in overview_rows),
    }
