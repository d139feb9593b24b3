"""JSON API routes for chart data and dashboard metrics."""

import logging
from dataclasses import asdict
from typing import Any, Callable

from fastapi import APIRouter, Depends, Query

from post_insights import metrics
from post_insights.metrics import ENGAGEMENT_FIELDS, HeatmapMetric
from post_insights.models import ContentRow
from post_insights.state import AnalyticsState, get_state

logger = logging.getLogger(__name__)

router = APIRouter()

_HEATMAP_METRICS = "^(frequency|engagementRate|followsPer1k)$"

_RANKINGS: dict[str, Callable[[ContentRow], float]] = {
    "followsPer1k": metrics.follows_per_1k,
    "engagementRate": metrics.engagement_rate,
    "engagements": metrics.engagement_count,
    "impressions": lambda row: row.impressions,
}


def _unavailable(message: str) -> dict[str, Any]:
    return {"available": False, "message": message}


def _available(payload: Any) -> dict[str, Any]:
    data = asdict(payload) if not isinstance(payload, dict) else payload
    return {"available": True, **data}


def _has_follows(state: AnalyticsState) -> bool:
    return "newFollows" not in state.content_missing_optional


def _has_engagement(state: AnalyticsState) -> bool:
    return any(name not in state.content_missing_optional for name in ENGAGEMENT_FIELDS)


def _default_heatmap_metric(state: AnalyticsState) -> HeatmapMetric:
    """Best metric the loaded columns support."""
    if _has_follows(state):
        return HeatmapMetric.FOLLOWS_PER_1K
    if _has_engagement(state):
        return HeatmapMetric.ENGAGEMENT_RATE
    return HeatmapMetric.FREQUENCY


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for Docker and load balancers."""
    return {"status": "ok"}


# ---------------------------------------------------------------------------
# Summary / KPI
# ---------------------------------------------------------------------------


@router.get("/api/metrics/summary")
async def metrics_summary(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Return KPI summary metrics for the dashboard header cards."""
    summary = metrics.summary(state.content_rows, state.overview_rows)
    summary["best_engagement_rate"] = round(summary["best_engagement_rate"], 6)
    summary["best_follows_per_1k"] = round(summary["best_follows_per_1k"], 4)
    return summary


# ---------------------------------------------------------------------------
# Content (per-post) analytics
# ---------------------------------------------------------------------------


@router.get("/api/content/top")
async def top_posts(
    metric: str = Query("followsPer1k", pattern="^(followsPer1k|engagementRate|engagements|impressions)$"),
    limit: int = Query(10, ge=1, le=100),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Return the top posts by the given metric, ties in upload order.

    Args:
        metric: Ranking metric.
        limit: Number of posts to return (default 10).
    """
    ranked = metrics.top_by(state.content_rows, _RANKINGS[metric], limit)
    return {
        "metric": metric,
        "posts": [
            {
                **row.to_dict(),
                "engagements": metrics.engagement_count(row),
                "engagementRate": round(metrics.engagement_rate(row), 6),
                "followsPer1k": round(metrics.follows_per_1k(row), 4),
            }
            for row in ranked
        ],
    }


@router.get("/api/content/heatmap")
async def content_heatmap(
    metric: str | None = Query(None, pattern=_HEATMAP_METRICS),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Return the 7x24 day/hour grid (day 0 = Sunday, UTC) with the best slot.

    Args:
        metric: Cell metric. Defaults to the best one the loaded columns support.
    """
    heatmap = metrics.build_heatmap(state.content_rows, metric or _default_heatmap_metric(state))
    best = heatmap.best_slot()
    return {
        "metric": heatmap.metric.value,
        "days": list(metrics.DAY_LABELS),
        "cells": [[asdict(cell) for cell in day] for day in heatmap.cells],
        "max_value": heatmap.max_value,
        "best_slot": {**asdict(best), "label": best.label} if best else None,
    }


@router.get("/api/content/timing")
async def content_timing(
    metric: str | None = Query(None, pattern=_HEATMAP_METRICS),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Return post counts by weekday and by hour, plus the best posting slot."""
    timing = metrics.posting_timing(state.content_rows, metric or _default_heatmap_metric(state))
    if not timing.timed_posts:
        return _unavailable("No valid timestamps.")
    payload = _available(timing)
    payload["best"]["label"] = timing.best.label
    return payload


@router.get("/api/content/scatter")
async def content_scatter(
    max_points: int = Query(180, ge=3, le=5000),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Return engagement vs new-follow points and their correlation.

    ``correlation`` is null when it cannot be computed (too few points, no
    variance, or a source column is missing), which is different from 0.
    """
    has_engagement, has_follows = _has_engagement(state), _has_follows(state)
    if not has_engagement and not has_follows:
        return _unavailable("Missing engagement and follows fields.")
    scatter = metrics.engagement_vs_follows(
        state.content_rows,
        max_points=max_points,
        correlate=has_engagement and has_follows,
    )
    if scatter is None:
        return _unavailable("No measurable engagement/follows points.")
    return _available(scatter)


@router.get("/api/content/conversion")
async def content_conversion(
    limit: int = Query(6, ge=1, le=50),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Return posts ranked by new follows per 1,000 impressions."""
    if not _has_follows(state):
        return _unavailable("Missing new follows column.")
    conversion = metrics.conversion_summary(state.content_rows, limit=limit)
    if conversion is None:
        return _unavailable("No posts with impressions.")
    return _available(conversion)


# ---------------------------------------------------------------------------
# Overview (per-day) analytics
# ---------------------------------------------------------------------------


@router.get("/api/overview/streak")
async def overview_streak(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Return posting streak stats and the Sunday-aligned calendar grid."""
    streak = metrics.streak_summary(state.overview_rows)
    weeks = metrics.calendar_weeks(state.overview_rows)
    return {
        **asdict(streak),
        "weeks": [[asdict(day) for day in week] for week in weeks],
    }


@router.get("/api/overview/viral")
async def overview_viral(
    factor: float = Query(5, gt=1, le=100),
    limit: int = Query(5, ge=1, le=50),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Return days whose impressions reached ``factor`` x the median day."""
    return asdict(metrics.detect_viral_days(state.overview_rows, factor=factor, limit=limit))


@router.get("/api/overview/funnel")
async def overview_funnel(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Return the impressions -> profile visits -> follows funnel."""
    funnel = metrics.growth_funnel(state.overview_rows)
    if not state.overview_rows or funnel.impressions == 0:
        return _unavailable("No impression data available.")
    return _available(funnel)


@router.get("/api/overview/followers")
async def overview_followers(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Return daily follows, unfollows and cumulative net growth."""
    return asdict(metrics.follower_flow(state.overview_rows))


@router.get("/api/overview/efficiency")
async def overview_efficiency(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Return daily engagement efficiency (%) with a 7-day moving average."""
    trend = metrics.efficiency_trend(state.overview_rows)
    if not trend.days:
        return _unavailable("No engagement or impression data available for efficiency analysis.")
    return _available(trend)


@router.get("/api/overview/engagement-mix")
async def overview_engagement_mix(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Return per-type engagement totals and the dominant type."""
    mix = metrics.engagement_mix(state.overview_rows)
    if not mix.grand_total:
        return _unavailable("No engagement data available.")
    return _available(mix)


@router.get("/api/overview/frequency")
async def overview_frequency(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Return posts-per-day vs new follows, with medians and correlation."""
    frequency = metrics.posting_frequency_vs_growth(state.overview_rows)
    if not frequency.points:
        return _unavailable("No days with post-creation data found.")
    payload = _available(frequency)
    payload["posting_helps"] = frequency.posting_helps
    return payload


@router.get("/api/overview/trends")
async def overview_trends(
    window: int = Query(30, ge=2, le=365),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Return impressions and follows indexed to 100 over the recent window."""
    if not state.overview_rows:
        return _unavailable("Overview CSV not loaded.")
    trends = metrics.indexed_trends(state.overview_rows, window=window)
    if trends is None:
        return _unavailable("Overview dates are invalid.")
    return _available(trends)
