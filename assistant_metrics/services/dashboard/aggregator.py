"""
Dashboard Aggregator — reduce one window's rows into KPIs.

Pure functions, no I/O. Every ratio with an empty denominator is 0.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from assistant_metrics.models.dashboard import AggregationRow, Window, WindowMetrics

_HIGH_CONFIDENCE = 0.8


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def percentage(numerator: int, denominator: int) -> float:
    """Percentage with one decimal; 0.0 when the denominator is 0."""
    if denominator <= 0:
        return 0.0
    return round_half_up(numerator / denominator * 1000) / 10


def average(values: Sequence[float], count: int) -> int:
    """Rounded mean of ``values`` over ``count`` rows; 0 when count is 0."""
    if count <= 0:
        return 0
    return round_half_up(sum(values) / count)


def aggregate(rows: Sequence[AggregationRow], window: Window) -> WindowMetrics:
    """Compute the KPIs of one window.

    Works for any row shape: fields a row type lacks (e.g. ``duration_ms`` on
    an interaction) count as absent, and absent numeric values count as 0.
    A missing ``user_id`` is one distinct user value, as in a set of ids.
    """
    count = len(rows)
    statuses = [getattr(r, "status", None) for r in rows]
    success = statuses.count("success")
    failed = statuses.count("failed")
    completed = statuses.count("completed")

    durations = [getattr(r, "duration_ms", None) or 0 for r in rows]
    response_times = [getattr(r, "response_time_ms", None) or 0 for r in rows]
    users = {getattr(r, "user_id", None) for r in rows if hasattr(r, "user_id")}
    confident = sum(
        1 for r in rows if (getattr(r, "confidence_score", None) or 0) > _HIGH_CONFIDENCE
    )

    metrics = WindowMetrics(
        window=window,
        count=count,
        success_count=success,
        failed_count=failed,
        completed_count=completed,
        success_rate=percentage(success, count),
        average_duration=average(durations, count),
        average_response_time=average(response_times, count),
        unique_users=len(users),
        high_confidence_rate=percentage(confident, count),
        status_completion_rate=percentage(completed, count),
    )

    if window is Window.MONTH:
        requested = sum(1 for r in rows if getattr(r, "appointment_requested", False))
        fulfilled = sum(
            1
            for r in rows
            if getattr(r, "appointment_requested", False)
            and getattr(r, "appointment_completed", False)
        )
        requesting_users = {
            getattr(r, "user_id", None)
            for r in rows
            if getattr(r, "appointment_requested", False)
        } & users
        metrics.appointment_completion_rate = percentage(fulfilled, requested)
        metrics.user_conversion_rate = percentage(len(requesting_users), len(users))

    return metrics
