"""Metric grading engine — thresholds, grades, display formatting, composite score."""

from __future__ import annotations

import math
from typing import Literal

MetricKey = Literal["lcp", "cls", "inp", "fcp", "ttfb"]
Grade = Literal["good", "needs-improvement", "poor"]

METRIC_KEYS: tuple[MetricKey, ...] = ("lcp", "cls", "inp", "fcp", "ttfb")

# (good, poor): value <= good is good, value > poor is poor
THRESHOLDS: dict[str, tuple[float, float]] = {
    "lcp": (2500, 4000),
    "cls": (0.1, 0.25),
    "inp": (200, 500),
    "fcp": (1800, 3000),
    "ttfb": (800, 1800),
}

_TIME_METRICS = frozenset({"lcp", "fcp", "ttfb", "inp"})

GRADE_SEVERITY: dict[str, int] = {
    "good": 0,
    "needs-improvement": 1,
    "poor": 2,
}

GRADE_LABELS: dict[str, str] = {
    "good": "Good",
    "needs-improvement": "Needs improvement",
    "poor": "Poor",
}

GRADE_COLORS: dict[str, str] = {
    "good": "#16a34a",
    "needs-improvement": "#d97706",
    "poor": "#dc2626",
}

GRADE_BACKGROUNDS: dict[str, str] = {
    "good": "#f0fdf4",
    "needs-improvement": "#fffbeb",
    "poor": "#fef2f2",
}

# Composite health weights
HEALTH_WEIGHTS = {"performance": 0.4, "seo": 0.3, "accessibility": 0.3}


class MetricInfo:
    """Display metadata for one core metric."""

    __slots__ = ("short_name", "name", "what", "target")

    def __init__(self, short_name: str, name: str, what: str, target: str) -> None:
        self.short_name = short_name
        self.name = name
        self.what = what
        self.target = target


METRIC_INFO: dict[str, MetricInfo] = {
    "lcp": MetricInfo(
        "LCP",
        "Largest Contentful Paint",
        "Time until the largest visible element (usually a hero image or headline) finishes rendering.",
        "under 2.5s",
    ),
    "cls": MetricInfo(
        "CLS",
        "Cumulative Layout Shift",
        "How much visible content jumps around while the page loads.",
        "under 0.1",
    ),
    "inp": MetricInfo(
        "INP",
        "Interaction to Next Paint",
        "How quickly the page responds visually after a click, tap or key press. Real-user data only.",
        "under 200ms",
    ),
    "fcp": MetricInfo(
        "FCP",
        "First Contentful Paint",
        "Time until the first text or image appears on screen.",
        "under 1.8s",
    ),
    "ttfb": MetricInfo(
        "TTFB",
        "Time to First Byte",
        "Time the server takes to start sending the page.",
        "under 800ms",
    ),
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's ``round`` uses banker's rounding (``round(62.5) == 62``); scores
    follow the upstream convention where 62.5 becomes 63.
    """
    return int(math.floor(value + 0.5))


def grade_metric(key: MetricKey, value: float) -> Grade:
    """Grade a metric value against its fixed thresholds.

    The good boundary is inclusive and reaching the poor threshold exactly is
    still ``needs-improvement``.
    """
    good, poor = THRESHOLDS[key]
    if value <= good:
        return "good"
    if value <= poor:
        return "needs-improvement"
    return "poor"


def grade_score(score: float) -> Grade:
    """Grade a 0–100 category or composite score."""
    if score >= 90:
        return "good"
    if score >= 50:
        return "needs-improvement"
    return "poor"


def score_gauge_color(score: float) -> str:
    return GRADE_COLORS[grade_score(score)]


def _plain_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_ms(value: float) -> str:
    if value < 1000:
        return f"{round_half_up(value)}ms"
    return f"{value / 1000:.1f}s"


def format_kib(size: float) -> str:
    return f"{round_half_up(size / 1024)} KiB"


def format_metric_value(key: str, value: float) -> str:
    """Format a metric value for display (``0.100``, ``999ms``, ``2.5s``)."""
    if key == "cls":
        return f"{value:.3f}"
    if key in _TIME_METRICS:
        return format_ms(value)
    return _plain_number(value)


def format_optional(key: str, value: float | None, placeholder: str = "—") -> str:
    return placeholder if value is None else format_metric_value(key, value)


def site_health(perf: int | None, seo: int | None, accessibility: int | None) -> int:
    """Composite health score: perf 40%, SEO 30%, accessibility 30%.

    An unmeasured SEO or accessibility category takes the performance score
    in its slot instead of being dropped or zeroed.
    """
    p = perf if perf is not None else 0
    s = seo if seo is not None else p
    a = accessibility if accessibility is not None else p
    return round_half_up(
        p * HEALTH_WEIGHTS["performance"]
        + s * HEALTH_WEIGHTS["seo"]
        + a * HEALTH_WEIGHTS["accessibility"]
    )
