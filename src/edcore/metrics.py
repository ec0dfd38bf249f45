"""
Catalog of common experiment metrics.

Typical baselines and variances for B2C products, used as starting points
when a team has no historical data yet. Replace them with real numbers
before trusting a sample size.
"""

from __future__ import annotations

from typing import List, Optional

from edcore.schema import MetricCategory, MetricDirection, MetricSpec, MetricType

_B, _C, _N = MetricType.BINARY, MetricType.CONTINUOUS, MetricType.COUNT
_P, _S, _G = MetricCategory.PRIMARY, MetricCategory.SECONDARY, MetricCategory.GUARDRAIL
_UP, _DOWN = MetricDirection.INCREASE, MetricDirection.DECREASE

# name, description, type, category, direction, baseline, variance
_CATALOG = [
    ("Conversion Rate", "Percentage of users who complete a desired action", _B, _P, _UP, 0.05, None),
    ("Click-Through Rate (CTR)", "Percentage of users who click on a specific element", _B, _P, _UP, 0.03, None),
    ("Bounce Rate", "Percentage of users who leave without interaction", _B, _G, _DOWN, 0.4, None),
    ("Signup Rate", "Percentage of visitors who create an account", _B, _P, _UP, 0.02, None),
    ("Retention Rate (7-day)", "Percentage of users who return within 7 days", _B, _P, _UP, 0.25, None),
    ("Revenue per User", "Average revenue generated per user", _C, _P, _UP, 50.0, 2500.0),
    ("Average Order Value", "Average value of each transaction", _C, _P, _UP, 75.0, 1875.0),
    ("Session Duration", "Average time users spend in a session (seconds)", _C, _S, _UP, 180.0, 14400.0),
    ("Page Load Time", "Average time to load page (milliseconds)", _C, _G, _DOWN, 1500.0, 250000.0),
    ("Engagement Score", "Composite metric of user engagement", _C, _S, _UP, 7.5, 6.25),
    ("Number of Purchases", "Count of purchases per user", _N, _P, _UP, 1.5, None),
    ("Pages per Session", "Number of pages viewed per session", _N, _S, _UP, 4.0, None),
    ("Error Count", "Number of errors encountered per user", _N, _G, _DOWN, 0.1, None),
    ("Feature Usage Count", "Number of times a feature is used per user", _N, _S, _UP, 2.5, None),
]


def common_metrics() -> List[MetricSpec]:
    """Return fresh copies of the catalog (callers may mutate them)."""
    return [
        MetricSpec(
            name=name,
            description=desc,
            type=mtype,
            category=cat,
            direction=direction,
            baseline=baseline,
            variance=variance,
        )
        for name, desc, mtype, cat, direction, baseline, variance in _CATALOG
    ]


def metrics_by_category(category: MetricCategory) -> List[MetricSpec]:
    return [m for m in common_metrics() if m.category == MetricCategory(category)]


def metrics_by_type(metric_type: MetricType) -> List[MetricSpec]:
    return [m for m in common_metrics() if m.type == MetricType(metric_type)]


def search_metrics(query: str) -> List[MetricSpec]:
    """Case-insensitive substring search over names and descriptions."""
    q = query.strip().lower()
    return [m for m in common_metrics() if q in m.name.lower() or q in (m.description or "").lower()]


def find_metric(name: str) -> Optional[MetricSpec]:
    key = name.strip().lower()
    for m in common_metrics():
        if m.name.lower() == key:
            return m
    return None


def create_metric(
    name: str = "New Metric",
    metric_type: MetricType = MetricType.CONTINUOUS,
    category: MetricCategory = MetricCategory.SECONDARY,
    direction: MetricDirection = MetricDirection.INCREASE,
    baseline: float = 0.0,
    variance: Optional[float] = None,
    std_dev: Optional[float] = None,
    description: Optional[str] = None,
) -> MetricSpec:
    return MetricSpec(
        name=name,
        type=MetricType(metric_type),
        category=MetricCategory(category),
        direction=MetricDirection(direction),
        baseline=float(baseline),
        variance=variance,
        std_dev=std_dev,
        description=description,
    )
