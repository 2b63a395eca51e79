"""
Comparison Engine

Ranks one apartment evaluation against a cohort of the owner's other
evaluations: cohort selection, per-metric statistics (average, best,
worst, better-than count, percentile) and display-ready metrics.
"""

from .models import (
    ComparisonBase,
    TimePeriod,
    ComparisonStats,
    NoComparisonData,
    StatsResult,
    ComparisonMetric,
    effective_percentile,
)
from .statistics import compute_stats
from .filters import CohortSelector, sort_evaluations
from .metrics import MetricDefinition, COMPARISON_METRICS, build_comparison_metrics

__all__ = [
    # Models
    "ComparisonBase",
    "TimePeriod",
    "ComparisonStats",
    "NoComparisonData",
    "StatsResult",
    "ComparisonMetric",
    "effective_percentile",
    # Engine
    "compute_stats",
    "CohortSelector",
    "sort_evaluations",
    "MetricDefinition",
    "COMPARISON_METRICS",
    "build_comparison_metrics",
]
