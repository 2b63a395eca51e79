"""
Comparative statistics for a single metric.

Given a subject value and the same metric across a cohort (the subject
itself is never part of the cohort), computes average, best, worst, the
number of cohort members the subject strictly beats and the resulting
percentile. Ties never count as beaten.
"""

from typing import Iterable

from core.derived import is_finite_number

from .models import ComparisonStats, NoComparisonData, StatsResult


def compute_stats(
    cohort_values: Iterable,
    subject_value,
    higher_is_better: bool,
) -> StatsResult:
    """
    Rank a subject value against cohort values.

    Args:
        cohort_values: The cohort's values for one metric (excluding the subject).
            Non-numeric and non-finite entries are ignored.
        subject_value: The subject's value for the same metric.
        higher_is_better: Ranking direction.

    Returns:
        ComparisonStats, or NoComparisonData when the cohort has no usable
        values or the subject value is missing.
    """
    values = [value for value in cohort_values if is_finite_number(value)]

    if not values:
        return NoComparisonData()

    if not is_finite_number(subject_value):
        return NoComparisonData(reason="Data missing")

    total = len(values)
    average = sum(values) / total

    if higher_is_better:
        best, worst = max(values), min(values)
        better_count = sum(1 for value in values if value < subject_value)
    else:
        best, worst = min(values), max(values)
        better_count = sum(1 for value in values if value > subject_value)

    return ComparisonStats(
        average=average,
        best=best,
        worst=worst,
        better_count=better_count,
        percentile=better_count / total * 100,
        total=total,
    )
