"""
Tests for comparison statistics.

Covers:
- Average, best and worst in both ranking directions
- Strict better-than counting (ties never count)
- Percentile as share of the cohort beaten
- Empty and unusable cohorts, missing subject values
"""

import math
from pathlib import Path
import sys

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.comparison import (
    ComparisonStats,
    NoComparisonData,
    compute_stats,
    effective_percentile,
)


# =============================================================================
# Test: Basic Statistics
# =============================================================================

class TestComputeStats:
    """Tests for compute_stats on well-formed input."""

    def test_lower_is_better_price_scenario(self):
        """Cheaper subject beats every more expensive cohort member."""
        result = compute_stats([40000, 50000, 60000], 45000, higher_is_better=False)

        assert isinstance(result, ComparisonStats)
        assert result.average == 50000
        assert result.best == 40000
        assert result.worst == 60000
        assert result.better_count == 2
        assert result.total == 3
        assert result.percentile == pytest.approx(66.67, abs=0.01)

    def test_higher_is_better(self):
        """Best is the maximum and lower cohort values are beaten."""
        result = compute_stats([2.0, 3.0, 4.0, 5.0], 4.5, higher_is_better=True)

        assert result.best == 5.0
        assert result.worst == 2.0
        assert result.better_count == 3
        assert result.percentile == 75.0

    def test_subject_better_than_all(self):
        result = compute_stats([10, 20, 30], 5, higher_is_better=False)

        assert result.better_count == 3
        assert result.percentile == 100.0

    def test_subject_worse_than_all(self):
        result = compute_stats([10, 20, 30], 5, higher_is_better=True)

        assert result.better_count == 0
        assert result.percentile == 0.0

    def test_single_member_cohort(self):
        result = compute_stats([100], 90, higher_is_better=False)

        assert result.average == 100
        assert result.best == result.worst == 100
        assert result.total == 1
        assert result.percentile == 100.0


# =============================================================================
# Test: Tie Handling
# =============================================================================

class TestTies:
    """Ties never count as beaten, in either direction."""

    def test_all_equal_values_beat_nobody(self):
        for higher_is_better in (True, False):
            result = compute_stats([50, 50, 50], 50, higher_is_better)
            assert result.better_count == 0
            assert result.percentile == 0.0

    def test_partial_ties_not_counted(self):
        result = compute_stats([3, 4, 4, 5], 4, higher_is_better=True)

        # Only the 3 is strictly worse
        assert result.better_count == 1
        assert result.percentile == 25.0


# =============================================================================
# Test: Degraded Input
# =============================================================================

class TestNoComparisonData:
    """Empty or unusable input returns a result variant, never raises."""

    def test_empty_cohort(self):
        result = compute_stats([], 100, higher_is_better=True)

        assert isinstance(result, NoComparisonData)

    def test_non_numeric_values_ignored(self):
        result = compute_stats([None, "n/a", math.nan, 10, 20], 15, higher_is_better=True)

        assert isinstance(result, ComparisonStats)
        assert result.total == 2
        assert result.average == 15
        assert result.better_count == 1

    def test_only_unusable_values(self):
        result = compute_stats([None, math.inf, True], 10, higher_is_better=False)

        assert isinstance(result, NoComparisonData)

    def test_missing_subject_value(self):
        result = compute_stats([10, 20], None, higher_is_better=True)

        assert isinstance(result, NoComparisonData)
        assert result.reason == "Data missing"

    def test_inputs_not_modified(self):
        values = [30, 10, 20]
        compute_stats(values, 15, higher_is_better=True)

        assert values == [30, 10, 20]


# =============================================================================
# Test: Direction Symmetry
# =============================================================================

class TestDirectionSymmetry:
    """Effective percentiles of opposite directions are complementary without ties."""

    def test_effective_percentile_flips_lower_is_better(self):
        assert effective_percentile(30.0, higher_is_better=True) == 30.0
        assert effective_percentile(30.0, higher_is_better=False) == 70.0

    def test_opposite_directions_sum_to_hundred(self):
        cohort = [10, 20, 30, 40, 50]
        higher = compute_stats(cohort, 35, higher_is_better=True)
        lower = compute_stats(cohort, 35, higher_is_better=False)

        assert higher.percentile + lower.percentile == 100.0
        assert higher.best == lower.worst
        assert higher.worst == lower.best

    @pytest.mark.parametrize("subject", [5, 10, 20, 25, 30, 55])
    def test_negated_values_swap_direction(self, subject):
        cohort = [10, 20, 20, 30, 50]
        higher = compute_stats(cohort, subject, higher_is_better=True)
        lower = compute_stats([-x for x in cohort], -subject, higher_is_better=False)

        assert higher.percentile == lower.percentile
        assert higher.better_count == lower.better_count
        assert higher.best == -lower.best
        assert higher.worst == -lower.worst
        assert higher.average == -lower.average
