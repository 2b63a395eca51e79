"""
Tests for cohort selection and sorting.

Verifies:
- The subject and drafts are never part of a cohort
- Last month window is a calendar month back from the reference time
- Similar price keeps +/-20% of the subject's price per sqm
- Sorting keeps records with missing values last
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.comparison import (
    CohortSelector,
    ComparisonBase,
    TimePeriod,
    sort_evaluations,
)
from core.comparison.filters import months_before
from core.models import EvaluationRecord


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def reference_time():
    """Fixed reference time for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def selector(reference_time):
    return CohortSelector(reference_time=reference_time)


@pytest.fixture
def create_evaluation(reference_time):
    """Factory fixture: finalized evaluation created `days_ago` days before the reference."""
    def _create(eval_id: str, days_ago: int = 1, **fields) -> EvaluationRecord:
        fields.setdefault("is_draft", False)
        return EvaluationRecord(
            id=eval_id,
            user_id="user-1",
            created_at=reference_time - timedelta(days=days_ago),
            **fields,
        )
    return _create


# =============================================================================
# Test: Exclusions
# =============================================================================

class TestCohortExclusions:

    def test_subject_never_in_cohort(self, selector, create_evaluation):
        subject = create_evaluation("subject")
        others = [create_evaluation("a"), create_evaluation("b")]

        for base in ComparisonBase:
            cohort = selector.select(subject, [subject] + others, base)
            assert "subject" not in [record.id for record in cohort]

    def test_drafts_excluded(self, selector, create_evaluation):
        subject = create_evaluation("subject")
        candidates = [create_evaluation("final"), create_evaluation("draft", is_draft=True)]

        cohort = selector.select(subject, candidates, ComparisonBase.ALL)

        assert [record.id for record in cohort] == ["final"]

    def test_candidates_not_modified(self, selector, create_evaluation):
        subject = create_evaluation("subject")
        candidates = [subject, create_evaluation("a")]

        selector.select(subject, candidates, ComparisonBase.ALL)

        assert len(candidates) == 2


# =============================================================================
# Test: Comparison Bases
# =============================================================================

class TestComparisonBases:

    def test_last_month(self, selector, create_evaluation):
        subject = create_evaluation("subject")
        candidates = [
            create_evaluation("recent", days_ago=10),
            create_evaluation("old", days_ago=45),
        ]

        cohort = selector.select(subject, candidates, ComparisonBase.LAST_MONTH)

        assert [record.id for record in cohort] == ["recent"]

    def test_similar_price(self, selector, create_evaluation):
        # Subject listed at 3 000 000: window is 2 400 000 - 3 600 000
        subject = create_evaluation("subject", price=3_000_000, size=60)
        candidates = [
            create_evaluation("low-edge", price=2_400_000, size=50),
            create_evaluation("inside", price=3_500_000, size=90),
            create_evaluation("too-high", price=3_700_000, size=60),
            create_evaluation("too-low", price=2_300_000, size=60),
            create_evaluation("no-price", size=50),
        ]

        cohort = selector.select(subject, candidates, ComparisonBase.SIMILAR_PRICE)

        assert [record.id for record in cohort] == ["low-edge", "inside"]

    def test_similar_price_ignores_floor_area(self, selector, create_evaluation):
        subject = create_evaluation("subject", price=3_000_000, size=50)
        candidates = [create_evaluation("larger", price=3_100_000, size=100)]

        cohort = selector.select(subject, candidates, ComparisonBase.SIMILAR_PRICE)

        assert [record.id for record in cohort] == ["larger"]

    def test_similar_price_without_subject_price(self, selector, create_evaluation):
        subject = create_evaluation("subject")
        candidates = [create_evaluation("a", price=1_000_000, size=20), create_evaluation("b")]

        cohort = selector.select(subject, candidates, ComparisonBase.SIMILAR_PRICE)

        assert len(cohort) == 2

    def test_all_ignores_age(self, selector, create_evaluation):
        subject = create_evaluation("subject")
        candidates = [create_evaluation("a", days_ago=400), create_evaluation("b", days_ago=2)]

        cohort = selector.select(subject, candidates, ComparisonBase.ALL)

        assert len(cohort) == 2

    def test_base_from_string(self):
        assert ComparisonBase.from_string("last-month") == ComparisonBase.LAST_MONTH
        assert ComparisonBase.from_string("SIMILAR_PRICE") == ComparisonBase.SIMILAR_PRICE
        assert ComparisonBase.from_string("all") == ComparisonBase.ALL
        assert ComparisonBase.from_string("nearby") is None


# =============================================================================
# Test: Periods
# =============================================================================

class TestPeriods:

    def test_months_before_clamps_to_month_end(self):
        moment = datetime(2024, 3, 31, tzinfo=timezone.utc)

        assert months_before(moment, 1) == datetime(2024, 2, 29, tzinfo=timezone.utc)

    def test_months_before_crosses_year(self):
        moment = datetime(2024, 2, 10, tzinfo=timezone.utc)

        assert months_before(moment, 3) == datetime(2023, 11, 10, tzinfo=timezone.utc)

    def test_filter_by_week(self, selector, create_evaluation):
        records = [create_evaluation("a", days_ago=3), create_evaluation("b", days_ago=8)]

        assert [r.id for r in selector.filter_by_period(records, TimePeriod.WEEK)] == ["a"]

    def test_filter_all_keeps_everything(self, selector, create_evaluation):
        records = [create_evaluation("a", days_ago=3), create_evaluation("b", days_ago=800)]

        assert len(selector.filter_by_period(records, TimePeriod.ALL)) == 2


# =============================================================================
# Test: Sorting
# =============================================================================

class TestSortEvaluations:

    def test_missing_values_last_both_directions(self, create_evaluation):
        records = [
            create_evaluation("none"),
            create_evaluation("cheap", price=1_000_000),
            create_evaluation("dear", price=5_000_000),
        ]

        ascending = sort_evaluations(records, "price")
        descending = sort_evaluations(records, "price", descending=True)

        assert [r.id for r in ascending] == ["cheap", "dear", "none"]
        assert [r.id for r in descending] == ["dear", "cheap", "none"]

    def test_sort_by_derived_field(self, create_evaluation):
        records = [
            create_evaluation("a", price=3_000_000, size=50),  # 60 000
            create_evaluation("b", price=3_000_000, size=75),  # 40 000
        ]

        assert [r.id for r in sort_evaluations(records, "price_per_sqm")] == ["b", "a"]

    def test_text_sorts_case_insensitively(self, create_evaluation):
        records = [
            create_evaluation("a", address="storgatan 1"),
            create_evaluation("b", address="Adolf Fredriks väg 2"),
        ]

        assert [r.id for r in sort_evaluations(records, "address")] == ["b", "a"]
