"""
Cohort selection for apartment comparisons.

Implements the filters that decide which of an owner's evaluations an
apartment is compared against:
- Subject excluded (never part of its own cohort)
- Drafts excluded
- Comparison base (last month / similar listing price / all)
- Creation-time period for comparison tables
- Column sorting with missing values last
"""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from core.derived import enrich, is_finite_number
from core.models import EvaluationRecord

from .models import ComparisonBase, TimePeriod


# =============================================================================
# Configuration Constants
# =============================================================================

# Similar price window around the subject's listing price
SIMILAR_PRICE_TOLERANCE = 0.20

PERIOD_DAYS = {
    TimePeriod.WEEK: 7,
}

PERIOD_MONTHS = {
    TimePeriod.MONTH: 1,
    TimePeriod.THREE_MONTHS: 3,
    TimePeriod.YEAR: 12,
}


def months_before(moment: datetime, months: int) -> datetime:
    """Same day and time `months` calendar months earlier, clamped to month end."""
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period: TimePeriod, reference_time: datetime) -> Optional[datetime]:
    """Earliest creation time included by a period (None for all time)."""
    if period in PERIOD_DAYS:
        return reference_time - timedelta(days=PERIOD_DAYS[period])
    if period in PERIOD_MONTHS:
        return months_before(reference_time, PERIOD_MONTHS[period])
    return None


class CohortSelector:
    """
    Selects comparison cohorts from an owner's evaluations.

    Candidates are never modified; the selector returns new lists.
    """

    def __init__(self, reference_time: datetime = None):
        """
        Initialize selector with reference time.

        Args:
            reference_time: Time to measure "last month" from. When omitted
                the current UTC time is read on every selection.
        """
        self._reference_time = reference_time

    @property
    def reference_time(self) -> datetime:
        return self._reference_time or datetime.now(timezone.utc)

    def select(
        self,
        subject: EvaluationRecord,
        candidates: Iterable[EvaluationRecord],
        base: ComparisonBase = ComparisonBase.LAST_MONTH,
    ) -> List[EvaluationRecord]:
        """
        Select the cohort for a subject.

        Args:
            subject: The evaluation being compared
            candidates: The owner's evaluations (may include the subject)
            base: Comparison base

        Returns:
            Finalized evaluations other than the subject that match the base
        """
        cohort = [
            record for record in candidates
            if record.id != subject.id and not record.is_draft
        ]

        if base == ComparisonBase.LAST_MONTH:
            return self.filter_by_period(cohort, TimePeriod.MONTH)

        if base == ComparisonBase.SIMILAR_PRICE:
            return self._filter_similar_price(subject, cohort)

        return cohort

    def filter_by_period(
        self,
        records: Iterable[EvaluationRecord],
        period: TimePeriod,
    ) -> List[EvaluationRecord]:
        """Keep records created within a period before the reference time."""
        start = period_start(period, self.reference_time)
        if start is None:
            return list(records)
        return [record for record in records if record.created_at >= start]

    def _filter_similar_price(
        self,
        subject: EvaluationRecord,
        cohort: List[EvaluationRecord],
    ) -> List[EvaluationRecord]:
        """
        Keep records whose listing price is within tolerance of the subject's.

        Without a subject price there is nothing to match on and the cohort
        is returned unfiltered.
        """
        subject_price = subject.price
        if not is_finite_number(subject_price) or subject_price <= 0:
            return cohort

        price_range = subject_price * SIMILAR_PRICE_TOLERANCE
        low = subject_price - price_range
        high = subject_price + price_range

        selected = []
        for record in cohort:
            candidate_price = record.price
            if is_finite_number(candidate_price) and low <= candidate_price <= high:
                selected.append(record)
        return selected


def sort_evaluations(
    records: Iterable[EvaluationRecord],
    key: str,
    descending: bool = False,
) -> List[EvaluationRecord]:
    """
    Sort evaluations by a stored or derived field.

    Records missing the value always sort last. Text values compare
    case-insensitively.
    """
    present = []
    missing = []
    for record in records:
        value = enrich(record).value(key)
        if value is None or (isinstance(value, float) and not is_finite_number(value)):
            missing.append(record)
        else:
            present.append((value, record))

    def sort_key(item):
        value = item[0]
        return value.lower() if isinstance(value, str) else value

    present.sort(key=sort_key, reverse=descending)
    return [record for _, record in present] + missing
