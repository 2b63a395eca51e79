"""
Weighted scoring of an apartment against its comparison cohort.

Scoring methodology:
- Each configured metric is normalized to 0-100 relative to the cohort
  average: exactly average = 50, each 50% deviation shifts 50 points
- Metrics without cohort data or without a subject value carry no weight
- Composite score = weighted mean of the metric scores
- Recommendation = first configured tier whose threshold the composite meets
"""

import math
from typing import Iterable, List, Optional, Union

from core.derived import EnrichedEvaluation, enrich, enrich_all, is_finite_number
from core.models import EvaluationRecord

from .models import (
    COMPARISON_NOT_POSSIBLE_LABEL,
    DATA_MISSING,
    INSUFFICIENT_DATA_LABEL,
    NO_COMPARISON_DATA,
    MetricBreakdown,
    ScoringConfig,
    ScoringMetricConfig,
    ScoringResult,
    ScoringStatus,
)


Evaluation = Union[EvaluationRecord, EnrichedEvaluation]

# Score of a metric whose cohort average is zero
NEUTRAL_SCORE = 50

# Assessment ladder (minimum score, label), highest first
ASSESSMENT_LADDER = (
    (85, "Excellent"),
    (75, "Very good"),
    (65, "Good"),
    (55, "Acceptable"),
    (45, "Average"),
    (35, "Below average"),
)
ASSESSMENT_FLOOR = "Poor"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive scores."""
    return int(math.floor(value + 0.5))


def normalize_score(value: float, comparison_average: float, lower_is_better: bool) -> int:
    """
    Normalize a value to a 0-100 score relative to the cohort average.

    lower is better:  value at 50% of average = 100, at average = 50, at 150% = 0
    higher is better: value at 150% of average = 100, at average = 50, at 50% = 0
    """
    if comparison_average == 0:
        return NEUTRAL_SCORE

    ratio = value / comparison_average
    if lower_is_better:
        score = 100 - (ratio - 0.5) * 100
    else:
        score = (ratio - 1) * 100 + 50

    return round_half_up(max(0.0, min(100.0, score)))


def get_assessment(score: float) -> str:
    """Qualitative label for a metric score."""
    for minimum, label in ASSESSMENT_LADDER:
        if score >= minimum:
            return label
    return ASSESSMENT_FLOOR


class WeightedScorer:
    """
    Scores a subject evaluation against a cohort using a scoring config.

    The scorer holds only its configuration; every call is independent and
    never modifies the evaluations passed in.
    """

    def __init__(self, config: ScoringConfig):
        """
        Initialize scorer.

        Args:
            config: Metrics, weights and recommendation tiers
        """
        self._config = config

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def score(
        self,
        subject: Evaluation,
        cohort: Iterable[Evaluation],
    ) -> ScoringResult:
        """
        Score a subject against its cohort.

        Args:
            subject: The evaluation being scored
            cohort: Comparison evaluations (must not include the subject)

        Returns:
            ScoringResult; an empty cohort yields the
            COMPARISON_NOT_POSSIBLE status, never an exception.
        """
        cohort = list(cohort)
        if not cohort:
            return ScoringResult(
                status=ScoringStatus.COMPARISON_NOT_POSSIBLE,
                total_score=None,
                recommendation_level=COMPARISON_NOT_POSSIBLE_LABEL,
            )

        # Derived fields are computed up front so every metric sees the same values
        enriched_subject = enrich(subject)
        enriched_cohort = enrich_all(cohort)

        weighted_total = 0.0
        weight_applied = 0.0
        valid_metrics = 0
        breakdown = []

        for metric in self._config.metrics:
            entry = self._score_metric(metric, enriched_subject, enriched_cohort)
            breakdown.append(entry)

            if entry.score is None:
                continue

            weighted_total += entry.score * metric.weight
            weight_applied += metric.weight
            valid_metrics += 1

        if weight_applied > 0:
            composite = weighted_total / weight_applied
            total_score = round_half_up(composite)
            status = ScoringStatus.SCORED
            # Tiers are matched on the unrounded composite
            recommendation = self._get_recommendation(composite)
        else:
            total_score = None
            status = ScoringStatus.INSUFFICIENT_DATA
            recommendation = INSUFFICIENT_DATA_LABEL

        return ScoringResult(
            status=status,
            total_score=total_score,
            recommendation_level=recommendation,
            breakdown=breakdown,
            comparison_count=len(cohort),
            valid_metrics=valid_metrics,
            total_possible_weight=self._config.total_weight,
            actual_weight=weight_applied,
        )

    def _score_metric(
        self,
        metric: ScoringMetricConfig,
        subject: EnrichedEvaluation,
        cohort: List[EnrichedEvaluation],
    ) -> MetricBreakdown:
        """Score one metric, or describe why it could not be scored."""
        subject_value = subject.value(metric.key)
        if not is_finite_number(subject_value):
            subject_value = None

        values = [
            value for value in (member.value(metric.key) for member in cohort)
            if is_finite_number(value)
        ]

        if not values:
            return self._breakdown(metric, subject_value, None, None, NO_COMPARISON_DATA)

        comparison_average = sum(values) / len(values)

        if subject_value is None:
            return self._breakdown(metric, None, comparison_average, None, DATA_MISSING)

        score = normalize_score(subject_value, comparison_average, metric.lower_is_better)
        return self._breakdown(
            metric, subject_value, comparison_average, score, get_assessment(score)
        )

    @staticmethod
    def _breakdown(
        metric: ScoringMetricConfig,
        subject_value: Optional[float],
        comparison_average: Optional[float],
        score: Optional[int],
        assessment: str,
    ) -> MetricBreakdown:
        return MetricBreakdown(
            metric_key=metric.key,
            metric_name=metric.name,
            subject_value=subject_value,
            comparison_average=comparison_average,
            score=score,
            assessment=assessment,
            weight=metric.weight,
            category=metric.category,
        )

    def _get_recommendation(self, total_score: float) -> str:
        """Walk the tiers in configured order; first threshold met wins."""
        for tier in self._config.recommendation_tiers:
            if total_score >= tier.threshold:
                return tier.level
        return self._config.fallback_level


def calculate_score(
    subject: Evaluation,
    cohort: Iterable[Evaluation],
    config: ScoringConfig,
) -> ScoringResult:
    """
    Score a subject against a cohort.

    Convenience wrapper around WeightedScorer.
    """
    return WeightedScorer(config).score(subject, cohort)
