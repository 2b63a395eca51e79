"""
Evaluation Analyzer - Comparison and Scoring Pipeline

Selects the cohort for one evaluation, then runs the comparison engine
and the weighted scorer over it. Callers supply the owner's evaluations;
nothing here touches storage.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from .comparison import (
    ComparisonBase,
    ComparisonMetric,
    CohortSelector,
    build_comparison_metrics,
)
from .derived import EnrichedEvaluation, enrich
from .models import EvaluationRecord
from .scoring import ScoringConfig, ScoringResult, WeightedScorer, load_scoring_config


@dataclass
class EvaluationAnalysis:
    """Everything the presentation layers show for one evaluation."""
    subject: EnrichedEvaluation
    base: ComparisonBase
    cohort: List[EvaluationRecord] = field(default_factory=list)
    metrics: List[ComparisonMetric] = field(default_factory=list)
    scoring: Optional[ScoringResult] = None

    @property
    def cohort_size(self) -> int:
        return len(self.cohort)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "evaluation_id": self.subject.id,
            "base": self.base.value,
            "cohort_size": self.cohort_size,
            "derived": {
                "price_per_sqm": self.subject.price_per_sqm,
                "fee_per_sqm": self.subject.fee_per_sqm,
                "physical_average": self.subject.physical_average,
                "economic_index": self.subject.economic_index,
            },
            "metrics": [metric.to_dict() for metric in self.metrics],
            "scoring": self.scoring.to_dict() if self.scoring else None,
        }


class EvaluationAnalyzer:
    """
    Runs cohort selection, comparison and scoring for an evaluation.

    Usage:
        analyzer = EvaluationAnalyzer()
        analysis = analyzer.analyze(subject, owner_evaluations, ComparisonBase.ALL)
    """

    def __init__(
        self,
        config: Optional[ScoringConfig] = None,
        reference_time: Optional[datetime] = None,
    ):
        """
        Args:
            config: Scoring configuration (default: packaged configuration)
            reference_time: Time "last month" is measured from (default: now)
        """
        self._scorer = WeightedScorer(config or load_scoring_config())
        self._selector = CohortSelector(reference_time)

    @property
    def config(self) -> ScoringConfig:
        return self._scorer.config

    def select_cohort(
        self,
        subject: EvaluationRecord,
        candidates: Iterable[EvaluationRecord],
        base: ComparisonBase = ComparisonBase.LAST_MONTH,
    ) -> List[EvaluationRecord]:
        """Cohort for a subject under a comparison base."""
        return self._selector.select(subject, candidates, base)

    def compare(
        self,
        subject: EvaluationRecord,
        candidates: Iterable[EvaluationRecord],
        base: ComparisonBase = ComparisonBase.LAST_MONTH,
    ) -> EvaluationAnalysis:
        """Cohort selection and comparison metrics, without scoring."""
        cohort = self.select_cohort(subject, candidates, base)
        return EvaluationAnalysis(
            subject=enrich(subject),
            base=base,
            cohort=cohort,
            metrics=build_comparison_metrics(subject, cohort),
        )

    def analyze(
        self,
        subject: EvaluationRecord,
        candidates: Iterable[EvaluationRecord],
        base: ComparisonBase = ComparisonBase.LAST_MONTH,
    ) -> EvaluationAnalysis:
        """Full pipeline: cohort, comparison metrics and weighted score."""
        analysis = self.compare(subject, candidates, base)
        analysis.scoring = self._scorer.score(subject, analysis.cohort)
        return analysis
