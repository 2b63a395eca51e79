"""
Automatic comparison of one evaluation against its cohort.

Builds a ComparisonMetric per comparable attribute by running the
statistics engine over enriched subject and cohort values.
"""

from dataclasses import dataclass
from typing import Iterable, List, Union

from core.derived import EnrichedEvaluation, enrich, enrich_all
from core.models import EvaluationRecord

from .models import ComparisonMetric, ComparisonStats
from .statistics import compute_stats


@dataclass(frozen=True)
class MetricDefinition:
    """A comparable attribute and how to present it."""
    key: str
    name: str
    unit: str
    higher_is_better: bool


COMPARISON_METRICS = (
    MetricDefinition("price_per_sqm", "Price per sqm", "kr/kvm", higher_is_better=False),
    MetricDefinition("fee_per_sqm", "Fee per sqm", "kr/kvm", higher_is_better=False),
    MetricDefinition("debt_per_sqm", "Association debt per sqm", "kr/kvm", higher_is_better=False),
    MetricDefinition("cashflow_per_sqm", "Association cashflow per sqm", "kr/kvm", higher_is_better=True),
    MetricDefinition("physical_average", "Physical assessment", "/5", higher_is_better=True),
    MetricDefinition("economic_index", "Economic assessment", "/5", higher_is_better=True),
)


def build_comparison_metrics(
    subject: Union[EvaluationRecord, EnrichedEvaluation],
    cohort: Iterable[Union[EvaluationRecord, EnrichedEvaluation]],
    definitions: Iterable[MetricDefinition] = COMPARISON_METRICS,
) -> List[ComparisonMetric]:
    """
    Compare a subject against a cohort on every defined metric.

    Metrics with no usable subject value or no cohort data are omitted.

    Args:
        subject: The evaluation being compared
        cohort: Comparison evaluations (must not include the subject)
        definitions: Metrics to compare

    Returns:
        List of ComparisonMetric in definition order
    """
    enriched_subject = enrich(subject)
    enriched_cohort = enrich_all(cohort)

    metrics = []
    for definition in definitions:
        subject_value = enriched_subject.value(definition.key)
        stats = compute_stats(
            [member.value(definition.key) for member in enriched_cohort],
            subject_value,
            definition.higher_is_better,
        )
        if not isinstance(stats, ComparisonStats):
            continue

        metrics.append(ComparisonMetric(
            key=definition.key,
            name=definition.name,
            value=float(subject_value),
            average=stats.average,
            best=stats.best,
            worst=stats.worst,
            percentile=stats.percentile,
            better_count=stats.better_count,
            total=stats.total,
            unit=definition.unit,
            higher_is_better=definition.higher_is_better,
        ))

    return metrics
