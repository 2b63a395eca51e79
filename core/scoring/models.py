"""
Data models for the weighted scoring engine.

Defines the declarative scoring configuration (metrics, weights,
direction, recommendation tiers) and the scoring result structures.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MetricCategory(Enum):
    """Category tag of a scoring metric."""
    FINANCIAL = "financial"
    PHYSICAL = "physical"


class ScoringStatus(Enum):
    """
    Outcome of a scoring pass.

    Scored: at least one metric contributed a score
    Comparison not possible: the cohort was empty
    Insufficient data: cohort present but no metric could be scored
    """
    SCORED = "scored"
    COMPARISON_NOT_POSSIBLE = "comparison_not_possible"
    INSUFFICIENT_DATA = "insufficient_data"


# Sentinel recommendation labels for the unscored outcomes
COMPARISON_NOT_POSSIBLE_LABEL = "Comparison not possible"
INSUFFICIENT_DATA_LABEL = "Insufficient data"
DEFAULT_FALLBACK_LEVEL = "Avoid"

# Breakdown annotations for metrics that were skipped
NO_COMPARISON_DATA = "No comparison data"
DATA_MISSING = "Data missing"


@dataclass(frozen=True)
class ScoringMetricConfig:
    """One weighted metric of the scoring configuration."""
    key: str
    name: str
    weight: float
    lower_is_better: bool
    category: MetricCategory

    def __post_init__(self):
        """Validate metric after initialization."""
        if not self.key:
            raise ValueError("metric key is required")
        if self.weight < 0:
            raise ValueError(f"weight for {self.key} must be non-negative, got {self.weight}")

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringMetricConfig":
        category = data.get("category", MetricCategory.FINANCIAL.value)
        try:
            category = MetricCategory(str(category).lower().strip())
        except ValueError:
            raise ValueError(f"Invalid metric category: {category}") from None
        return cls(
            key=data["key"],
            name=data.get("name", data["key"]),
            weight=float(data.get("weight", 0)),
            lower_is_better=bool(data.get("lower_is_better", False)),
            category=category,
        )

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "weight": self.weight,
            "lower_is_better": self.lower_is_better,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class RecommendationTier:
    """Minimum composite score for a recommendation label."""
    threshold: float
    level: str

    @classmethod
    def from_dict(cls, data: dict) -> "RecommendationTier":
        return cls(threshold=float(data["threshold"]), level=str(data["level"]))

    def to_dict(self) -> dict:
        return {"threshold": self.threshold, "level": self.level}


@dataclass(frozen=True)
class ScoringConfig:
    """
    Complete scoring configuration.

    Tiers are evaluated in the order given, which is expected to be
    descending by threshold. fallback_level applies when no tier matches.
    """
    metrics: tuple
    recommendation_tiers: tuple
    fallback_level: str = DEFAULT_FALLBACK_LEVEL

    @property
    def total_weight(self) -> float:
        """Sum of all configured weights."""
        return sum(metric.weight for metric in self.metrics)

    @classmethod
    def from_dict(cls, data: dict) -> "ScoringConfig":
        """
        Parse a declarative configuration document.

        Raises:
            ValueError: On missing keys, invalid categories or duplicate metric keys
        """
        try:
            metrics = tuple(
                ScoringMetricConfig.from_dict(item) for item in data.get("metrics", [])
            )
            tiers = tuple(
                RecommendationTier.from_dict(item)
                for item in data.get("recommendation_tiers", [])
            )
        except KeyError as e:
            raise ValueError(f"Missing scoring config field: {e}") from None

        keys = [metric.key for metric in metrics]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"Duplicate scoring metric keys: {duplicates}")

        return cls(
            metrics=metrics,
            recommendation_tiers=tiers,
            fallback_level=data.get("fallback_level", DEFAULT_FALLBACK_LEVEL),
        )

    def to_dict(self) -> dict:
        return {
            "metrics": [metric.to_dict() for metric in self.metrics],
            "recommendation_tiers": [tier.to_dict() for tier in self.recommendation_tiers],
            "fallback_level": self.fallback_level,
        }


@dataclass
class MetricBreakdown:
    """Per-metric scoring detail, including metrics that were skipped."""
    metric_key: str
    metric_name: str
    subject_value: Optional[float]
    comparison_average: Optional[float]
    score: Optional[int]
    assessment: str
    weight: float
    category: MetricCategory

    def to_dict(self) -> dict:
        return {
            "metric_key": self.metric_key,
            "metric_name": self.metric_name,
            "subject_value": self.subject_value,
            "comparison_average": self.comparison_average,
            "score": self.score,
            "assessment": self.assessment,
            "weight": self.weight,
            "category": self.category.value,
        }


@dataclass
class ScoringResult:
    """
    Result of a weighted scoring pass.

    total_score is None unless status is SCORED.
    """
    status: ScoringStatus
    total_score: Optional[int]
    recommendation_level: str
    breakdown: List[MetricBreakdown] = field(default_factory=list)
    comparison_count: int = 0
    valid_metrics: int = 0
    total_possible_weight: float = 0.0
    actual_weight: float = 0.0

    @property
    def is_scored(self) -> bool:
        return self.status == ScoringStatus.SCORED

    def category_breakdown(self, category: MetricCategory) -> List[MetricBreakdown]:
        """Breakdown entries for one category."""
        return [entry for entry in self.breakdown if entry.category == category]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "total_score": self.total_score,
            "recommendation_level": self.recommendation_level,
            "breakdown": [entry.to_dict() for entry in self.breakdown],
            "comparison_count": self.comparison_count,
            "valid_metrics": self.valid_metrics,
            "total_possible_weight": self.total_possible_weight,
            "actual_weight": self.actual_weight,
        }
