"""
Weighted Scoring Engine

Normalizes each configured metric to a 0-100 score relative to the
cohort average, combines them into a weighted composite score and maps
it to a recommendation tier.
"""

from .models import (
    MetricCategory,
    ScoringStatus,
    ScoringMetricConfig,
    RecommendationTier,
    ScoringConfig,
    MetricBreakdown,
    ScoringResult,
    COMPARISON_NOT_POSSIBLE_LABEL,
    INSUFFICIENT_DATA_LABEL,
    NO_COMPARISON_DATA,
    DATA_MISSING,
)
from .engine import (
    WeightedScorer,
    calculate_score,
    normalize_score,
    get_assessment,
)
from .config import load_scoring_config, DEFAULT_SCORING_CONFIG_PATH

__all__ = [
    # Models
    "MetricCategory",
    "ScoringStatus",
    "ScoringMetricConfig",
    "RecommendationTier",
    "ScoringConfig",
    "MetricBreakdown",
    "ScoringResult",
    "COMPARISON_NOT_POSSIBLE_LABEL",
    "INSUFFICIENT_DATA_LABEL",
    "NO_COMPARISON_DATA",
    "DATA_MISSING",
    # Engine
    "WeightedScorer",
    "calculate_score",
    "normalize_score",
    "get_assessment",
    # Configuration
    "load_scoring_config",
    "DEFAULT_SCORING_CONFIG_PATH",
]
