"""
Apartment Evaluation Engine - Core Business Logic

This module provides the evaluation pipeline:
1. Records (EvaluationRecord) and derived fields (enrichment pre-pass)
2. Cohort selection (last month / similar price / all)
3. Comparison statistics (average, best, worst, better-than, percentile)
4. Weighted scoring with recommendation tiers
5. Value validation for entered and ingested figures
6. Storage (EvaluationRepository)
"""

from .models import EvaluationRecord, RATING_FIELDS, SavedComparison, parse_datetime
from .derived import EnrichedEvaluation, enrich, enrich_all

# Comparison Engine
from .comparison import (
    ComparisonBase,
    TimePeriod,
    ComparisonStats,
    NoComparisonData,
    ComparisonMetric,
    CohortSelector,
    compute_stats,
    build_comparison_metrics,
    sort_evaluations,
)

# Weighted Scoring Engine
from .scoring import (
    ScoringConfig,
    ScoringResult,
    ScoringStatus,
    WeightedScorer,
    calculate_score,
    load_scoring_config,
)

# Evaluation Analyzer - cohort, comparison and scoring pipeline
from .evaluation_analyzer import EvaluationAnalyzer, EvaluationAnalysis

# Value Validation
from .intake import ValueValidationResult, validate_value, validate_listing_values

# Storage
from .storage import EvaluationRepository, generate_source_id

__all__ = [
    # Records
    "EvaluationRecord",
    "SavedComparison",
    "RATING_FIELDS",
    "parse_datetime",
    "EnrichedEvaluation",
    "enrich",
    "enrich_all",
    # Comparison Engine
    "ComparisonBase",
    "TimePeriod",
    "ComparisonStats",
    "NoComparisonData",
    "ComparisonMetric",
    "CohortSelector",
    "compute_stats",
    "build_comparison_metrics",
    "sort_evaluations",
    # Weighted Scoring Engine
    "ScoringConfig",
    "ScoringResult",
    "ScoringStatus",
    "WeightedScorer",
    "calculate_score",
    "load_scoring_config",
    # Evaluation Analyzer
    "EvaluationAnalyzer",
    "EvaluationAnalysis",
    # Value Validation
    "ValueValidationResult",
    "validate_value",
    "validate_listing_values",
    # Storage
    "EvaluationRepository",
    "generate_source_id",
]
