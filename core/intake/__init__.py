"""
Evaluation Intake - Value Validation

Plausibility checks for apartment figures entered in forms or extracted
from listing pages. Implausible values are reported, never corrected.
"""

from core.intake.validation import (
    ValueRange,
    ValueValidationResult,
    DEFAULT_THRESHOLDS,
    MAX_ROOMS_PER_SQM,
    parse_number,
    validate_value,
    validate_listing_values,
    validate_evaluation,
    invalid_fields,
)

__all__ = [
    "ValueRange",
    "ValueValidationResult",
    "DEFAULT_THRESHOLDS",
    "MAX_ROOMS_PER_SQM",
    "parse_number",
    "validate_value",
    "validate_listing_values",
    "validate_evaluation",
    "invalid_fields",
]
