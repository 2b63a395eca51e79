"""
Value Validation - Plausibility Rules for Entered and Ingested Numbers

Checks apartment figures against plausible Swedish market ranges before
they are stored. Returns explicit results and never raises on bad input.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Final, Optional

from core.models import EvaluationRecord


# =============================================================================
# Thresholds
# =============================================================================


@dataclass(frozen=True)
class ValueRange:
    """Inclusive plausible range."""
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


DEFAULT_THRESHOLDS: Final[dict[str, ValueRange]] = {
    "size": ValueRange(10, 500),  # sqm
    "rooms": ValueRange(1, 10),
    "price": ValueRange(100_000, 50_000_000),  # SEK
    "monthly_fee": ValueRange(500, 50_000),  # SEK / month
    "price_per_sqm": ValueRange(5_000, 200_000),  # SEK / sqm
    "fee_per_sqm": ValueRange(10, 1_000),  # SEK / sqm / month
}

# More than one room per 5 sqm is implausible
MAX_ROOMS_PER_SQM: Final[float] = 0.2


@dataclass(frozen=True)
class ValueValidationResult:
    """Outcome of validating one value."""
    is_valid: bool
    reason: Optional[str] = None


VALID: Final[ValueValidationResult] = ValueValidationResult(is_valid=True)


# =============================================================================
# Parsing
# =============================================================================


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a number from user or scraped input.

    Accepts Swedish formatting: space or non-breaking space thousand
    separators and a decimal comma ("3 250 000", "12,5").

    Returns:
        The number, or None if the input is missing or not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None

    cleaned = re.sub(r"\s", "", str(value)).replace(",", ".")
    match = re.match(r"^-?\d+(\.\d+)?", cleaned)
    if not match:
        return None
    return float(match.group(0))


# =============================================================================
# Validation Functions
# =============================================================================


def validate_value(
    field: str,
    value: Any,
    size: Any = None,
    thresholds: Optional[dict[str, ValueRange]] = None,
) -> ValueValidationResult:
    """
    Validate one value against its plausible range.

    Args:
        field: One of size, rooms, price, monthly_fee
        value: Raw value (number or text)
        size: Floor area, enables the per-sqm cross checks
        thresholds: Optional replacement thresholds

    Returns:
        ValueValidationResult with a reason when invalid
    """
    limits = thresholds or DEFAULT_THRESHOLDS
    number = parse_number(value)

    if number is None or number <= 0:
        return ValueValidationResult(False, "Invalid or non-positive value")

    value_range = limits.get(field)
    if value_range is None:
        return ValueValidationResult(False, f"Unknown field: {field}")

    if not value_range.contains(number):
        return ValueValidationResult(
            False,
            f"Value {number:g} is outside the plausible range "
            f"({value_range.min:g}-{value_range.max:g})",
        )

    size_number = parse_number(size)
    if size_number is None or size_number <= 0:
        return VALID

    if field == "rooms" and number / size_number > MAX_ROOMS_PER_SQM:
        return ValueValidationResult(False, "Too many rooms for the floor area")

    if field == "price":
        per_sqm = number / size_number
        if not limits["price_per_sqm"].contains(per_sqm):
            return ValueValidationResult(
                False, f"Price per sqm ({round(per_sqm)} kr/kvm) looks implausible"
            )

    if field == "monthly_fee":
        per_sqm = number / size_number
        if not limits["fee_per_sqm"].contains(per_sqm):
            return ValueValidationResult(
                False, f"Monthly fee per sqm ({round(per_sqm)} kr/kvm/mån) looks implausible"
            )

    return VALID


def validate_listing_values(
    data: dict[str, Any],
    thresholds: Optional[dict[str, ValueRange]] = None,
) -> dict[str, ValueValidationResult]:
    """
    Validate every numeric listing value that is present.

    Args:
        data: Mapping with any of size, rooms, price, final_price, monthly_fee

    Returns:
        Validation result per present field
    """
    results: dict[str, ValueValidationResult] = {}
    size = data.get("size")

    if data.get("size"):
        results["size"] = validate_value("size", size, thresholds=thresholds)
    if data.get("rooms"):
        results["rooms"] = validate_value("rooms", data["rooms"], size, thresholds)
    if data.get("price"):
        results["price"] = validate_value("price", data["price"], size, thresholds)
    if data.get("final_price"):
        results["final_price"] = validate_value("price", data["final_price"], size, thresholds)
    if data.get("monthly_fee"):
        results["monthly_fee"] = validate_value("monthly_fee", data["monthly_fee"], size, thresholds)

    return results


def validate_evaluation(record: EvaluationRecord) -> dict[str, ValueValidationResult]:
    """Validate the numeric base fields of a stored evaluation."""
    return validate_listing_values({
        "size": record.size,
        "rooms": record.rooms,
        "price": record.price,
        "final_price": record.final_price,
        "monthly_fee": record.monthly_fee,
    })


def invalid_fields(results: dict[str, ValueValidationResult]) -> list[str]:
    """Human-readable list of failed fields."""
    return [
        f"{field}: {result.reason}"
        for field, result in results.items()
        if not result.is_valid
    ]
