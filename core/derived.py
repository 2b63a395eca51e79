"""
Derived apartment metrics.

Derived values are recomputed on every comparison pass and never written
back to the stored record:

- price_per_sqm: price / size (both must be positive)
- fee_per_sqm: stored value if present, otherwise monthly_fee / size
- physical_average: mean of the ratings that are present and > 0
- economic_index: 0-5 blend of association debt, fee and cashflow per sqm
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from .models import EvaluationRecord, RATING_FIELDS


DERIVED_FIELDS = ("price_per_sqm", "fee_per_sqm", "physical_average", "economic_index")

# Economic index component scales (0-5 each)
ECONOMIC_INDEX_MAX = 5.0
DEBT_SCALE = 10000.0  # kr/sqm per index point
FEE_SCALE = 100.0  # kr/sqm/month per index point
CASHFLOW_OFFSET = 500.0
CASHFLOW_SCALE = 100.0


def is_finite_number(value: Any) -> bool:
    """True for real ints/floats that are finite. Booleans are not numbers here."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _positive(value: Any) -> bool:
    return is_finite_number(value) and value > 0


def price_per_sqm(record: EvaluationRecord) -> Optional[float]:
    """Listing price per square meter, or None without a positive price and size."""
    if _positive(record.price) and _positive(record.size):
        return record.price / record.size
    return None


def fee_per_sqm(record: EvaluationRecord) -> Optional[float]:
    """Monthly fee per square meter. A pre-stored value takes precedence."""
    if is_finite_number(record.fee_per_sqm):
        return float(record.fee_per_sqm)
    if _positive(record.monthly_fee) and _positive(record.size):
        return record.monthly_fee / record.size
    return None


def physical_average(record: EvaluationRecord) -> Optional[float]:
    """Mean of the physical ratings that are set and above zero."""
    ratings = [
        rating for rating in (getattr(record, name) for name in RATING_FIELDS)
        if _positive(rating)
    ]
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def economic_index(record: EvaluationRecord) -> Optional[float]:
    """
    Association economy index on a 0-5 scale (higher is better).

    Lower debt and fee score higher, higher cashflow scores higher.
    Only the factors present on the record are averaged.
    """
    components = []

    if is_finite_number(record.debt_per_sqm):
        components.append(max(0.0, ECONOMIC_INDEX_MAX - record.debt_per_sqm / DEBT_SCALE))

    fee = fee_per_sqm(record)
    if fee is not None:
        components.append(max(0.0, ECONOMIC_INDEX_MAX - fee / FEE_SCALE))

    if is_finite_number(record.cashflow_per_sqm):
        cashflow_score = (record.cashflow_per_sqm + CASHFLOW_OFFSET) / CASHFLOW_SCALE
        components.append(min(ECONOMIC_INDEX_MAX, max(0.0, cashflow_score)))

    if not components:
        return None
    return sum(components) / len(components)


@dataclass(frozen=True)
class EnrichedEvaluation:
    """
    A stored evaluation together with its derived metrics.

    Produced by enrich(); the wrapped record is never modified.
    """
    record: EvaluationRecord
    price_per_sqm: Optional[float] = None
    fee_per_sqm: Optional[float] = None
    physical_average: Optional[float] = None
    economic_index: Optional[float] = None

    @property
    def id(self) -> str:
        return self.record.id

    def value(self, key: str) -> Any:
        """Look up a metric key, derived fields first, then the stored record."""
        if key in DERIVED_FIELDS:
            return getattr(self, key)
        return getattr(self.record, key, None)


def enrich(record: Union[EvaluationRecord, EnrichedEvaluation]) -> EnrichedEvaluation:
    """Compute derived metrics for one record. Already-enriched input is returned as is."""
    if isinstance(record, EnrichedEvaluation):
        return record
    return EnrichedEvaluation(
        record=record,
        price_per_sqm=price_per_sqm(record),
        fee_per_sqm=fee_per_sqm(record),
        physical_average=physical_average(record),
        economic_index=economic_index(record),
    )


def enrich_all(
    records: Iterable[Union[EvaluationRecord, EnrichedEvaluation]],
) -> list[EnrichedEvaluation]:
    """Enrich every record of a cohort."""
    return [enrich(record) for record in records]
