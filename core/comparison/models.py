"""
Data models for the comparison engine.

Defines comparison bases, per-metric statistics and the metric
structures consumed by the presentation layer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class ComparisonBase(Enum):
    """
    Rule selecting the cohort an evaluation is compared against.

    Last month: evaluations created within the last calendar month
    Similar price: price per sqm within +/-20% of the subject
    All: every other finalized evaluation of the owner
    """
    LAST_MONTH = "last-month"
    SIMILAR_PRICE = "similar-price"
    ALL = "all"

    @classmethod
    def from_string(cls, value: str) -> Optional["ComparisonBase"]:
        """Convert string to ComparisonBase, case-insensitive."""
        normalised = value.lower().strip().replace("_", "-")
        for member in cls:
            if member.value == normalised:
                return member
        return None


class TimePeriod(Enum):
    """Creation-time window for comparison tables."""
    ALL = "all"
    WEEK = "week"
    MONTH = "month"
    THREE_MONTHS = "3months"
    YEAR = "year"

    @classmethod
    def from_string(cls, value: str) -> Optional["TimePeriod"]:
        """Convert string to TimePeriod, case-insensitive."""
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


@dataclass(frozen=True)
class ComparisonStats:
    """
    Statistics of one subject value against a cohort.

    percentile is raw: the share of the cohort the subject strictly beats,
    in the metric's natural direction.
    """
    average: float
    best: float
    worst: float
    better_count: int
    percentile: float
    total: int


@dataclass(frozen=True)
class NoComparisonData:
    """Returned when a metric cannot be compared (no usable values)."""
    reason: str = "No comparison data"


# Type alias for compute_stats return value
StatsResult = Union[ComparisonStats, NoComparisonData]


def effective_percentile(percentile: float, higher_is_better: bool) -> float:
    """Re-express a raw percentile so that higher always means better."""
    return percentile if higher_is_better else 100.0 - percentile


@dataclass(frozen=True)
class ComparisonMetric:
    """One compared metric, ready for display."""
    key: str
    name: str
    value: float
    average: float
    best: float
    worst: float
    percentile: float
    better_count: int
    total: int
    unit: str
    higher_is_better: bool

    @property
    def effective_percentile(self) -> float:
        """Percentile where higher is always better."""
        return effective_percentile(self.percentile, self.higher_is_better)

    @property
    def beats_summary(self) -> str:
        """Short 'beats X of N' text."""
        return f"{self.better_count} of {self.total}"

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "key": self.key,
            "name": self.name,
            "value": self.value,
            "average": self.average,
            "best": self.best,
            "worst": self.worst,
            "percentile": self.percentile,
            "effective_percentile": self.effective_percentile,
            "better_count": self.better_count,
            "total": self.total,
            "unit": self.unit,
            "higher_is_better": self.higher_is_better,
        }
