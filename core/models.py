"""
Data models for apartment evaluations.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Optional


# Physical condition ratings (1-5), in display order
RATING_FIELDS = (
    "layout",
    "kitchen",
    "bathroom",
    "bedrooms",
    "surfaces",
    "storage",
    "light",
    "balcony",
)

RATING_MIN = 1
RATING_MAX = 5


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp, accepting a trailing 'Z'."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    # Stored timestamps without an offset are UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EvaluationRecord:
    """One user-authored assessment of a single apartment."""

    id: str
    user_id: str
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None
    is_draft: bool = True
    source_id: Optional[str] = None

    # Descriptive
    address: Optional[str] = None
    apartment_url: Optional[str] = None
    annual_report_url: Optional[str] = None

    # Quantitative base fields
    size: Optional[float] = None  # Floor area in sqm
    price: Optional[float] = None  # Listing price
    final_price: Optional[float] = None
    monthly_fee: Optional[float] = None
    rooms: Optional[str] = None
    debt_per_sqm: Optional[float] = None  # Association debt
    cashflow_per_sqm: Optional[float] = None  # Association cashflow
    fee_per_sqm: Optional[float] = None  # Pre-stored, wins over monthly_fee / size

    # Association facts
    owns_land: Optional[bool] = None
    major_maintenance_done: Optional[bool] = None
    maintenance_plan: Optional[str] = None

    # Physical ratings
    layout: Optional[int] = None
    kitchen: Optional[int] = None
    bathroom: Optional[int] = None
    bedrooms: Optional[int] = None
    surfaces: Optional[int] = None
    storage: Optional[int] = None
    light: Optional[int] = None
    balcony: Optional[int] = None

    layout_comment: Optional[str] = None
    kitchen_comment: Optional[str] = None
    bathroom_comment: Optional[str] = None
    bedrooms_comment: Optional[str] = None
    surfaces_comment: Optional[str] = None
    storage_comment: Optional[str] = None
    light_comment: Optional[str] = None
    balcony_comment: Optional[str] = None

    comments: Optional[str] = None

    def __post_init__(self):
        """Validate identity and ratings after initialization."""
        if not self.id:
            raise ValueError("id is required")
        if not self.user_id:
            raise ValueError("user_id is required")
        self.created_at = parse_datetime(self.created_at) or _utcnow()
        self.updated_at = parse_datetime(self.updated_at)
        for name in RATING_FIELDS:
            rating = getattr(self, name)
            # 0 means "not rated" in stored data
            if rating is not None and rating != 0 and not RATING_MIN <= rating <= RATING_MAX:
                raise ValueError(f"{name} must be between {RATING_MIN} and {RATING_MAX}, got {rating}")

    @property
    def ratings(self) -> dict[str, Optional[int]]:
        """All physical ratings keyed by field name."""
        return {name: getattr(self, name) for name in RATING_FIELDS}

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "EvaluationRecord":
        """Create from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in data.items() if key in known}
        return cls(**kwargs)


@dataclass
class SavedComparison:
    """A named selection of evaluations and table columns."""

    id: str
    user_id: str
    name: str
    selected_evaluations: list[str] = field(default_factory=list)
    selected_fields: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.id:
            raise ValueError("id is required")
        if not self.user_id:
            raise ValueError("user_id is required")
        if not self.name or not self.name.strip():
            raise ValueError("name is required")
        self.name = self.name.strip()
        self.selected_evaluations = list(self.selected_evaluations)
        self.selected_fields = list(self.selected_fields)
        self.created_at = parse_datetime(self.created_at) or _utcnow()
        self.updated_at = parse_datetime(self.updated_at)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "selected_evaluations": list(self.selected_evaluations),
            "selected_fields": list(self.selected_fields),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SavedComparison":
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
