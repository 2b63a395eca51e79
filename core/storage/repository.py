"""
Evaluation Repository - Storage for Apartment Evaluations

Provides storage and retrieval of evaluation records and saved
comparisons keyed by owner.
In-memory storage with optional JSON file persistence.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from core.models import EvaluationRecord, SavedComparison


logger = logging.getLogger(__name__)


# Fields callers may never change through update()
PROTECTED_FIELDS = frozenset({"id", "user_id", "created_at"})


# =============================================================================
# Source IDs
# =============================================================================


def generate_source_id(
    apartment_url: Optional[str] = None,
    address: Optional[str] = None,
) -> str:
    """
    Build a de-duplication key for an evaluation.

    Hemnet and Booli listing URLs map to their listing number, other URLs
    are used whole, otherwise the normalised address is used. Without
    either, a random manual id is returned.
    """
    if apartment_url:
        hemnet = re.search(r"hemnet\.se/bostad/(\d+)", apartment_url)
        if hemnet:
            return f"hemnet:{hemnet.group(1)}"
        booli = re.search(r"booli\.se/bostad/(\d+)", apartment_url)
        if booli:
            return f"booli:{booli.group(1)}"
        return f"url:{apartment_url}"

    if address:
        normalised = re.sub(r"\s+", "-", address.strip().lower())
        normalised = re.sub(r"[^\w\-]", "", normalised)
        return f"address:{normalised}"

    return f"manual:{uuid.uuid4().hex[:12]}"


# =============================================================================
# Repository
# =============================================================================


class EvaluationRepository:
    """
    Repository for storing and retrieving apartment evaluations.

    Every lookup is scoped to the owning user id.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise repository.

        Args:
            persist_path: Optional path to persist data to JSON file
        """
        self._records: dict[str, EvaluationRecord] = {}
        self._comparisons: dict[str, SavedComparison] = {}
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "evaluations": [record.to_dict() for record in self._records.values()],
            "saved_comparisons": [c.to_dict() for c in self._comparisons.values()],
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text(encoding="utf-8"))
            for item in data.get("evaluations", []):
                record = EvaluationRecord.from_dict(item)
                self._records[record.id] = record
            for item in data.get("saved_comparisons", []):
                comparison = SavedComparison.from_dict(item)
                self._comparisons[comparison.id] = comparison
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            # Start fresh rather than refusing to serve
            logger.warning("Could not load evaluations from %s: %s", self._persist_path, e)
            return

        logger.info("Loaded %d evaluations from %s", len(self._records), self._persist_path)

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    def create(self, user_id: str, /, **fields: Any) -> EvaluationRecord:
        """
        Create a new draft evaluation.

        Args:
            user_id: Owner of the evaluation
            **fields: Initial field values (id is generated when absent)

        Returns:
            The stored EvaluationRecord

        Raises:
            ValueError: If the id already exists or a field is invalid
        """
        if "user_id" in fields:
            raise ValueError("user_id is given by the owner argument, not as a field")

        evaluation_id = fields.pop("id", None) or str(uuid.uuid4())
        if evaluation_id in self._records:
            raise ValueError(f"Evaluation {evaluation_id} already exists")

        fields.setdefault("is_draft", True)
        if not fields.get("source_id"):
            fields["source_id"] = generate_source_id(
                fields.get("apartment_url"), fields.get("address")
            )

        record = EvaluationRecord(id=evaluation_id, user_id=user_id, **fields)
        self._records[record.id] = record

        self._save_to_file()
        logger.info("Created evaluation %s for user %s", record.id, user_id)
        return record

    def get(self, evaluation_id: str, user_id: str) -> Optional[EvaluationRecord]:
        """
        Get an evaluation owned by a user.

        Returns:
            EvaluationRecord if found and owned by user_id, None otherwise
        """
        record = self._records.get(evaluation_id)
        if record is None or record.user_id != user_id:
            return None
        return record

    def get_or_create(
        self,
        user_id: str,
        source_id: str,
        /,
        **initial_fields: Any,
    ) -> tuple[EvaluationRecord, bool]:
        """
        Find an evaluation by source id, creating a draft when none exists.

        Returns:
            Tuple of (record, created)
        """
        for record in self._records.values():
            if record.user_id == user_id and record.source_id == source_id:
                return record, False
        return self.create(user_id, source_id=source_id, **initial_fields), True

    def update(
        self,
        evaluation_id: str,
        user_id: str,
        /,
        **changes: Any,
    ) -> Optional[EvaluationRecord]:
        """
        Update fields of an evaluation.

        Records are replaced, never modified in place, so records handed out
        earlier keep their values.

        Returns:
            Updated EvaluationRecord, or None if not found

        Raises:
            ValueError: If a protected or unknown field is changed
        """
        record = self.get(evaluation_id, user_id)
        if record is None:
            return None

        protected = PROTECTED_FIELDS.intersection(changes)
        if protected:
            raise ValueError(f"Cannot change protected fields: {sorted(protected)}")

        try:
            updated = replace(record, updated_at=datetime.now(timezone.utc), **changes)
        except TypeError as e:
            raise ValueError(f"Invalid evaluation fields: {e}") from e

        self._records[evaluation_id] = updated
        self._save_to_file()
        return updated

    def finalize(self, evaluation_id: str, user_id: str) -> Optional[EvaluationRecord]:
        """Mark an evaluation as finalized (no longer a draft)."""
        return self.update(evaluation_id, user_id, is_draft=False)

    def delete(self, evaluation_id: str, user_id: str) -> bool:
        """
        Delete an evaluation.

        Returns:
            True if deleted, False if not found
        """
        if self.get(evaluation_id, user_id) is None:
            return False
        del self._records[evaluation_id]
        for comparison in self._comparisons.values():
            if evaluation_id in comparison.selected_evaluations:
                comparison.selected_evaluations.remove(evaluation_id)
        self._save_to_file()
        logger.info("Deleted evaluation %s", evaluation_id)
        return True

    # =========================================================================
    # Query Operations
    # =========================================================================

    def list_for_user(
        self,
        user_id: str,
        include_drafts: bool = True,
    ) -> list[EvaluationRecord]:
        """Get a user's evaluations, newest first."""
        records = [
            record for record in self._records.values()
            if record.user_id == user_id and (include_drafts or not record.is_draft)
        ]
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    def count(self) -> int:
        """Get total number of evaluations."""
        return len(self._records)

    # =========================================================================
    # Saved Comparisons
    # =========================================================================

    def save_comparison(
        self,
        user_id: str,
        name: str,
        selected_evaluations: list[str],
        selected_fields: Optional[list[str]] = None,
    ) -> SavedComparison:
        """
        Store a named comparison of the user's evaluations.

        Raises:
            ValueError: If the name is blank, no evaluation is selected, or
                a selected evaluation is not owned by the user
        """
        if not selected_evaluations:
            raise ValueError("Select at least one evaluation")
        unknown = [
            evaluation_id for evaluation_id in selected_evaluations
            if self.get(evaluation_id, user_id) is None
        ]
        if unknown:
            raise ValueError(f"Unknown evaluations: {unknown}")

        comparison = SavedComparison(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            selected_evaluations=list(dict.fromkeys(selected_evaluations)),
            selected_fields=list(selected_fields or []),
        )
        self._comparisons[comparison.id] = comparison
        self._save_to_file()
        logger.info("Saved comparison %s for user %s", comparison.id, user_id)
        return comparison

    def get_comparison(self, comparison_id: str, user_id: str) -> Optional[SavedComparison]:
        """Get a saved comparison owned by a user, or None."""
        comparison = self._comparisons.get(comparison_id)
        if comparison is None or comparison.user_id != user_id:
            return None
        return comparison

    def list_comparisons(self, user_id: str) -> list[SavedComparison]:
        """Get a user's saved comparisons, newest first."""
        comparisons = [c for c in self._comparisons.values() if c.user_id == user_id]
        return sorted(comparisons, key=lambda c: c.created_at, reverse=True)

    def delete_comparison(self, comparison_id: str, user_id: str) -> bool:
        """
        Delete a saved comparison.

        Returns:
            True if deleted, False if not found
        """
        if self.get_comparison(comparison_id, user_id) is None:
            return False
        del self._comparisons[comparison_id]
        self._save_to_file()
        return True
