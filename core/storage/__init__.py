"""
Evaluation storage.
"""

from core.storage.repository import (
    EvaluationRepository,
    generate_source_id,
)

__all__ = [
    "EvaluationRepository",
    "generate_source_id",
]
