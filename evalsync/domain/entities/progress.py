"""Evaluation progress domain entity and progress math.

One progress record exists per (evaluator, evaluated person, evaluation).
It is advisory: the synchronizer computes it from the in-memory ledger,
so it may briefly lag the server's own view.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from evalsync.domain.entities.response import ResponseRecord
from evalsync.domain.enums import ProgressStatus


def compute_percentage(answered: int, total: int) -> float:
    """Percentage of answered questions; 0 when there are no questions."""
    if total <= 0:
        return 0.0
    return (answered / total) * 100


def progress_status(answered: int, total: int) -> ProgressStatus:
    """COMPLETED only when every question is answered, otherwise IN_PROGRESS."""
    if total > 0 and answered == total:
        return ProgressStatus.COMPLETED
    return ProgressStatus.IN_PROGRESS


def count_answered(records: Iterable[ResponseRecord], person_id: str) -> int:
    """Number of answered records for one evaluated person."""
    return sum(1 for r in records if r.person_id == person_id and r.is_answered)


@dataclass
class ProgressRecord:
    """Progress of one evaluator over one evaluated person."""

    evaluator_id: str
    evaluated_id: str
    evaluation_id: str
    form_id: str
    total_questions: int
    answered_questions: int
    percentage: float
    status: ProgressStatus
    started_at: str | None = None
    last_activity: str | None = None
    completed_at: str | None = None
    submitted_at: str | None = None
    is_submission: bool = False

    @classmethod
    def from_counts(
        cls,
        *,
        evaluator_id: str,
        evaluated_id: str,
        evaluation_id: str,
        form_id: str,
        answered: int,
        total: int,
        status: ProgressStatus | None = None,
        **timestamps: Any,
    ) -> "ProgressRecord":
        """Build a record from counts; status defaults to progress_status(answered, total)."""
        return cls(
            evaluator_id=evaluator_id,
            evaluated_id=evaluated_id,
            evaluation_id=evaluation_id,
            form_id=form_id,
            total_questions=total,
            answered_questions=answered,
            percentage=compute_percentage(answered, total),
            status=status or progress_status(answered, total),
            **timestamps,
        )

    @property
    def is_completed(self) -> bool:
        return self.status == ProgressStatus.COMPLETED
