"""Evaluation roster entities: the evaluation, its evaluated people and their evaluators."""

from dataclasses import dataclass, field
from typing import Any

from evalsync.domain.enums import EvaluatorRelationship, EvaluatorStatus


@dataclass
class EvaluationEntity:
    """Evaluation header (name, form, period, weights)."""

    id: str
    name: str
    form_id: str
    status: str
    description: str | None = None
    start_date: str | None = None
    end_date: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluatedEntity:
    """A person being evaluated within an evaluation."""

    id: str | None
    user_id: str
    evaluation_id: str
    status: EvaluatorStatus = EvaluatorStatus.PENDING
    user_name: str | None = None
    department_id: str | None = None
    direct_leader_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluatorEntity:
    """A link between an evaluator user and an evaluated person."""

    id: str | None
    user_id: str
    evaluation_id: str
    evaluated_id: str
    relationship: EvaluatorRelationship
    status: EvaluatorStatus = EvaluatorStatus.PENDING
    user_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluationDetail:
    """An evaluation together with its evaluated people and evaluators."""

    evaluation: EvaluationEntity
    evaluated: list[EvaluatedEntity] = field(default_factory=list)
    evaluators: list[EvaluatorEntity] = field(default_factory=list)

    def evaluators_of(self, evaluated_id: str) -> list[EvaluatorEntity]:
        return [e for e in self.evaluators if e.evaluated_id == evaluated_id]

    def evaluator_for_user(self, user_id: str) -> EvaluatorEntity | None:
        """First evaluator link held by user_id, or None."""
        for evaluator in self.evaluators:
            if evaluator.user_id == user_id:
                return evaluator
        return None
