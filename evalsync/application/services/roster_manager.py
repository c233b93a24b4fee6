"""Evaluation roster: evaluated people and their evaluators.

Additions are confirmed by the server and then reloaded from it.
Evaluator removal is optimistic: the local roster changes before the
delete call and a snapshot taken beforehand is restored if the call
fails. No other roster operation changes local state ahead of the server.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from evalsync.domain.entities.roster import EvaluatedEntity, EvaluationDetail, EvaluatorEntity
from evalsync.domain.enums import EvaluatorRelationship, NotificationLevel
from evalsync.domain.exceptions import (
    EvalSyncException,
    ResourceNotFoundException,
    ValidationException,
)
from evalsync.schemas.operations import EvaluatedPayload, EvaluatorPayload
from evalsync.shared.telemetry.logging import get_logger
from evalsync.shared.telemetry.tracing import traced

if TYPE_CHECKING:
    from evalsync.application.interfaces.gateways import IRosterGateway
    from evalsync.application.services.pending_evaluations import PendingEvaluationsService

logger = get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    """User-facing outcome of a roster operation."""

    level: NotificationLevel
    title: str
    message: str


Notifier = Callable[[Notification], None]

_LOG_LEVELS = {
    NotificationLevel.SUCCESS: logging.INFO,
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.ERROR: logging.ERROR,
}


def log_notifier(notification: Notification) -> None:
    """Default notifier: write the notification to the log."""
    logger.log(
        _LOG_LEVELS.get(notification.level, logging.INFO),
        "%s: %s",
        notification.title,
        notification.message,
    )


@dataclass(frozen=True)
class EvaluatorAssignment:
    """One evaluator to add: user_id evaluates evaluated_id as relationship."""

    user_id: str
    evaluated_id: str
    relationship: EvaluatorRelationship


class RosterManager:
    """Roster of one evaluation, kept in sync with its cached evaluation detail."""

    def __init__(
        self,
        *,
        evaluation_id: str,
        gateway: IRosterGateway,
        evaluations: PendingEvaluationsService,
        notifier: Notifier | None = None,
    ) -> None:
        if not evaluation_id:
            raise ValidationException("evaluation_id is required", field="evaluation_id")
        self.evaluation_id = evaluation_id
        self._gateway = gateway
        self._evaluations = evaluations
        self._notify = notifier or log_notifier
        self.detail: EvaluationDetail | None = None
        self._unsubscribe: Callable[[], None] | None = None

    # ---- Lifecycle ----

    async def load(self, *, force_refresh: bool = False) -> EvaluationDetail:
        """Load the evaluation detail and follow later refreshes of it.

        Raises:
            ResourceNotFoundException: The evaluation does not exist.
        """
        if self._unsubscribe is None:
            self._unsubscribe = self._evaluations.subscribe_to_evaluation_details(
                self.evaluation_id, self._on_detail
            )
        detail = await self._evaluations.get_evaluation_details(
            self.evaluation_id, force_refresh=force_refresh
        )
        if detail is None:
            raise ResourceNotFoundException("evaluation", self.evaluation_id)
        self.detail = detail
        return detail

    async def refresh(self) -> EvaluationDetail:
        return await self.load(force_refresh=True)

    def close(self) -> None:
        """Stop following evaluation detail refreshes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_detail(self, detail: EvaluationDetail | None) -> None:
        if detail is not None:
            self.detail = detail

    def _require_detail(self) -> EvaluationDetail:
        if self.detail is None:
            raise ValidationException("Roster is not loaded; call load() first")
        return self.detail

    # ---- Queries ----

    @property
    def evaluated(self) -> list[EvaluatedEntity]:
        return self.detail.evaluated if self.detail else []

    @property
    def evaluators(self) -> list[EvaluatorEntity]:
        return self.detail.evaluators if self.detail else []

    def evaluators_by_evaluated(
        self, evaluated_id: str
    ) -> dict[EvaluatorRelationship, list[EvaluatorEntity]]:
        """Evaluators of one evaluated person grouped by relationship (every group present)."""
        groups: dict[EvaluatorRelationship, list[EvaluatorEntity]] = {
            relationship: [] for relationship in EvaluatorRelationship
        }
        for evaluator in self.evaluators:
            if evaluator.evaluated_id == evaluated_id:
                groups[evaluator.relationship].append(evaluator)
        return groups

    def is_user_evaluator_of(self, user_id: str, evaluated_id: str) -> bool:
        return any(
            e.user_id == user_id and e.evaluated_id == evaluated_id for e in self.evaluators
        )

    def is_employee_evaluated(self, user_id: str) -> bool:
        return any(e.user_id == user_id for e in self.evaluated)

    # ---- Evaluators ----

    @traced("roster.add_evaluator")
    async def add_evaluator(
        self,
        *,
        user_id: str,
        evaluated_id: str,
        relationship: EvaluatorRelationship,
    ) -> EvaluationDetail:
        """Create an evaluator link, then reload the roster from the server.

        Raises:
            ValidationException: user_id already evaluates evaluated_id.
        """
        if self.is_user_evaluator_of(user_id, evaluated_id):
            raise ValidationException(
                f"User {user_id} is already an evaluator of {evaluated_id}", field="user_id"
            )
        payload = EvaluatorPayload(
            user_id=user_id,
            evaluation_id=self.evaluation_id,
            evaluated_id=evaluated_id,
            relationship=relationship,
        )
        await self._mutate(
            self._gateway.create_evaluator(payload),
            success="Evaluator added",
            failure="Failed to add evaluator",
        )
        return await self.refresh()

    @traced("roster.add_evaluators")
    async def add_evaluators(self, assignments: Iterable[EvaluatorAssignment]) -> EvaluationDetail:
        """Create several evaluator links in one request; existing links are skipped."""
        detail = self._require_detail()
        payloads = [
            EvaluatorPayload(
                user_id=a.user_id,
                evaluation_id=self.evaluation_id,
                evaluated_id=a.evaluated_id,
                relationship=a.relationship,
            )
            for a in dict.fromkeys(assignments)
            if not self.is_user_evaluator_of(a.user_id, a.evaluated_id)
        ]
        if not payloads:
            return detail
        await self._mutate(
            self._gateway.create_evaluators(payloads),
            success=f"{len(payloads)} evaluators added",
            failure="Failed to add evaluators",
        )
        return await self.refresh()

    @traced("roster.remove_evaluator")
    async def remove_evaluator(self, evaluator_id: str) -> None:
        """Remove an evaluator link optimistically.

        The link leaves the local roster before the delete call; if the
        call fails the whole roster is restored from a snapshot, the user
        is notified and the error is re-raised.

        Raises:
            ResourceNotFoundException: No evaluator with that id in the roster.
        """
        detail = self._require_detail()
        if not any(e.id == evaluator_id for e in detail.evaluators):
            raise ResourceNotFoundException("evaluator", evaluator_id)

        snapshot = copy.deepcopy(detail)
        detail.evaluators = [e for e in detail.evaluators if e.id != evaluator_id]
        try:
            await self._gateway.delete_evaluator(evaluator_id)
        except EvalSyncException as exc:
            self.detail = snapshot
            logger.warning(
                "Removing evaluator %s failed, roster restored: %s", evaluator_id, exc.message
            )
            self._notify(
                Notification(NotificationLevel.ERROR, "Failed to remove evaluator", exc.message)
            )
            raise
        self._evaluations.invalidate_cache(self.evaluation_id)
        self._notify(
            Notification(NotificationLevel.SUCCESS, "Evaluator removed", evaluator_id)
        )

    # ---- Evaluated ----

    @traced("roster.add_evaluated")
    async def add_evaluated(self, user_id: str) -> EvaluationDetail:
        """Add one user as an evaluated person.

        Raises:
            ValidationException: The user is already evaluated.
        """
        if self.is_employee_evaluated(user_id):
            raise ValidationException(f"User {user_id} is already evaluated", field="user_id")
        await self._mutate(
            self._gateway.create_evaluated(
                EvaluatedPayload(user_id=user_id, evaluation_id=self.evaluation_id)
            ),
            success="Employee added to the evaluation",
            failure="Failed to add employee",
        )
        return await self.refresh()

    @traced("roster.add_evaluated_many")
    async def add_evaluated_many(self, user_ids: Iterable[str]) -> EvaluationDetail:
        """Add several users in one request; already evaluated users are skipped."""
        detail = self._require_detail()
        payloads = [
            EvaluatedPayload(user_id=user_id, evaluation_id=self.evaluation_id)
            for user_id in dict.fromkeys(user_ids)
            if not self.is_employee_evaluated(user_id)
        ]
        if not payloads:
            return detail
        await self._mutate(
            self._gateway.create_evaluated_many(payloads),
            success=f"{len(payloads)} employees added to the evaluation",
            failure="Failed to add employees",
        )
        return await self.refresh()

    @traced("roster.remove_evaluated")
    async def remove_evaluated(self, evaluated_id: str) -> EvaluationDetail:
        """Remove an evaluated person, then reload the roster from the server."""
        await self._mutate(
            self._gateway.delete_evaluated(evaluated_id),
            success="Employee removed from the evaluation",
            failure="Failed to remove employee",
        )
        return await self.refresh()

    async def _mutate(self, call: Awaitable[Any], *, success: str, failure: str) -> None:
        """Await a gateway call and notify its outcome; errors are re-raised."""
        try:
            await call
        except EvalSyncException as exc:
            logger.warning("%s for evaluation %s: %s", failure, self.evaluation_id, exc.message)
            self._notify(Notification(NotificationLevel.ERROR, failure, exc.message))
            raise
        self._notify(Notification(NotificationLevel.SUCCESS, success, self.evaluation_id))
