"""Gateway interfaces (ports) for the application layer.

Protocols define the contracts the synchronizer and the roster manager
need from the remote webhook API (DIP). The concrete implementations live
in evalsync.infrastructure.webhook.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from evalsync.domain.entities.progress import ProgressRecord
    from evalsync.schemas.operations import (
        EvaluatedPayload,
        EvaluatorPayload,
        ResponsePayload,
        WebhookEnvelope,
    )


# Evaluation responses gateway interface
class IResponsesGateway(Protocol):
    """Protocol for answer, progress and completion operations."""

    async def create_response(self, payload: ResponsePayload) -> str | None:
        """Create an answer and return the server-assigned id, if any."""

    async def update_response(self, response_id: str, payload: ResponsePayload) -> None:
        """Overwrite an existing answer."""

    async def get_response(self, response_id: str) -> dict[str, Any] | None:
        """Read one answer by id."""

    async def list_responses(
        self, evaluator_id: str, evaluation_id: str
    ) -> list[dict[str, Any]]:
        """Read every saved answer of an evaluator in an evaluation."""

    async def save_progress(self, progress: ProgressRecord) -> None:
        """Upsert one progress record."""

    async def get_progress(
        self, evaluator_id: str, evaluation_id: str
    ) -> list[ProgressRecord]:
        """Read the evaluator's progress records."""

    async def submit_evaluation(self, evaluator_id: str, evaluation_id: str) -> None:
        """Mark the whole evaluation completed."""

    async def mark_evaluator_completed(self, evaluator_id: str, evaluation_id: str) -> None:
        """Mark only this evaluator completed."""

    async def check_all_evaluators_completed(self, evaluation_id: str) -> bool:
        """Return whether every evaluator of the evaluation has completed."""


# Roster gateway interface
class IRosterGateway(Protocol):
    """Protocol for evaluator and evaluated assignment mutations."""

    async def create_evaluator(self, payload: EvaluatorPayload) -> WebhookEnvelope:
        """Create one evaluator assignment."""

    async def create_evaluators(self, payloads: list[EvaluatorPayload]) -> WebhookEnvelope:
        """Create several evaluator assignments in one request."""

    async def delete_evaluator(self, evaluator_id: str) -> WebhookEnvelope:
        """Delete one evaluator assignment."""

    async def create_evaluated(self, payload: EvaluatedPayload) -> WebhookEnvelope:
        """Add one evaluated person."""

    async def create_evaluated_many(self, payloads: list[EvaluatedPayload]) -> WebhookEnvelope:
        """Add several evaluated people in one request."""

    async def delete_evaluated(self, evaluated_id: str) -> WebhookEnvelope:
        """Remove one evaluated person."""
