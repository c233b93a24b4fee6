"""Gateway for the evaluation responses endpoint.

Wraps every operation the endpoint supports (answers, progress and
completion) behind typed methods. Errors propagate as NetworkException,
ServerException or ParseException.
"""

from __future__ import annotations

from typing import Any

from evalsync.domain.entities.progress import ProgressRecord
from evalsync.infrastructure.webhook.client import WebhookClient
from evalsync.schemas.mappers import progress_to_payload, to_progress
from evalsync.schemas.operations import (
    CheckAllEvaluatorsCompletedRequest,
    CreateRequest,
    GetProgressRequest,
    MarkEvaluatorCompletedRequest,
    ReadAllRequest,
    ReadRequest,
    ResponseFilter,
    ResponsePayload,
    SaveDraftRequest,
    SubmitEvaluationRequest,
    UpdateRequest,
)
from evalsync.shared.utils.datetime import to_server_timestamp


class EvaluationResponsesGateway:
    """Typed access to the evaluation responses webhook."""

    def __init__(self, client: WebhookClient, url: str) -> None:
        self._client = client
        self._url = url

    async def create_response(self, payload: ResponsePayload) -> str | None:
        """Create an answer; return the server id (None if the server sent none)."""
        envelope = await self._client.send(self._url, CreateRequest(data=payload))
        data = envelope.data
        if isinstance(data, list):
            data = data[0] if data else None
        if isinstance(data, dict) and data.get("id") is not None:
            return str(data["id"])
        return None

    async def update_response(self, response_id: str, payload: ResponsePayload) -> None:
        await self._client.send(self._url, UpdateRequest(id=response_id, data=payload))

    async def get_response(self, response_id: str) -> dict[str, Any] | None:
        envelope = await self._client.send(self._url, ReadRequest(id=response_id))
        data = envelope.data
        if isinstance(data, list):
            data = data[0] if data else None
        return data if isinstance(data, dict) else None

    async def list_responses(self, evaluator_id: str, evaluation_id: str) -> list[dict[str, Any]]:
        """Every saved answer (draft or submitted) of an evaluator in an evaluation."""
        request = ReadAllRequest(
            data=ResponseFilter(evaluator_id=evaluator_id, evaluation_id=evaluation_id)
        )
        envelope = await self._client.send(self._url, request)
        data = envelope.data
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    async def save_progress(self, progress: ProgressRecord) -> None:
        await self._client.send(
            self._url, SaveDraftRequest(data=progress_to_payload(progress))
        )

    async def get_progress(self, evaluator_id: str, evaluation_id: str) -> list[ProgressRecord]:
        envelope = await self._client.send(
            self._url,
            GetProgressRequest(evaluator_id=evaluator_id, evaluation_id=evaluation_id),
        )
        data = envelope.data
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            return []
        return [to_progress(row) for row in data if isinstance(row, dict)]

    async def submit_evaluation(self, evaluator_id: str, evaluation_id: str) -> None:
        """Mark the whole evaluation completed."""
        now = to_server_timestamp()
        await self._client.send(
            self._url,
            SubmitEvaluationRequest(
                evaluator_id=evaluator_id,
                evaluation_id=evaluation_id,
                completed_at=now,
                updated_at=now,
            ),
        )

    async def mark_evaluator_completed(self, evaluator_id: str, evaluation_id: str) -> None:
        """Mark only this evaluator's part of the evaluation completed."""
        await self._client.send(
            self._url,
            MarkEvaluatorCompletedRequest(
                evaluator_id=evaluator_id,
                evaluation_id=evaluation_id,
                completed_at=to_server_timestamp(),
            ),
        )

    async def check_all_evaluators_completed(self, evaluation_id: str) -> bool:
        """Whether every evaluator assigned to the evaluation has completed.

        The answer's data may be a bare boolean, an object with
        all_completed / allCompleted, or a one-element list of either.
        """
        envelope = await self._client.send(
            self._url, CheckAllEvaluatorsCompletedRequest(evaluation_id=evaluation_id)
        )
        data = envelope.data
        if isinstance(data, list):
            data = data[0] if data else None
        if isinstance(data, bool):
            return data
        if isinstance(data, dict):
            for field in ("all_completed", "allCompleted"):
                if field in data:
                    return bool(data[field])
        return False
