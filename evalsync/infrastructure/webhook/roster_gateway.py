"""Gateway for the evaluators and evaluated endpoints."""

from __future__ import annotations

from evalsync.infrastructure.webhook.client import WebhookClient
from evalsync.schemas.operations import (
    CreateMultipleRequest,
    CreateRequest,
    DeleteRequest,
    EvaluatedPayload,
    EvaluatorPayload,
    WebhookEnvelope,
)


class RosterGateway:
    """Create/delete evaluator and evaluated assignments."""

    def __init__(self, client: WebhookClient, evaluators_url: str, evaluated_url: str) -> None:
        self._client = client
        self._evaluators_url = evaluators_url
        self._evaluated_url = evaluated_url

    async def create_evaluator(self, payload: EvaluatorPayload) -> WebhookEnvelope:
        return await self._client.send(self._evaluators_url, CreateRequest(data=payload))

    async def create_evaluators(self, payloads: list[EvaluatorPayload]) -> WebhookEnvelope:
        """Create several evaluators in one request."""
        return await self._client.send(
            self._evaluators_url, CreateMultipleRequest(data=list(payloads))
        )

    async def delete_evaluator(self, evaluator_id: str) -> WebhookEnvelope:
        return await self._client.send(self._evaluators_url, DeleteRequest(id=evaluator_id))

    async def create_evaluated(self, payload: EvaluatedPayload) -> WebhookEnvelope:
        return await self._client.send(self._evaluated_url, CreateRequest(data=payload))

    async def create_evaluated_many(self, payloads: list[EvaluatedPayload]) -> WebhookEnvelope:
        return await self._client.send(
            self._evaluated_url, CreateMultipleRequest(data=list(payloads))
        )

    async def delete_evaluated(self, evaluated_id: str) -> WebhookEnvelope:
        return await self._client.send(self._evaluated_url, DeleteRequest(id=evaluated_id))
