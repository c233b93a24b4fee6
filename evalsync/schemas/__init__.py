"""Pydantic wire schemas for the webhook API."""

from evalsync.schemas.operations import (
    CheckAllEvaluatorsCompletedRequest,
    CreateMultipleRequest,
    CreateRequest,
    DeleteRequest,
    EvaluatedPayload,
    EvaluatorPayload,
    GetProgressRequest,
    MarkEvaluatorCompletedRequest,
    OperationRequest,
    ProgressPayload,
    ReadAllRequest,
    ReadRequest,
    ResponseFilter,
    ResponsePayload,
    SaveDraftRequest,
    SubmitEvaluationRequest,
    UpdateRequest,
    WebhookEnvelope,
    to_wire,
)

__all__ = [
    "CheckAllEvaluatorsCompletedRequest",
    "CreateMultipleRequest",
    "CreateRequest",
    "DeleteRequest",
    "EvaluatedPayload",
    "EvaluatorPayload",
    "GetProgressRequest",
    "MarkEvaluatorCompletedRequest",
    "OperationRequest",
    "ProgressPayload",
    "ReadAllRequest",
    "ReadRequest",
    "ResponseFilter",
    "ResponsePayload",
    "SaveDraftRequest",
    "SubmitEvaluationRequest",
    "UpdateRequest",
    "WebhookEnvelope",
    "to_wire",
]
