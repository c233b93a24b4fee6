"""Webhook request schemas: one model per operation.

Every endpoint takes a POST body tagged by a flat "operation" string.
Each operation is a closed pydantic model with a Literal tag so a request
cannot be built with fields that do not belong to it. Python attribute
names are English; aliases carry the server's wire names.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from evalsync.domain.enums import (
    EvaluatorRelationship,
    EvaluatorStatus,
    ProgressStatus,
    ResponseStatus,
)


class _WireModel(BaseModel):
    """Base for wire models: populate by attribute name, dump by alias."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# ---- Payloads (the "data" of create/update/saveDraft) ----


class ResponsePayload(_WireModel):
    """One answer as stored by the evaluation responses endpoint."""

    evaluator_id: str = Field(..., min_length=1, alias="avaliador_id")
    evaluated_id: str = Field(..., min_length=1, alias="avaliado_id")
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")
    form_id: str
    question_id: str = Field(..., min_length=1)
    response_value: str
    status: ResponseStatus = ResponseStatus.DRAFT


class ProgressPayload(_WireModel):
    """Progress of one evaluator over one evaluated person."""

    evaluator_id: str = Field(..., min_length=1, alias="avaliador_id")
    evaluated_id: str = Field(..., min_length=1, alias="avaliado_id")
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")
    form_id: str
    total_questions: int = Field(..., ge=0)
    answered_questions: int = Field(..., ge=0)
    progress_percentage: float = Field(..., ge=0, le=100)
    status: ProgressStatus = ProgressStatus.IN_PROGRESS
    started_at: str | None = None
    last_activity: str | None = None
    completed_at: str | None = None
    submitted_at: str | None = None
    is_submission: bool | None = None


class EvaluatorPayload(_WireModel):
    """An evaluator assignment (user evaluating an evaluated person)."""

    user_id: str = Field(..., min_length=1)
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")
    evaluated_id: str = Field(..., min_length=1, alias="avaliado_id")
    relationship: EvaluatorRelationship = Field(..., alias="relacionamento")
    status: EvaluatorStatus = EvaluatorStatus.PENDING


class EvaluatedPayload(_WireModel):
    """A user added to an evaluation as an evaluated person."""

    user_id: str = Field(..., min_length=1)
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")
    status: EvaluatorStatus = EvaluatorStatus.PENDING


class ResponseFilter(_WireModel):
    """Selects every answer of one evaluator in one evaluation."""

    evaluator_id: str = Field(..., min_length=1, alias="avaliador_id")
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")


WirePayload = ResponsePayload | ProgressPayload | EvaluatorPayload | EvaluatedPayload


# ---- Requests ----


class CreateRequest(_WireModel):
    operation: Literal["create"] = "create"
    data: WirePayload


class CreateMultipleRequest(_WireModel):
    operation: Literal["createMultiple"] = "createMultiple"
    data: list[WirePayload]


class UpdateRequest(_WireModel):
    operation: Literal["update"] = "update"
    id: str = Field(..., min_length=1)
    data: WirePayload


class DeleteRequest(_WireModel):
    operation: Literal["delete"] = "delete"
    id: str = Field(..., min_length=1)


class ReadRequest(_WireModel):
    operation: Literal["read"] = "read"
    id: str = Field(..., min_length=1)


class ReadAllRequest(_WireModel):
    operation: Literal["readAll"] = "readAll"
    data: ResponseFilter | None = None


class SaveDraftRequest(_WireModel):
    """Upsert of a progress record (the server names this operation saveDraft)."""

    operation: Literal["saveDraft"] = "saveDraft"
    data: ProgressPayload


class SubmitEvaluationRequest(_WireModel):
    """Marks the whole evaluation completed for this evaluator's submission."""

    operation: Literal["submitEvaluation"] = "submitEvaluation"
    evaluator_id: str = Field(..., min_length=1, alias="avaliador_id")
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")
    status: Literal["completed"] = "completed"
    completed_at: str
    updated_at: str


class MarkEvaluatorCompletedRequest(_WireModel):
    """Marks only this evaluator's assignments completed."""

    operation: Literal["markEvaluatorCompleted"] = "markEvaluatorCompleted"
    evaluator_id: str = Field(..., min_length=1, alias="avaliador_id")
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")
    completed_at: str


class CheckAllEvaluatorsCompletedRequest(_WireModel):
    operation: Literal["checkAllEvaluatorsCompleted"] = "checkAllEvaluatorsCompleted"
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")


class GetProgressRequest(_WireModel):
    operation: Literal["getProgress"] = "getProgress"
    evaluator_id: str = Field(..., min_length=1, alias="avaliador_id")
    evaluation_id: str = Field(..., min_length=1, alias="avaliacao_id")


OperationRequest = Annotated[
    Union[
        CreateRequest,
        CreateMultipleRequest,
        UpdateRequest,
        DeleteRequest,
        ReadRequest,
        ReadAllRequest,
        SaveDraftRequest,
        SubmitEvaluationRequest,
        MarkEvaluatorCompletedRequest,
        CheckAllEvaluatorsCompletedRequest,
        GetProgressRequest,
    ],
    Field(discriminator="operation"),
]


def to_wire(request: BaseModel) -> dict[str, Any]:
    """Serialize a request to the JSON body sent to the webhook."""
    return request.model_dump(by_alias=True, exclude_none=True, mode="json")


class WebhookEnvelope(BaseModel):
    """Normalized webhook answer: {success, data, message}."""

    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: Any = None
    message: str | None = None
