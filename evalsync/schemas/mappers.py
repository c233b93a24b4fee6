"""Mapping between webhook records and domain entities, and answer unwrapping.

Evaluation detail answers wrap each evaluated/evaluator row as
{"json": {...}, "pairedItem": {...}}; rows may also arrive unwrapped.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from evalsync.domain.entities.progress import ProgressRecord
from evalsync.domain.entities.response import ResponseRecord, deserialize_value, serialize_value
from evalsync.domain.entities.roster import (
    EvaluatedEntity,
    EvaluationDetail,
    EvaluationEntity,
    EvaluatorEntity,
)
from evalsync.domain.enums import (
    EvaluatorRelationship,
    EvaluatorStatus,
    ProgressStatus,
    ResponseStatus,
)
from evalsync.domain.exceptions import ServerException, ValidationException
from evalsync.schemas.operations import ProgressPayload, ResponsePayload

_EVALUATION_FIELDS = {"id", "name", "form_id", "status", "description", "start_date", "end_data"}
_EVALUATED_FIELDS = {"id", "user_id", "avaliacao_id", "status", "user_name", "department_id", "lider_direto"}
_EVALUATOR_FIELDS = {"id", "user_id", "avaliacao_id", "avaliado_id", "relacionamento", "status", "user_name"}


def _unwrap(row: Any) -> dict[str, Any]:
    if isinstance(row, dict) and isinstance(row.get("json"), dict):
        return row["json"]
    return row if isinstance(row, dict) else {}


def _str_or_none(value: Any) -> str | None:
    return None if value is None else str(value)


def maybe_json(value: Any) -> Any:
    """Decode value when it is a JSON string; otherwise return it unchanged."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def flatten_items(items: list[Any]) -> list[Any]:
    """Flatten a raw array answer.

    Items shaped {success, data} contribute their (JSON-decoded) data when
    successful and are dropped otherwise; any other item is kept as is.
    """
    flattened: list[Any] = []
    for item in items:
        if isinstance(item, dict) and "success" in item:
            if item.get("success") and item.get("data") is not None:
                flattened.append(maybe_json(item["data"]))
            continue
        flattened.append(item)
    return flattened


def extract_data(raw: Any) -> Any:
    """Return the payload of an already-decoded answer (for cached reads).

    Raises:
        ServerException: Answer is an object with success set to false.
    """
    if isinstance(raw, list):
        return flatten_items(raw)
    if isinstance(raw, dict) and "success" in raw:
        if not raw.get("success"):
            raise ServerException(raw.get("message") or "Operation failed")
        return maybe_json(raw.get("data"))
    return raw


def _evaluator_status(value: Any) -> EvaluatorStatus:
    try:
        return EvaluatorStatus(value)
    except ValueError:
        return EvaluatorStatus.PENDING


def to_evaluation(row: dict[str, Any]) -> EvaluationEntity:
    return EvaluationEntity(
        id=str(row.get("id", "")),
        name=row.get("name", ""),
        form_id=str(row.get("form_id", "")),
        status=row.get("status", ""),
        description=row.get("description"),
        start_date=row.get("start_date"),
        end_date=row.get("end_data"),
        extra={k: v for k, v in row.items() if k not in _EVALUATION_FIELDS},
    )


def to_evaluated(row: Any) -> EvaluatedEntity:
    data = _unwrap(row)
    return EvaluatedEntity(
        id=_str_or_none(data.get("id")),
        user_id=str(data.get("user_id", "")),
        evaluation_id=str(data.get("avaliacao_id", "")),
        status=_evaluator_status(data.get("status")),
        user_name=data.get("user_name"),
        department_id=_str_or_none(data.get("department_id")),
        direct_leader_id=_str_or_none(data.get("lider_direto")),
        extra={k: v for k, v in data.items() if k not in _EVALUATED_FIELDS},
    )


def to_evaluator(row: Any) -> EvaluatorEntity:
    data = _unwrap(row)
    try:
        relationship = EvaluatorRelationship(data.get("relacionamento"))
    except ValueError:
        relationship = EvaluatorRelationship.OTHER
    return EvaluatorEntity(
        id=_str_or_none(data.get("id")),
        user_id=str(data.get("user_id", "")),
        evaluation_id=str(data.get("avaliacao_id", "")),
        evaluated_id=str(data.get("avaliado_id", "")),
        relationship=relationship,
        status=_evaluator_status(data.get("status")),
        user_name=data.get("user_name"),
        extra={k: v for k, v in data.items() if k not in _EVALUATOR_FIELDS},
    )


def to_evaluation_detail(raw: Any) -> EvaluationDetail | None:
    """Build an EvaluationDetail from a read answer, or None when absent.

    Accepts a one-element list or a bare object holding "avaliacao".
    """
    if isinstance(raw, list):
        raw = raw[0] if raw else None
    if not isinstance(raw, dict) or not isinstance(raw.get("avaliacao"), dict):
        return None
    return EvaluationDetail(
        evaluation=to_evaluation(raw["avaliacao"]),
        evaluated=[to_evaluated(r) for r in raw.get("avaliados") or []],
        evaluators=[to_evaluator(r) for r in raw.get("avaliadores") or []],
    )


def normalize_evaluations(data: Any) -> list[dict[str, Any]]:
    """Evaluation list rows that carry both an id and a name."""
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        return []
    return [
        row for row in data
        if isinstance(row, dict) and row.get("id") and row.get("name")
    ]


def is_response_row(row: Any) -> bool:
    """True when a stored answer row names both its question and evaluated person."""
    return isinstance(row, dict) and bool(row.get("question_id")) and bool(row.get("avaliado_id"))


def to_response_record(row: dict[str, Any]) -> ResponseRecord:
    return ResponseRecord(
        id=_str_or_none(row.get("id")),
        question_id=str(row.get("question_id", "")),
        person_id=str(row.get("avaliado_id", "")),
        response=deserialize_value(row.get("response_value")),
    )


def to_progress(row: dict[str, Any]) -> ProgressRecord:
    try:
        status = ProgressStatus(row.get("status"))
    except ValueError:
        status = ProgressStatus.NOT_STARTED
    return ProgressRecord(
        evaluator_id=str(row.get("avaliador_id", "")),
        evaluated_id=str(row.get("avaliado_id", "")),
        evaluation_id=str(row.get("avaliacao_id", "")),
        form_id=str(row.get("form_id", "")),
        total_questions=int(row.get("total_questions") or 0),
        answered_questions=int(row.get("answered_questions") or 0),
        percentage=float(row.get("progress_percentage") or 0),
        status=status,
        started_at=row.get("started_at"),
        last_activity=row.get("last_activity"),
        completed_at=row.get("completed_at"),
        submitted_at=row.get("submitted_at"),
    )


def progress_to_payload(progress: ProgressRecord) -> ProgressPayload:
    return ProgressPayload(
        evaluator_id=progress.evaluator_id,
        evaluated_id=progress.evaluated_id,
        evaluation_id=progress.evaluation_id,
        form_id=progress.form_id,
        total_questions=progress.total_questions,
        answered_questions=progress.answered_questions,
        progress_percentage=min(progress.percentage, 100.0),
        status=progress.status,
        started_at=progress.started_at,
        last_activity=progress.last_activity,
        completed_at=progress.completed_at,
        submitted_at=progress.submitted_at,
        is_submission=True if progress.is_submission else None,
    )


def response_payload(
    *,
    evaluator_id: str,
    evaluated_id: str,
    evaluation_id: str,
    form_id: str,
    question_id: str,
    response_value: str,
    status: ResponseStatus,
) -> ResponsePayload:
    """Build an answer payload.

    Raises:
        ValidationException: If an id the endpoint requires is empty.
    """
    try:
        return ResponsePayload(
            evaluator_id=evaluator_id,
            evaluated_id=evaluated_id,
            evaluation_id=evaluation_id,
            form_id=form_id,
            question_id=question_id,
            response_value=response_value,
            status=status,
        )
    except PydanticValidationError as e:
        errors = e.errors()
        field_name = str(errors[0]["loc"][0]) if errors and errors[0]["loc"] else None
        raise ValidationException(
            f"Invalid answer payload for question {question_id!r}, "
            f"evaluated {evaluated_id!r}: {e.error_count()} error(s)",
            field=field_name,
        ) from e


def stored_row_payload(
    row: dict[str, Any],
    *,
    evaluator_id: str,
    evaluation_id: str,
    status: ResponseStatus,
) -> ResponsePayload:
    """Re-send a stored answer row unchanged except for its status."""
    value = row.get("response_value")
    return response_payload(
        evaluator_id=evaluator_id,
        evaluated_id=str(row.get("avaliado_id", "")),
        evaluation_id=evaluation_id,
        form_id=str(row.get("form_id", "")),
        question_id=str(row.get("question_id", "")),
        response_value="" if value is None else serialize_value(value),
        status=status,
    )
