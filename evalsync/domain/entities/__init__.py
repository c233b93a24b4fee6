"""Domain entities (dataclasses, no infrastructure dependencies)."""

from evalsync.domain.entities.progress import (
    ProgressRecord,
    compute_percentage,
    count_answered,
    progress_status,
)
from evalsync.domain.entities.response import (
    ResponseRecord,
    deserialize_value,
    has_answer,
    response_key,
    serialize_value,
)
from evalsync.domain.entities.roster import (
    EvaluatedEntity,
    EvaluationDetail,
    EvaluationEntity,
    EvaluatorEntity,
)

__all__ = [
    "ResponseRecord",
    "ProgressRecord",
    "EvaluationEntity",
    "EvaluatedEntity",
    "EvaluatorEntity",
    "EvaluationDetail",
    "response_key",
    "has_answer",
    "serialize_value",
    "deserialize_value",
    "compute_percentage",
    "count_answered",
    "progress_status",
]
