"""Domain layer: entities, enums, and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from evalsync.domain.entities import (
    EvaluatedEntity,
    EvaluationDetail,
    EvaluationEntity,
    EvaluatorEntity,
    ProgressRecord,
    ResponseRecord,
)
from evalsync.domain.enums import (
    EvaluatorRelationship,
    EvaluatorStatus,
    NotificationLevel,
    Operation,
    ProgressStatus,
    ResponseStatus,
)
from evalsync.domain.exceptions import (
    EvalSyncException,
    NetworkException,
    ParseException,
    ResourceNotFoundException,
    ServerException,
    SubmissionException,
    ValidationException,
)

__all__ = [
    # Entities
    "ResponseRecord",
    "ProgressRecord",
    "EvaluationEntity",
    "EvaluatedEntity",
    "EvaluatorEntity",
    "EvaluationDetail",
    # Enums
    "EvaluatorRelationship",
    "EvaluatorStatus",
    "NotificationLevel",
    "Operation",
    "ProgressStatus",
    "ResponseStatus",
    # Exceptions
    "EvalSyncException",
    "NetworkException",
    "ParseException",
    "ResourceNotFoundException",
    "ServerException",
    "SubmissionException",
    "ValidationException",
]
