"""Domain enumerations for evalsync.

Fixed value sets shared with the remote webhook (values are the wire
strings).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ResponseStatus(_ValuesMixin, str, Enum):
    """Lifecycle of a persisted answer."""

    DRAFT = "draft"
    SUBMITTED = "submitted"


class ProgressStatus(_ValuesMixin, str, Enum):
    """Progress of one evaluator over one evaluated person."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class EvaluatorStatus(_ValuesMixin, str, Enum):
    """Status of an evaluator assignment as reported by the evaluation detail."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class EvaluatorRelationship(_ValuesMixin, str, Enum):
    """How an evaluator relates to the evaluated person (roster categorization only)."""

    LEADER = "leader"
    TEAMMATE = "teammate"
    OTHER = "other"
    SELF = "self"


class Operation(_ValuesMixin, str, Enum):
    """Operation tags understood by the webhook endpoints."""

    CREATE = "create"
    CREATE_MULTIPLE = "createMultiple"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"
    READ_ALL = "readAll"
    SAVE_DRAFT = "saveDraft"
    SUBMIT_EVALUATION = "submitEvaluation"
    MARK_EVALUATOR_COMPLETED = "markEvaluatorCompleted"
    CHECK_ALL_EVALUATORS_COMPLETED = "checkAllEvaluatorsCompleted"
    GET_PROGRESS = "getProgress"


class NotificationLevel(_ValuesMixin, str, Enum):
    """Severity of a user-facing notification."""

    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"
