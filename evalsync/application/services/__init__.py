"""Application services: response synchronizer, roster manager, pending evaluations."""

from evalsync.application.services.debouncer import Debouncer
from evalsync.application.services.pending_evaluations import (
    EvaluatorStatusSummary,
    PendingEvaluationsService,
)
from evalsync.application.services.response_synchronizer import (
    DraftSaveResult,
    EvaluationResponseSynchronizer,
    FormValidation,
    MissingAnswer,
    PersonToEvaluate,
    SubmissionResult,
)
from evalsync.application.services.roster_manager import (
    EvaluatorAssignment,
    Notification,
    Notifier,
    RosterManager,
    log_notifier,
)

__all__ = [
    "Debouncer",
    "DraftSaveResult",
    "EvaluationResponseSynchronizer",
    "EvaluatorAssignment",
    "EvaluatorStatusSummary",
    "FormValidation",
    "MissingAnswer",
    "Notification",
    "Notifier",
    "PendingEvaluationsService",
    "PersonToEvaluate",
    "RosterManager",
    "SubmissionResult",
    "log_notifier",
]
