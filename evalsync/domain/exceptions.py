"""Domain exceptions for evalsync.

Defines the error taxonomy shared by the cache, the webhook client, the
response synchronizer and the roster manager. Callers catch
EvalSyncException (or a subclass) and read message, error_code and
details.
"""

from typing import Any


class EvalSyncException(Exception):
    """Base exception for all evalsync errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. url, operation, field).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class NetworkException(EvalSyncException):
    """Raised when the HTTP transport fails (connect error, timeout, reset)."""

    def __init__(self, url: str, reason: str) -> None:
        """Initialize with the target URL and the transport error text.

        Args:
            url: Request URL that could not be reached.
            reason: Transport error description.
        """
        super().__init__(
            f"Network error calling {url}: {reason}",
            "NETWORK_ERROR",
            {"url": url, "reason": reason},
        )


class ServerException(EvalSyncException):
    """Raised on a non-2xx status or a body with success set to false."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize with the server message and optional status/operation.

        Args:
            message: Server-provided or derived message.
            status_code: HTTP status when the failure was a non-2xx response.
            operation: Operation tag of the failed request, if known.
        """
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if operation:
            details["operation"] = operation
        self.status_code = status_code
        super().__init__(message, "SERVER_ERROR", details)


class ParseException(EvalSyncException):
    """Raised when a body is malformed JSON or empty where content was expected."""

    def __init__(self, message: str, body_preview: str | None = None) -> None:
        details = {"body_preview": body_preview} if body_preview else {}
        super().__init__(message, "PARSE_ERROR", details)


class ValidationException(EvalSyncException):
    """Raised when required local fields are missing or invalid."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class SubmissionException(EvalSyncException):
    """Raised when an evaluation submission fails as a whole."""

    def __init__(
        self,
        message: str,
        evaluation_id: str,
        evaluator_id: str,
        **details_extra: Any,
    ) -> None:
        """Initialize with message and submission context.

        Args:
            message: Human-readable reason shown to the evaluator.
            evaluation_id: Evaluation being submitted.
            evaluator_id: Evaluator submitting.
            **details_extra: Optional keys merged into details (e.g. failed).
        """
        details = {
            "evaluation_id": evaluation_id,
            "evaluator_id": evaluator_id,
            **details_extra,
        }
        super().__init__(message, "SUBMISSION_FAILED", details)


class ResourceNotFoundException(EvalSyncException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'evaluator', 'evaluation').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )
