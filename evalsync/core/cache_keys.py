"""Cache key builders. Single place for key format.

Request-derived keys are "{METHOD}:{URL}:{serialized-body}". Bodies are
serialized with sorted keys so identical logical requests always map to
the same key. Named keys (pending evaluations, evaluation details,
evaluator status) are shared with the invalidation calls that clear them.
"""

import json
from typing import Any

from evalsync.core.constants import (
    CACHE_KEY_PENDING_EVALUATIONS,
    CACHE_KEY_SEP,
    CACHE_PREFIX_EVALUATION_DETAILS,
    CACHE_PREFIX_EVALUATOR_STATUS,
)


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value is empty.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must be a non-empty string")


def serialize_body(body: Any) -> str:
    """Deterministic text form of a request body ("" when there is none)."""
    if body is None:
        return ""
    if isinstance(body, (str, bytes)):
        return body.decode() if isinstance(body, bytes) else body
    return json.dumps(body, sort_keys=True, separators=(",", ":"), default=str)


def request_key(method: str, url: str, body: Any = None) -> str:
    """Cache key for an HTTP request."""
    _validate_key_component(url, "url")
    return f"{method.upper()}{CACHE_KEY_SEP}{url}{CACHE_KEY_SEP}{serialize_body(body)}"


def pending_evaluations_key() -> str:
    """Cache key for the pending evaluations list."""
    return CACHE_KEY_PENDING_EVALUATIONS


def evaluation_details_key(evaluation_id: str) -> str:
    """Cache key (and invalidation pattern) for one evaluation's detail."""
    _validate_key_component(evaluation_id, "evaluation_id")
    return f"{CACHE_PREFIX_EVALUATION_DETAILS}-{evaluation_id}"


def evaluator_status_pattern(evaluation_id: str) -> str:
    """Invalidation pattern for every evaluator status of an evaluation.

    Ends with the separator so evaluation "1" does not match evaluation "10".
    """
    _validate_key_component(evaluation_id, "evaluation_id")
    return f"{CACHE_PREFIX_EVALUATOR_STATUS}-{evaluation_id}-"


def evaluator_status_key(evaluation_id: str, user_id: str) -> str:
    """Cache key for one user's evaluator status in an evaluation."""
    _validate_key_component(user_id, "user_id")
    return f"{evaluator_status_pattern(evaluation_id)}{user_id}"
