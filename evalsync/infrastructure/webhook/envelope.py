"""Normalization of webhook answers into WebhookEnvelope.

The webhook answers in several shapes: {success, data, message}; a raw
array of such items (data sometimes a JSON string); a raw array or object
of records; or an empty body. Everything is reduced to one envelope.
"""

from __future__ import annotations

from evalsync.domain.enums import Operation
from evalsync.domain.exceptions import ParseException, ServerException
from evalsync.infrastructure.webhook.transport import decode_json_body
from evalsync.schemas.mappers import flatten_items, maybe_json
from evalsync.schemas.operations import WebhookEnvelope
from evalsync.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def normalize_response(operation: str, text: str) -> WebhookEnvelope:
    """Turn a response body into a WebhookEnvelope.

    Raises:
        ParseException: Malformed JSON, or empty body for an operation that
            must return content.
        ServerException: success is false.
    """
    if not text.strip():
        if operation == Operation.READ_ALL:
            return WebhookEnvelope(success=True, data=[], message="No records found")
        if operation in (Operation.CREATE, Operation.UPDATE):
            logger.warning("Empty server response for operation %s", operation)
            return WebhookEnvelope(success=True, data={"id": None})
        if operation in (
            Operation.DELETE,
            Operation.SAVE_DRAFT,
            Operation.SUBMIT_EVALUATION,
            Operation.MARK_EVALUATOR_COMPLETED,
        ):
            return WebhookEnvelope(success=True)
        raise ParseException(f"Empty server response for operation {operation}")

    raw = decode_json_body(text)
    if isinstance(raw, list):
        return WebhookEnvelope(success=True, data=flatten_items(raw))
    if isinstance(raw, dict) and "success" in raw:
        if not raw.get("success"):
            raise ServerException(
                raw.get("message") or "Operation failed", operation=operation
            )
        envelope = WebhookEnvelope.model_validate(raw)
        envelope.data = maybe_json(envelope.data)
        return envelope
    return WebhookEnvelope(success=True, data=raw)
