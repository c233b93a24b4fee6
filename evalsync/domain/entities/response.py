"""Evaluation response domain entity.

A response is one evaluator's answer to one question about one evaluated
person. Records live in the synchronizer's in-memory ledger and are keyed
by (person_id, question_id).
"""

import json
from dataclasses import dataclass
from typing import Any

ResponseValue = Any


def response_key(person_id: str, question_id: str) -> str:
    """Composite ledger key for a (person, question) pair."""
    return f"{person_id}_{question_id}"


def has_answer(value: ResponseValue) -> bool:
    """Return whether a response value counts as answered.

    Strings must be non-blank after trimming and lists non-empty; any
    other value counts when truthy.
    """
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return bool(value)


def serialize_value(value: ResponseValue) -> str:
    """Encode a response value for the response_value wire field.

    Lists (checkbox answers) and dicts are JSON-encoded; scalars use str().
    """
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(list(value) if isinstance(value, tuple) else value, ensure_ascii=False)
    return str(value)


def deserialize_value(raw: Any) -> ResponseValue:
    """Decode a stored response_value; JSON-looking strings are parsed when valid."""
    if isinstance(raw, str) and raw.startswith(("[", "{")):
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw


@dataclass
class ResponseRecord:
    """One answer in the ledger. id is set once the server has persisted it."""

    question_id: str
    person_id: str
    response: ResponseValue
    id: str | None = None

    @property
    def key(self) -> str:
        return response_key(self.person_id, self.question_id)

    @property
    def is_answered(self) -> bool:
        return has_answer(self.response)

    @property
    def is_persisted(self) -> bool:
        return bool(self.id)
