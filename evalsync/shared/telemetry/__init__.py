"""Shared telemetry: logging setup and tracing helpers."""

from evalsync.shared.telemetry.logging import get_logger, setup_logging
from evalsync.shared.telemetry.tracing import (
    add_span_attributes,
    add_span_event,
    set_tracing_enabled,
    traced,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "traced",
    "add_span_attributes",
    "add_span_event",
    "set_tracing_enabled",
]
