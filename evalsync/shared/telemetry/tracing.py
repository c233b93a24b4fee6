"""Tracing helpers on the OpenTelemetry API.

Spans are no-ops unless the host application installs an OpenTelemetry
SDK and tracer provider.
"""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

# Only these kwarg names are copied onto spans (answer values never are).
_SAFE_SPAN_ATTR_KEYS = frozenset({
    "evaluation_id", "evaluator_id", "evaluated_id", "user_id", "form_id",
    "relationship", "force_refresh", "ttl",
})


_tracing_enabled = True


def set_tracing_enabled(enabled: bool) -> None:
    """Turn span creation by traced() on or off (settings.telemetry_enabled)."""
    global _tracing_enabled
    _tracing_enabled = enabled


def _set_safe_span_attrs(span: trace.Span, kwargs: dict[str, Any]) -> None:
    for key, value in kwargs.items():
        if key in _SAFE_SPAN_ATTR_KEYS and value is not None:
            span.set_attribute(f"arg.{key}", str(value))


def traced(
    operation_name: str | None = None,
    attributes: dict[str, str | int | float | bool] | None = None,
) -> Callable:
    """Decorator that runs an async function inside a span.

    Exceptions are recorded on the span and re-raised.

    Args:
        operation_name: Span name (defaults to module.qualname).
        attributes: Optional static attributes set on the span.

    Returns:
        Decorated coroutine function.
    """

    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"traced() expects a coroutine function, got {func!r}")
        tracer = trace.get_tracer(__name__)
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            if not _tracing_enabled:
                return await func(*args, **kwargs)
            with tracer.start_as_current_span(span_name) as span:
                for key, value in (attributes or {}).items():
                    span.set_attribute(key, value)
                _set_safe_span_attrs(span, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    span.record_exception(e)
                    raise
                span.set_status(Status(StatusCode.OK))
                return result

        return wrapper

    return decorator


def add_span_attributes(**attributes: str | int | float | bool) -> None:
    """Add attributes to the current span."""
    span = trace.get_current_span()
    if span and span.is_recording():
        for key, value in attributes.items():
            span.set_attribute(key, value)


def add_span_event(name: str, attributes: dict | None = None) -> None:
    """Add an event to the current span."""
    span = trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name, attributes=attributes or {})
