"""
Structured logging utilities for STOREFRONT_DATA.

The library never configures handlers. It only enriches records: loggers from
``get_logger`` attach a UTC timestamp, the current correlation ID and any
request-scoped fields the host application bound for the running task.
"""

import contextvars
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "storefront_correlation_id", default=None
)
_request_fields: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "storefront_request_fields", default=None
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Bind a correlation ID to the current task, generating one if not given.

    Returns:
        The bound correlation ID
    """
    value = correlation_id or uuid.uuid4().hex
    _correlation_id.set(value)
    return value


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_request_context(**fields: Any) -> None:
    """Bind request-scoped fields (route, user_id, ...) to subsequent log records."""
    _request_fields.set(dict(fields))


def clear_request_context() -> None:
    _request_fields.set(None)


def get_logging_context() -> dict[str, Any]:
    """Fields every contextual log record carries."""
    context: dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat()}
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    context.update(_request_fields.get() or {})
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Merges ``get_logging_context()`` under the caller's own ``extra`` fields."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **fields: Any,
) -> None:
    """
    Emit one record summarising a finished operation.

    The message reads ``"<operation> succeeded in 12.50ms"`` or
    ``"<operation> failed"``; ``operation``, ``success``, ``duration_ms`` and
    ``fields`` are attached as record attributes.
    """
    extra = get_logging_context()
    extra.update(fields)
    extra["operation"] = operation
    extra["success"] = success

    outcome = "succeeded" if success else "failed"
    message = f"{operation} {outcome}"
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
        message = f"{message} in {duration_ms:.2f}ms"

    logger.log(level, message, extra=extra)
