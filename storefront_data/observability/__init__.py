"""
Observability components.

Provides structured logging, operation metrics and the database health check.
"""

from .health import DatabaseHealth, HealthStatus, check_database_health
from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    clear_request_context,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    set_correlation_id,
    set_request_context,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
    timed_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    "timed_operation",
    # Logging
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "set_request_context",
    "clear_request_context",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "get_logger",
    "log_operation",
    # Health
    "HealthStatus",
    "DatabaseHealth",
    "check_database_health",
]
