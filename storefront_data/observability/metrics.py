"""
In-process operation timing for STOREFRONT_DATA.

Records call counts and latencies for pool lifecycle events, facade reads and
individual analytics branches so slow store operations can be spotted.
Samples are keyed by operation name plus optional tags, e.g.
``analytics.branch[branch=users]``.
"""

import functools
import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SLOW_OPERATION_MS = 1000.0
DEFAULT_MAX_ENTRIES = 1000


@dataclass
class OperationMetrics:
    """Running latency/failure totals for one operation label."""

    operation_name: str
    count: int = 0
    failures: int = 0
    total_ms: float = 0.0
    min_ms: float | None = None
    max_ms: float = 0.0
    last_seen: datetime | None = None

    @property
    def mean_ms(self) -> float:
        if not self.count:
            return 0.0
        return self.total_ms / self.count

    @property
    def failure_rate(self) -> float:
        """Fraction of calls that failed, 0.0 to 1.0."""
        if not self.count:
            return 0.0
        return self.failures / self.count

    def add(self, duration_ms: float, success: bool) -> None:
        self.count += 1
        self.total_ms += duration_ms
        if self.min_ms is None or duration_ms < self.min_ms:
            self.min_ms = duration_ms
        if duration_ms > self.max_ms:
            self.max_ms = duration_ms
        if not success:
            self.failures += 1
        self.last_seen = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation_name,
            "count": self.count,
            "failures": self.failures,
            "failure_rate": round(self.failure_rate, 4),
            "mean_ms": round(self.mean_ms, 2),
            "min_ms": round(self.min_ms or 0.0, 2),
            "max_ms": round(self.max_ms, 2),
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }


def metric_label(operation_name: str, tags: dict[str, Any]) -> str:
    """``name`` or ``name[k1=v1,k2=v2]`` with tags sorted by key."""
    if not tags:
        return operation_name
    rendered = ",".join(f"{k}={tags[k]}" for k in sorted(tags))
    return f"{operation_name}[{rendered}]"


class MetricsCollector:
    """
    Thread-safe collector with a bounded number of labels.

    When ``max_entries`` labels exist, recording a new label drops the one
    that was updated least recently.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        slow_threshold_ms: float = SLOW_OPERATION_MS,
    ):
        self._entries: OrderedDict[str, OperationMetrics] = OrderedDict()
        self._guard = threading.Lock()
        self.max_entries = max_entries
        self.slow_threshold_ms = slow_threshold_ms

    def record_operation(
        self, operation_name: str, duration_ms: float, success: bool = True, **tags: Any
    ) -> None:
        label = metric_label(operation_name, tags)

        with self._guard:
            entry = self._entries.get(label)
            if entry is None:
                while len(self._entries) >= self.max_entries:
                    self._entries.popitem(last=False)
                entry = self._entries[label] = OperationMetrics(operation_name)
            else:
                self._entries.move_to_end(label)
            entry.add(duration_ms, success)

        if duration_ms > self.slow_threshold_ms:
            logger.warning(f"Slow operation detected: {label} took {duration_ms:.2f}ms")

    def get_metrics(self, prefix: str | None = None) -> dict[str, Any]:
        """Snapshot of every label, or only labels starting with ``prefix``."""
        with self._guard:
            metrics = {
                label: entry.to_dict()
                for label, entry in self._entries.items()
                if prefix is None or label.startswith(prefix)
            }
            total = len(self._entries)

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metrics": metrics,
            "total_operations": total,
        }

    def get_operation_count(self, operation_name: str) -> int:
        """Calls recorded for ``operation_name`` summed over all its tags."""
        with self._guard:
            return sum(
                entry.count
                for entry in self._entries.values()
                if entry.operation_name == operation_name
            )

    def reset(self) -> None:
        with self._guard:
            self._entries.clear()


_collector: MetricsCollector | None = None
_collector_guard = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector, created on first use."""
    global _collector
    if _collector is None:
        with _collector_guard:
            if _collector is None:
                _collector = MetricsCollector()
    return _collector


def record_operation(
    operation_name: str, duration_ms: float, success: bool = True, **tags: Any
) -> None:
    get_metrics_collector().record_operation(operation_name, duration_ms, success, **tags)


def timed_operation(
    operation_name: str, **tags: Any
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Record the duration and outcome of every call to an async function.

    Usage:
        @timed_operation("facade.get_products")
        async def get_products(self, ...):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def timed(*args: Any, **kwargs: Any) -> T:
            started = time.perf_counter()
            ok = False
            try:
                result = await func(*args, **kwargs)
                ok = True
                return result
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000
                record_operation(operation_name, elapsed_ms, ok, **tags)

        return timed

    return decorator
