"""
Health check utilities for STOREFRONT_DATA.

The database health check never raises: every failure is reported as an
``unhealthy`` result carrying the error message.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pymongo.errors import PyMongoError

from ..constants import DEFAULT_HEALTH_TIMEOUT_SECONDS
from ..exceptions import DataLayerError

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health status enumeration."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DatabaseHealth:
    """Result of a database health check."""

    status: HealthStatus
    database: dict[str, Any] | None = None
    error: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": self.status.value}
        if self.database is not None:
            result["database"] = self.database
        if self.error is not None:
            result["error"] = self.error
        result["timestamp"] = self.timestamp.isoformat()
        return result


async def check_database_health(
    get_handle: Callable[[], Any],
    timeout_seconds: float = DEFAULT_HEALTH_TIMEOUT_SECONDS,
) -> DatabaseHealth:
    """
    Ping the store and collect basic database statistics.

    Args:
        get_handle: Callable returning the database handle; may raise
            ``NotConnectedError``
        timeout_seconds: Upper bound for each server round trip

    Returns:
        DatabaseHealth (healthy with ``database`` stats, or unhealthy with ``error``)
    """
    try:
        db = get_handle()
        await asyncio.wait_for(db.client.admin.command("ping"), timeout=timeout_seconds)
        stats = await asyncio.wait_for(db.command("dbStats"), timeout=timeout_seconds)
        return DatabaseHealth(
            status=HealthStatus.HEALTHY,
            database={
                "name": stats.get("db", db.name),
                "collections": stats.get("collections", 0),
                "indexes": stats.get("indexes", 0),
                "dataSize": stats.get("dataSize", 0),
                "storageSize": stats.get("storageSize", 0),
            },
        )
    except asyncio.TimeoutError:
        logger.warning(f"Database health check timed out after {timeout_seconds}s")
        return DatabaseHealth(
            status=HealthStatus.UNHEALTHY,
            error=f"Database health check timed out after {timeout_seconds}s",
        )
    except (
        DataLayerError,
        PyMongoError,
        OSError,
        AttributeError,
        TypeError,
    ) as e:
        logger.warning(f"Database health check failed: {e}")
        return DatabaseHealth(
            status=HealthStatus.UNHEALTHY,
            error=str(e) or type(e).__name__,
        )
