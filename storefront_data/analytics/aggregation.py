"""
Dashboard analytics aggregation.

Six independent read-only aggregations run concurrently and are merged into a
single ``AnalyticsSnapshot``. Branches are isolated: a branch that fails for any reason
contributes its empty default and is listed in
``failed_branches``; the other branches still report their data.
"""

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ..constants import (
    ADMIN_ROLE,
    ANALYTICS_BRANCH_TIMEOUT_MS,
    DELIVERED_STATUSES,
    LOW_STOCK_LIMIT,
    LOW_STOCK_THRESHOLD,
    ORDERS_COLLECTION,
    PRODUCTS_COLLECTION,
    RECENT_ORDERS_LIMIT,
    UNKNOWN_STATUS,
    USERS_COLLECTION,
)
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation
from ..utils import clean_mongo_docs, json_default

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

BRANCH_PRODUCTS = "products"
BRANCH_ORDERS = "orders"
BRANCH_USERS = "users"
BRANCH_REVENUE = "revenue"
BRANCH_LOW_STOCK = "low_stock_products"
BRANCH_RECENT_ORDERS = "recent_orders"

BRANCHES: tuple[str, ...] = (
    BRANCH_PRODUCTS,
    BRANCH_ORDERS,
    BRANCH_USERS,
    BRANCH_REVENUE,
    BRANCH_LOW_STOCK,
    BRANCH_RECENT_ORDERS,
)


class HandleProvider(Protocol):
    def get_handle(self) -> Any: ...


def as_float(value: Any) -> float:
    """Numeric aggregate result as a float; None is 0.0 and Decimal128 is unwrapped."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return float(json_default(value))


@dataclass
class ProductStats:
    total_products: int = 0
    total_stock: int = 0
    avg_price: float = 0.0
    low_stock_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalProducts": self.total_products,
            "totalStock": self.total_stock,
            "avgPrice": self.avg_price,
            "lowStockCount": self.low_stock_count,
        }


@dataclass
class UserStats:
    total_users: int = 0
    admin_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"totalUsers": self.total_users, "adminCount": self.admin_count}


@dataclass
class RevenueStats:
    total_revenue: float = 0.0
    order_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"totalRevenue": self.total_revenue, "orderCount": self.order_count}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AnalyticsSnapshot:
    """Aggregated dashboard counters. Recomputed on demand, never persisted here."""

    products: ProductStats = field(default_factory=ProductStats)
    orders: dict[str, int] = field(default_factory=dict)
    users: UserStats = field(default_factory=UserStats)
    revenue: RevenueStats = field(default_factory=RevenueStats)
    low_stock_products: list[dict[str, Any]] = field(default_factory=list)
    recent_orders: list[dict[str, Any]] = field(default_factory=list)
    failed_branches: list[str] = field(default_factory=list)
    generated_at: datetime = field(default_factory=_utcnow)

    @property
    def degraded(self) -> bool:
        """True when at least one branch fell back to its default."""
        return bool(self.failed_branches)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe representation, suitable for the ``analytics:dashboard`` cache entry."""
        return {
            "products": self.products.to_dict(),
            "orders": dict(self.orders),
            "users": self.users.to_dict(),
            "revenue": self.revenue.to_dict(),
            "lowStockProducts": clean_mongo_docs(self.low_stock_products),
            "recentOrders": clean_mongo_docs(self.recent_orders),
            "failedBranches": list(self.failed_branches),
            "generatedAt": self.generated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalyticsSnapshot":
        """Rebuild a snapshot from ``to_dict`` output (e.g. a cache hit)."""
        products = data.get("products") or {}
        users = data.get("users") or {}
        revenue = data.get("revenue") or {}
        generated_at = data.get("generatedAt")
        return cls(
            products=ProductStats(
                total_products=products.get("totalProducts", 0),
                total_stock=products.get("totalStock", 0),
                avg_price=products.get("avgPrice", 0.0),
                low_stock_count=products.get("lowStockCount", 0),
            ),
            orders=dict(data.get("orders") or {}),
            users=UserStats(
                total_users=users.get("totalUsers", 0),
                admin_count=users.get("adminCount", 0),
            ),
            revenue=RevenueStats(
                total_revenue=revenue.get("totalRevenue", 0.0),
                order_count=revenue.get("orderCount", 0),
            ),
            low_stock_products=list(data.get("lowStockProducts") or []),
            recent_orders=list(data.get("recentOrders") or []),
            failed_branches=list(data.get("failedBranches") or []),
            generated_at=(
                datetime.fromisoformat(generated_at) if generated_at else _utcnow()
            ),
        )


class AggregationEngine:
    """
    Fan-out/fan-in dashboard analytics over the products, orders and users
    collections.
    """

    def __init__(
        self,
        pool: HandleProvider,
        low_stock_threshold: int = LOW_STOCK_THRESHOLD,
        low_stock_limit: int = LOW_STOCK_LIMIT,
        recent_orders_limit: int = RECENT_ORDERS_LIMIT,
        delivered_statuses: tuple[str, ...] = DELIVERED_STATUSES,
        branch_timeout_ms: int = ANALYTICS_BRANCH_TIMEOUT_MS,
    ) -> None:
        self._pool = pool
        self.low_stock_threshold = low_stock_threshold
        self.low_stock_limit = low_stock_limit
        self.recent_orders_limit = recent_orders_limit
        self.delivered_statuses = delivered_statuses
        self.branch_timeout_ms = branch_timeout_ms

    async def get_dashboard_analytics(self) -> AnalyticsSnapshot:
        """
        Run all six branches concurrently and assemble the snapshot.

        Raises:
            NotConnectedError: If the pool is not connected
        """
        db = self._pool.get_handle()
        start_time = time.time()

        branch_calls: dict[str, Callable[[Any], Awaitable[Any]]] = {
            BRANCH_PRODUCTS: self._product_stats,
            BRANCH_ORDERS: self._order_status_histogram,
            BRANCH_USERS: self._user_stats,
            BRANCH_REVENUE: self._revenue_stats,
            BRANCH_LOW_STOCK: self._low_stock_products,
            BRANCH_RECENT_ORDERS: self._recent_orders,
        }
        results = await asyncio.gather(
            *(self._run_branch(name, call, db) for name, call in branch_calls.items())
        )

        snapshot = AnalyticsSnapshot()
        for name, (ok, value) in zip(branch_calls, results):
            if not ok:
                snapshot.failed_branches.append(name)
                continue
            if name == BRANCH_PRODUCTS:
                snapshot.products = value
            elif name == BRANCH_ORDERS:
                snapshot.orders = value
            elif name == BRANCH_USERS:
                snapshot.users = value
            elif name == BRANCH_REVENUE:
                snapshot.revenue = value
            elif name == BRANCH_LOW_STOCK:
                snapshot.low_stock_products = value
            elif name == BRANCH_RECENT_ORDERS:
                snapshot.recent_orders = value

        duration_ms = (time.time() - start_time) * 1000
        record_operation("analytics.dashboard", duration_ms, success=not snapshot.degraded)
        if snapshot.degraded:
            contextual_logger.warning(
                "Dashboard analytics degraded",
                extra={
                    "failed_branches": snapshot.failed_branches,
                    "duration_ms": round(duration_ms, 2),
                },
            )
        return snapshot

    async def _run_branch(
        self, name: str, call: Callable[[Any], Awaitable[Any]], db: Any
    ) -> tuple[bool, Any]:
        start_time = time.time()
        try:
            value = await call(db)
        except (PyMongoError, asyncio.TimeoutError, OSError) as e:
            return self._branch_failed(name, start_time, e)
        except Exception as e:
            return self._branch_failed(name, start_time, e, exc_info=True)
        duration_ms = (time.time() - start_time) * 1000
        record_operation("analytics.branch", duration_ms, success=True, branch=name)
        return True, value

    def _branch_failed(
        self, name: str, start_time: float, e: Exception, exc_info: bool = False
    ) -> tuple[bool, Any]:
        duration_ms = (time.time() - start_time) * 1000
        record_operation("analytics.branch", duration_ms, success=False, branch=name)
        logger.error(f"Analytics branch '{name}' failed: {type(e).__name__}: {e}", exc_info=exc_info)
        return False, None

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def _aggregate(self, db: Any, collection: str, pipeline: list[dict]) -> list[dict]:
        cursor = db[collection].aggregate(pipeline, maxTimeMS=self.branch_timeout_ms)
        return await cursor.to_list(length=None)

    def product_stats_pipeline(self) -> list[dict]:
        return [
            {
                "$group": {
                    "_id": None,
                    "totalProducts": {"$sum": 1},
                    "totalStock": {"$sum": "$stock"},
                    "avgPrice": {"$avg": "$price"},
                    "lowStockCount": {
                        "$sum": {"$cond": [{"$lt": ["$stock", self.low_stock_threshold]}, 1, 0]}
                    },
                }
            }
        ]

    async def _product_stats(self, db: Any) -> ProductStats:
        rows = await self._aggregate(db, PRODUCTS_COLLECTION, self.product_stats_pipeline())
        if not rows:
            return ProductStats()
        row = rows[0]
        return ProductStats(
            total_products=row.get("totalProducts") or 0,
            total_stock=row.get("totalStock") or 0,
            avg_price=as_float(row.get("avgPrice")),
            low_stock_count=row.get("lowStockCount") or 0,
        )

    async def _order_status_histogram(self, db: Any) -> dict[str, int]:
        pipeline = [{"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        rows = await self._aggregate(db, ORDERS_COLLECTION, pipeline)
        histogram: dict[str, int] = {}
        for row in rows:
            status = row.get("_id")
            key = UNKNOWN_STATUS if status is None else str(status)
            histogram[key] = histogram.get(key, 0) + row.get("count", 0)
        return histogram

    async def _user_stats(self, db: Any) -> UserStats:
        pipeline = [
            {
                "$group": {
                    "_id": None,
                    "totalUsers": {"$sum": 1},
                    "adminCount": {"$sum": {"$cond": [{"$eq": ["$role", ADMIN_ROLE]}, 1, 0]}},
                }
            }
        ]
        rows = await self._aggregate(db, USERS_COLLECTION, pipeline)
        if not rows:
            return UserStats()
        return UserStats(
            total_users=rows[0].get("totalUsers") or 0,
            admin_count=rows[0].get("adminCount") or 0,
        )

    def delivered_status_filter(self) -> dict[str, Any]:
        """Case-insensitive exact match on any delivered status."""
        patterns = [
            re.compile(f"^{re.escape(status)}$", re.IGNORECASE) for status in self.delivered_statuses
        ]
        return {"status": {"$in": patterns}}

    async def _revenue_stats(self, db: Any) -> RevenueStats:
        pipeline = [
            {"$match": self.delivered_status_filter()},
            {
                "$group": {
                    "_id": None,
                    "totalRevenue": {"$sum": "$total_amount"},
                    "orderCount": {"$sum": 1},
                }
            },
        ]
        rows = await self._aggregate(db, ORDERS_COLLECTION, pipeline)
        if not rows:
            return RevenueStats()
        return RevenueStats(
            total_revenue=as_float(rows[0].get("totalRevenue")),
            order_count=rows[0].get("orderCount") or 0,
        )

    async def _low_stock_products(self, db: Any) -> list[dict[str, Any]]:
        cursor = (
            db[PRODUCTS_COLLECTION]
            .find(
                {"stock": {"$lt": self.low_stock_threshold}},
                {"name": 1, "stock": 1, "category": 1},
            )
            .sort("stock", ASCENDING)
            .limit(self.low_stock_limit)
            .max_time_ms(self.branch_timeout_ms)
        )
        return await cursor.to_list(length=self.low_stock_limit)

    async def _recent_orders(self, db: Any) -> list[dict[str, Any]]:
        cursor = (
            db[ORDERS_COLLECTION]
            .find({})
            .sort("created_at", DESCENDING)
            .limit(self.recent_orders_limit)
            .max_time_ms(self.branch_timeout_ms)
        )
        return await cursor.to_list(length=self.recent_orders_limit)
