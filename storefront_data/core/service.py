"""
Data Access Facade

The single entry point other subsystems use to read products, analytics and
health. ``StorefrontDataService`` is the composition root for the data layer:
it owns the connection pool and the cache, and is opened and closed
explicitly by the application (e.g. in a FastAPI lifespan handler).
"""

import logging
import time
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from ..analytics import AggregationEngine, AnalyticsSnapshot
from ..cache import CacheKeys, CacheStore, CacheTTL
from ..config import DataLayerConfig
from ..constants import PRODUCTS_COLLECTION
from ..database import ConnectionPoolManager, FilterCriteria, build_product_query
from ..exceptions import TransientStoreError
from ..observability import check_database_health, log_operation, timed_operation

logger = logging.getLogger(__name__)

FilterInput = FilterCriteria | Mapping[str, Any] | None


class StorefrontDataService:
    """
    Facade over the connection pool, query builder, aggregation engine and
    cache.

    Example:
        async with StorefrontDataService() as data:
            products = await data.get_products({"category": "feeds", "inStock": True})
            snapshot = await data.get_dashboard_analytics()
    """

    def __init__(
        self,
        config: DataLayerConfig | None = None,
        *,
        pool: ConnectionPoolManager | None = None,
        cache: CacheStore | None = None,
    ) -> None:
        """
        Args:
            config: Configuration (defaults to environment-driven config)
            pool: Pre-built pool manager; one is created from ``config`` otherwise
            cache: Pre-built cache store; one is created from ``config`` otherwise
        """
        self.config = config or DataLayerConfig()
        self.pool = pool or ConnectionPoolManager(self.config)
        self.cache = cache or CacheStore(
            self.config.redis_url, connect_timeout=self.config.cache_connect_timeout
        )
        self.analytics = AggregationEngine(self.pool)
        self._opened = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """
        Connect the store (required) and the cache (best effort).

        Raises:
            StoreConnectionError: If the document store is unreachable
        """
        start_time = time.time()
        await self.pool.connect()
        cache_available = await self.cache.connect()
        self._opened = True
        log_operation(
            logger,
            "facade.open",
            duration_ms=(time.time() - start_time) * 1000,
            db_name=self.config.db_name,
            cache_available=cache_available,
        )

    async def close(self) -> None:
        """Release the pool and the cache. Safe to call multiple times."""
        was_open = self._opened
        self._opened = False
        await self.cache.disconnect()
        await self.pool.disconnect()
        if was_open:
            log_operation(logger, "facade.close")

    @property
    def opened(self) -> bool:
        return self._opened

    async def __aenter__(self) -> "StorefrontDataService":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _db(self) -> AsyncIOMotorDatabase:
        # Re-dial after an observed disconnect, but never connect implicitly
        # before open(): that path raises NotConnectedError.
        if self._opened and not self.pool.is_connected:
            await self.pool.connect()
        return self.pool.get_handle()

    @asynccontextmanager
    async def _store_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except AutoReconnect as e:
            # The driver has already retried once; a persistent network error surfaces here
            if isinstance(e, ServerSelectionTimeoutError):
                self.pool.mark_disconnected(str(e))
            raise TransientStoreError(
                f"Store operation failed after retry: {e}", operation=operation
            ) from e

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    @timed_operation("facade.get_products")
    async def get_products(
        self,
        filter: FilterInput = None,
        *,
        limit: int | None = None,
        skip: int | None = None,
        projection: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        List products matching ``filter``, newest first.

        Raises:
            NotConnectedError: If the service was never opened
            TransientStoreError: On a persistent network error
        """
        query = build_product_query(filter)
        db = await self._db()
        async with self._store_errors("get_products"):
            cursor = db[PRODUCTS_COLLECTION].find(query, projection).sort(
                "created_at", DESCENDING
            )
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=limit or None)

    @timed_operation("facade.get_product_by_id")
    async def get_product_by_id(self, product_id: str | ObjectId | None) -> dict[str, Any] | None:
        """
        Fetch one product by id.

        Strings that parse as an ObjectId are matched as one; any other value
        is matched against ``_id`` as given, so both id formats work.
        """
        if product_id is None:
            return None
        db = await self._db()
        async with self._store_errors("get_product_by_id"):
            return await db[PRODUCTS_COLLECTION].find_one({"_id": product_id_query(product_id)})

    @timed_operation("facade.get_products_count")
    async def get_products_count(self, filter: FilterInput = None) -> int:
        query = build_product_query(filter)
        db = await self._db()
        async with self._store_errors("get_products_count"):
            return await db[PRODUCTS_COLLECTION].count_documents(query)

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def get_dashboard_analytics(self) -> AnalyticsSnapshot:
        """
        Compute the dashboard snapshot. Branch failures degrade the snapshot
        rather than failing the call; see ``AnalyticsSnapshot.failed_branches``.
        """
        await self._db()
        return await self.analytics.get_dashboard_analytics()

    async def get_cached_dashboard_analytics(self) -> AnalyticsSnapshot:
        """
        Cache-aside variant of ``get_dashboard_analytics`` using the
        ``analytics:dashboard`` key. Degraded snapshots are not cached.
        """
        cached = await self.cache.get(CacheKeys.ANALYTICS)
        if cached is not None:
            return AnalyticsSnapshot.from_dict(cached)

        snapshot = await self.get_dashboard_analytics()
        if not snapshot.degraded:
            await self.cache.set(CacheKeys.ANALYTICS, snapshot.to_dict(), CacheTTL.ANALYTICS)
        return snapshot

    async def invalidate_product(self, product_id: str | ObjectId | None = None) -> None:
        """
        Drop cached product data after a write: the product list, the
        analytics snapshot, and one product entry (or every product entry when
        ``product_id`` is None).
        """
        await self.cache.delete(CacheKeys.PRODUCTS)
        await self.cache.delete(CacheKeys.ANALYTICS)
        if product_id is None:
            await self.cache.invalidate_pattern(CacheKeys.family("product"))
        else:
            await self.cache.delete(CacheKeys.product(product_id))

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """
        Ping the store and report basic database statistics. Never raises.

        Returns:
            ``{"status": "healthy", "database": {...}, "timestamp": ...}`` or
            ``{"status": "unhealthy", "error": ..., "timestamp": ...}``
        """
        result = await check_database_health(self.pool.get_handle)
        return result.to_dict()


def product_id_query(product_id: str | ObjectId) -> ObjectId | str:
    """Return an ObjectId when ``product_id`` parses as one, else the raw value."""
    if product_id is None:
        raise TypeError("product_id must not be None")
    if isinstance(product_id, ObjectId):
        return product_id
    try:
        return ObjectId(product_id)
    except (InvalidId, TypeError):
        return product_id
