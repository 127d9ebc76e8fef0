"""
Connection Pool Manager

Owns the single MongoDB connection pool used by the data access layer. The
manager is constructed explicitly by the process's composition root and
passed to every consumer, so "one pool per process" holds without any
module-level global.

Usage:
    pool = ConnectionPoolManager(DataLayerConfig())
    db = await pool.connect()
    ...
    await pool.disconnect()
"""

import asyncio
import logging
import time
from enum import Enum

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import (
    ConfigurationError as PyMongoConfigurationError,
)
from pymongo.errors import (
    ConnectionFailure,
    InvalidOperation,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from ..config import DataLayerConfig
from ..exceptions import NotConnectedError, StoreConnectionError
from ..indexes import IndexRegistrar
from ..observability import get_logger as get_contextual_logger
from ..observability import record_operation

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionPoolManager:
    """
    Manages the MongoDB connection pool lifecycle.

    ``connect`` is idempotent and serialized by an ``asyncio.Lock``: concurrent
    first callers share a single dial, and later callers get the existing
    handle back. Indexes are ensured once, after the first successful connect.
    """

    def __init__(
        self,
        config: DataLayerConfig | None = None,
        index_registrar: IndexRegistrar | None = None,
    ) -> None:
        """
        Initialize the pool manager.

        Args:
            config: Data layer configuration (defaults to environment-driven config)
            index_registrar: Registrar run after the first connect
        """
        self.config = config or DataLayerConfig()
        self.config.validate()
        self.index_registrar = index_registrar or IndexRegistrar()

        self._client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None
        self._state: ConnectionState = ConnectionState.DISCONNECTED
        self._lock = asyncio.Lock()
        self._indexes_ensured: bool = False

    async def connect(self) -> AsyncIOMotorDatabase:
        """
        Establish the pool if needed and return the database handle.

        Raises:
            StoreConnectionError: If the server cannot be reached or rejects the login
        """
        if self._state is ConnectionState.CONNECTED and self._db is not None:
            return self._db

        async with self._lock:
            # Another caller may have connected while we waited
            if self._state is ConnectionState.CONNECTED and self._db is not None:
                return self._db

            self._state = ConnectionState.CONNECTING
            start_time = time.time()
            contextual_logger.info(
                "Connecting to MongoDB",
                extra={
                    "db_name": self.config.db_name,
                    "pool_size": f"{self.config.min_pool_size}-{self.config.max_pool_size}",
                    "read_preference": self.config.read_preference,
                },
            )

            client: AsyncIOMotorClient | None = None
            try:
                client = AsyncIOMotorClient(self.config.mongo_uri, **self.config.client_options())
                await client.admin.command("ping")
            except (
                ConnectionFailure,
                ServerSelectionTimeoutError,
                OperationFailure,
                PyMongoConfigurationError,
            ) as e:
                if client is not None:
                    client.close()
                self._state = ConnectionState.DISCONNECTED
                duration_ms = (time.time() - start_time) * 1000
                record_operation("connection.connect", duration_ms, success=False)
                contextual_logger.critical(
                    "❌ MongoDB connection failed",
                    extra={
                        "error_type": type(e).__name__,
                        "error": str(e),
                        "duration_ms": round(duration_ms, 2),
                    },
                    exc_info=True,
                )
                raise StoreConnectionError(
                    f"Failed to connect to MongoDB: {e}",
                    mongo_uri=self.config.mongo_uri,
                    db_name=self.config.db_name,
                    context={"error_type": type(e).__name__},
                ) from e

            self._client = client
            self._db = client[self.config.db_name]
            self._state = ConnectionState.CONNECTED

            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.connect", duration_ms, success=True)
            contextual_logger.info(
                "✅ Connected to MongoDB with connection pooling",
                extra={"db_name": self.config.db_name, "duration_ms": round(duration_ms, 2)},
            )

            if not self._indexes_ensured:
                self._indexes_ensured = True
                await self._ensure_indexes(self._db)

            return self._db

    async def _ensure_indexes(self, db: AsyncIOMotorDatabase) -> None:
        try:
            await self.index_registrar.ensure_indexes(db)
        except (OperationFailure, ConnectionFailure, ValueError, TypeError) as e:
            # Queries still work without indexes, only slower
            logger.error(f"❌ Failed to create indexes: {e}", exc_info=True)

    def get_handle(self) -> AsyncIOMotorDatabase:
        """
        Get the database handle.

        Raises:
            NotConnectedError: If no live pool exists
        """
        if self._state is not ConnectionState.CONNECTED or self._db is None:
            raise NotConnectedError(context={"state": self._state.value})
        return self._db

    @property
    def client(self) -> AsyncIOMotorClient:
        """
        Get the MongoDB client.

        Raises:
            NotConnectedError: If no live pool exists
        """
        if self._state is not ConnectionState.CONNECTED or self._client is None:
            raise NotConnectedError(context={"state": self._state.value})
        return self._client

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def mark_disconnected(self, reason: str | None = None) -> None:
        """
        Record an observed disconnect so the next ``connect`` re-dials instead
        of handing out a dead pool.
        """
        if self._state is ConnectionState.DISCONNECTED:
            return
        logger.warning(f"MongoDB connection marked as lost: {reason or 'unknown reason'}")
        self._close_client()

    async def disconnect(self) -> None:
        """
        Release the pool. Safe to call multiple times.
        """
        async with self._lock:
            if self._state is ConnectionState.DISCONNECTED and self._client is None:
                return
            start_time = time.time()
            self._close_client()
            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.disconnect", duration_ms, success=True)
            contextual_logger.info(
                "✅ Disconnected from MongoDB",
                extra={"duration_ms": round(duration_ms, 2)},
            )

    def _close_client(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except (InvalidOperation, AttributeError, RuntimeError) as e:
                logger.warning(f"Error closing MongoDB client: {e}")
        self._client = None
        self._db = None
        self._state = ConnectionState.DISCONNECTED

    async def __aenter__(self) -> "ConnectionPoolManager":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()
