"""
Best-effort Redis cache.

The cache is an optional accelerator, never a hard dependency. Every public
operation honours the same contract:

- while disconnected, ``get`` returns ``None`` and ``exists`` returns
  ``False``; ``set``, ``delete`` and ``invalidate_pattern`` do nothing;
- Redis and JSON errors are logged and collapse to that same miss/no-op
  behaviour, so callers never need an "is the cache up" branch.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError

from ..constants import DEFAULT_CACHE_CONNECT_TIMEOUT, DEFAULT_REDIS_URL
from ..exceptions import CacheUnavailableError, SerializationError, redact_uri
from ..utils import json_default

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keys deleted per DEL command during pattern invalidation
DELETE_BATCH_SIZE = 500


class CacheStore:
    """
    JSON key-value cache with per-key TTL and glob invalidation.

    Example:
        cache = CacheStore("redis://localhost:6379")
        await cache.connect()
        await cache.set(CacheKeys.product(pid), product, CacheTTL.PRODUCT)
        product = await cache.get(CacheKeys.product(pid))
        await cache.invalidate_pattern(CacheKeys.family("product"))
    """

    def __init__(
        self,
        redis_url: str = DEFAULT_REDIS_URL,
        connect_timeout: float = DEFAULT_CACHE_CONNECT_TIMEOUT,
        client: "redis.Redis | None" = None,
    ) -> None:
        """
        Args:
            redis_url: Redis connection URL
            connect_timeout: Seconds to wait for the initial connection
            client: Pre-built client to use instead of one created from ``redis_url``
        """
        self.redis_url = redis_url
        self.connect_timeout = connect_timeout
        self._client = client
        self._owns_client = client is None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def client(self) -> "redis.Redis":
        """
        Raw client for callers that need commands beyond the JSON contract.

        Raises:
            CacheUnavailableError: If the cache is not connected
        """
        if not self._connected or self._client is None:
            raise CacheUnavailableError(
                "Redis cache not connected", context={"redis_url": redact_uri(self.redis_url)}
            )
        return self._client

    async def connect(self) -> bool:
        """
        Connect and verify with PING, bounded by ``connect_timeout``.

        Never raises. On failure the store stays disconnected and behaves as a
        pass-through.

        Returns:
            True if the cache is usable
        """
        if self._connected:
            return True

        if self._client is None:
            self._client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.connect_timeout,
                socket_timeout=self.connect_timeout,
                retry_on_timeout=True,
                health_check_interval=30,
            )

        try:
            await asyncio.wait_for(self._client.ping(), timeout=self.connect_timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            logger.warning(
                f"⚠️ Redis not available at {redact_uri(self.redis_url)}, "
                f"continuing without cache: {type(e).__name__}: {e}"
            )
            self._connected = False
            if self._owns_client:
                client, self._client = self._client, None
                try:
                    await client.aclose()
                except (RedisError, OSError) as close_error:
                    logger.debug(f"Error closing unusable Redis client: {close_error}")
            return False

        self._connected = True
        logger.info("✅ Redis cache service initialized")
        return True

    async def disconnect(self) -> None:
        """Close the connection. Safe to call multiple times."""
        client = self._client
        self._connected = False
        if client is None:
            return
        if self._owns_client:
            self._client = None
        try:
            await client.aclose()
        except (RedisError, OSError) as e:
            logger.warning(f"Error closing Redis connection: {e}")
        logger.info("Disconnected from Redis")

    async def get(self, key: str) -> Any | None:
        """
        Get and JSON-decode a cached value.

        Returns:
            The decoded value, or None on a miss, while disconnected, or when the
            stored payload is not valid JSON
        """
        if not self._connected:
            return None

        try:
            data = await self._client.get(key)
        except (RedisError, OSError) as e:
            logger.error(f"Redis GET error for '{key}': {e}")
            return None

        if data is None:
            return None

        try:
            return _decode(key, data)
        except SerializationError as e:
            logger.warning(f"Discarding undecodable cache entry: {e}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """
        JSON-encode and store a value.

        Args:
            key: Cache key
            value: JSON-serializable value (ObjectId and datetime are converted)
            ttl_seconds: Expiry in seconds; None or 0 means no automatic expiry
        """
        if not self._connected:
            return

        try:
            payload = _encode(key, value)
        except SerializationError as e:
            logger.error(f"Not caching value: {e}")
            return

        try:
            if ttl_seconds:
                await self._client.set(key, payload, ex=ttl_seconds)
            else:
                await self._client.set(key, payload)
        except (RedisError, OSError) as e:
            logger.error(f"Redis SET error for '{key}': {e}")

    async def delete(self, key: str) -> None:
        """Remove a key. Removing a missing key is a no-op."""
        if not self._connected:
            return

        try:
            await self._client.delete(key)
        except (RedisError, OSError) as e:
            logger.error(f"Redis DEL error for '{key}': {e}")

    async def exists(self, key: str) -> bool:
        if not self._connected:
            return False

        try:
            return await self._client.exists(key) == 1
        except (RedisError, OSError) as e:
            logger.error(f"Redis EXISTS error for '{key}': {e}")
            return False

    async def invalidate_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern.

        Keys are collected with SCAN, which does not block the server the way
        KEYS does, then deleted in batches.

        Returns:
            Number of keys deleted (0 when nothing matched or the cache is down)
        """
        if not self._connected:
            return 0

        try:
            keys = [key async for key in self._client.scan_iter(match=pattern)]
            if not keys:
                return 0

            deleted = 0
            for i in range(0, len(keys), DELETE_BATCH_SIZE):
                deleted += await self._client.delete(*keys[i : i + DELETE_BATCH_SIZE])
        except (RedisError, OSError) as e:
            logger.error(f"Redis pattern invalidation error for '{pattern}': {e}")
            return 0

        logger.debug(f"Invalidated {deleted} cache key(s) matching '{pattern}'")
        return deleted

    async def get_or_set(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: int | None = None,
    ) -> T:
        """
        Cache-aside read: return the cached value, or await ``loader``, cache
        its result and return it. ``None`` results are not cached.

        Errors raised by ``loader`` propagate; cache errors never do.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        value = await loader()
        if value is not None:
            await self.set(key, value, ttl_seconds)
        return value

    async def __aenter__(self) -> "CacheStore":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value, default=json_default)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Cannot serialize value: {e}", key=key) from e


def _decode(key: str, data: str) -> Any:
    try:
        return json.loads(data)
    except (json.JSONDecodeError, TypeError) as e:
        raise SerializationError(f"Cannot decode payload: {e}", key=key) from e
