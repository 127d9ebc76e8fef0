"""
Configuration management for STOREFRONT_DATA.

Every setting can be passed directly or read from the environment, and every
setting has a development default so the layer runs with zero configuration.
"""

import os

from .constants import (
    DEFAULT_APP_NAME,
    DEFAULT_CACHE_CONNECT_TIMEOUT,
    DEFAULT_DB_NAME,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_MONGO_URI,
    DEFAULT_READ_PREFERENCE,
    DEFAULT_REDIS_URL,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    DEFAULT_SOCKET_TIMEOUT_MS,
    READ_PREFERENCE_MODES,
)
from .exceptions import ConfigurationError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer", config_key=name, config_value=raw
        ) from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number", config_key=name, config_value=raw
        ) from e


class DataLayerConfig:
    """
    Data access layer configuration.

    Example:
        # Using environment variables
        config = DataLayerConfig()
        service = StorefrontDataService(config)

        # Or using direct parameters
        config = DataLayerConfig(
            mongo_uri="mongodb://localhost:27017",
            db_name="shop",
            max_pool_size=20,
        )
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        redis_url: str | None = None,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
        max_idle_time_ms: int | None = None,
        server_selection_timeout_ms: int | None = None,
        socket_timeout_ms: int | None = None,
        read_preference: str | None = None,
        cache_connect_timeout: float | None = None,
        app_name: str | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (defaults to MONGODB_URI env var)
            db_name: Database name (defaults to MONGODB_DB_NAME env var)
            redis_url: Redis URL (defaults to REDIS_URL env var)
            max_pool_size: Maximum pool size (defaults to 10 or MONGODB_MAX_POOL_SIZE)
            min_pool_size: Minimum pool size (defaults to 2 or MONGODB_MIN_POOL_SIZE)
            max_idle_time_ms: Idle connection reclamation window (defaults to 30000)
            server_selection_timeout_ms: Server selection timeout (defaults to 5000)
            socket_timeout_ms: Socket inactivity timeout (defaults to 45000)
            read_preference: Read preference mode (defaults to secondaryPreferred)
            cache_connect_timeout: Seconds to wait for Redis (defaults to 3.0)
            app_name: Name sent in the driver handshake
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGODB_URI", DEFAULT_MONGO_URI)
        self.db_name = db_name or os.getenv("MONGODB_DB_NAME", DEFAULT_DB_NAME)
        self.redis_url = redis_url or os.getenv("REDIS_URL", DEFAULT_REDIS_URL)
        self.max_pool_size = (
            max_pool_size
            if max_pool_size is not None
            else _env_int("MONGODB_MAX_POOL_SIZE", DEFAULT_MAX_POOL_SIZE)
        )
        self.min_pool_size = (
            min_pool_size
            if min_pool_size is not None
            else _env_int("MONGODB_MIN_POOL_SIZE", DEFAULT_MIN_POOL_SIZE)
        )
        self.max_idle_time_ms = (
            max_idle_time_ms
            if max_idle_time_ms is not None
            else _env_int("MONGODB_MAX_IDLE_TIME_MS", DEFAULT_MAX_IDLE_TIME_MS)
        )
        self.server_selection_timeout_ms = (
            server_selection_timeout_ms
            if server_selection_timeout_ms is not None
            else _env_int("MONGODB_SERVER_SELECTION_TIMEOUT_MS", DEFAULT_SERVER_SELECTION_TIMEOUT_MS)
        )
        self.socket_timeout_ms = (
            socket_timeout_ms
            if socket_timeout_ms is not None
            else _env_int("MONGODB_SOCKET_TIMEOUT_MS", DEFAULT_SOCKET_TIMEOUT_MS)
        )
        self.read_preference = read_preference or os.getenv(
            "MONGODB_READ_PREFERENCE", DEFAULT_READ_PREFERENCE
        )
        self.cache_connect_timeout = (
            cache_connect_timeout
            if cache_connect_timeout is not None
            else _env_float("REDIS_CONNECT_TIMEOUT", DEFAULT_CACHE_CONNECT_TIMEOUT)
        )
        self.app_name = app_name or os.getenv("MONGODB_APP_NAME", DEFAULT_APP_NAME)

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if not self.mongo_uri:
            raise ConfigurationError(
                "mongo_uri is required (set MONGODB_URI or pass directly)",
                config_key="mongo_uri",
            )

        if not self.db_name:
            raise ConfigurationError(
                "db_name is required (set MONGODB_DB_NAME or pass directly)",
                config_key="db_name",
            )

        if self.max_pool_size < 1:
            raise ConfigurationError(
                f"max_pool_size must be >= 1, got {self.max_pool_size}",
                config_key="max_pool_size",
                config_value=self.max_pool_size,
            )

        if self.min_pool_size < 0:
            raise ConfigurationError(
                f"min_pool_size must be >= 0, got {self.min_pool_size}",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        for key in ("max_idle_time_ms", "server_selection_timeout_ms", "socket_timeout_ms"):
            value = getattr(self, key)
            if value <= 0:
                raise ConfigurationError(
                    f"{key} must be > 0, got {value}", config_key=key, config_value=value
                )

        if self.cache_connect_timeout <= 0:
            raise ConfigurationError(
                f"cache_connect_timeout must be > 0, got {self.cache_connect_timeout}",
                config_key="cache_connect_timeout",
                config_value=self.cache_connect_timeout,
            )

        if self.read_preference not in READ_PREFERENCE_MODES:
            raise ConfigurationError(
                f"read_preference must be one of {', '.join(READ_PREFERENCE_MODES)}",
                config_key="read_preference",
                config_value=self.read_preference,
            )

    def client_options(self) -> dict:
        """Keyword arguments for ``AsyncIOMotorClient``."""
        return {
            "maxPoolSize": self.max_pool_size,
            "minPoolSize": self.min_pool_size,
            "maxIdleTimeMS": self.max_idle_time_ms,
            "serverSelectionTimeoutMS": self.server_selection_timeout_ms,
            "socketTimeoutMS": self.socket_timeout_ms,
            "readPreference": self.read_preference,
            "retryWrites": True,
            "retryReads": True,
            "appname": self.app_name,
        }
