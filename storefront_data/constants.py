"""
Constants for STOREFRONT_DATA.

This module contains all shared constants used across the data access layer
to avoid magic numbers and keep the cache and pool conventions in one place.
"""

from typing import Final

# ============================================================================
# CONNECTION POOL CONSTANTS
# ============================================================================

DEFAULT_MONGO_URI: Final[str] = "mongodb://localhost:27017"
"""Development MongoDB URI used when MONGODB_URI is not set."""

DEFAULT_DB_NAME: Final[str] = "edauDB"
"""Default database name."""

DEFAULT_APP_NAME: Final[str] = "storefront-data"
"""Application name reported to the server in the connection handshake."""

DEFAULT_MAX_POOL_SIZE: Final[int] = 10
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 2
"""Default minimum MongoDB connection pool size."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 30000
"""Idle pooled connections are reclaimed after this many milliseconds."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_SOCKET_TIMEOUT_MS: Final[int] = 45000
"""Sockets are closed after this many milliseconds of inactivity."""

DEFAULT_READ_PREFERENCE: Final[str] = "secondaryPreferred"
"""Reads go to a secondary when one is available, otherwise to the primary."""

READ_PREFERENCE_MODES: Final[tuple[str, ...]] = (
    "primary",
    "primaryPreferred",
    "secondary",
    "secondaryPreferred",
    "nearest",
)
"""Read preference mode names accepted by the driver."""

DEFAULT_HEALTH_TIMEOUT_SECONDS: Final[float] = 5.0
"""Upper bound for the health check ping and dbStats calls."""

# ============================================================================
# COLLECTION NAMES
# ============================================================================

PRODUCTS_COLLECTION: Final[str] = "products"
ORDERS_COLLECTION: Final[str] = "orders"
USERS_COLLECTION: Final[str] = "users"
FARM_VISITS_COLLECTION: Final[str] = "farm_visits"
CHAT_CONVERSATIONS_COLLECTION: Final[str] = "chat_conversations"
USER_FEEDBACK_COLLECTION: Final[str] = "user_feedback"
GALLERY_COLLECTION: Final[str] = "gallery"

# ============================================================================
# QUERY / ANALYTICS CONSTANTS
# ============================================================================

CATEGORY_ALL: Final[str] = "all"
"""Category sentinel meaning "no category filter"."""

LOW_STOCK_THRESHOLD: Final[int] = 10
"""Products with stock strictly below this value count as low stock."""

LOW_STOCK_LIMIT: Final[int] = 10
"""Maximum number of low-stock products in the analytics snapshot."""

RECENT_ORDERS_LIMIT: Final[int] = 5
"""Maximum number of recent orders in the analytics snapshot."""

DELIVERED_STATUSES: Final[tuple[str, ...]] = ("delivered",)
"""Order status values counted as revenue, matched case-insensitively."""

ANALYTICS_BRANCH_TIMEOUT_MS: Final[int] = 10000
"""Server-side time limit for each analytics aggregation branch."""

ADMIN_ROLE: Final[str] = "admin"
"""User role counted as administrator."""

UNKNOWN_STATUS: Final[str] = "unknown"
"""Histogram key used for orders stored without a status."""

# ============================================================================
# CACHE CONSTANTS
# ============================================================================

DEFAULT_REDIS_URL: Final[str] = "redis://localhost:6379"
"""Development Redis URL used when REDIS_URL is not set."""

DEFAULT_CACHE_CONNECT_TIMEOUT: Final[float] = 3.0
"""Seconds to wait for the cache to answer before running without it."""

PRODUCTS_TTL: Final[int] = 300  # 5 minutes
PRODUCT_TTL: Final[int] = 600  # 10 minutes
CATEGORIES_TTL: Final[int] = 1800  # 30 minutes
ANALYTICS_TTL: Final[int] = 300  # 5 minutes
USER_TTL: Final[int] = 1800  # 30 minutes
GALLERY_TTL: Final[int] = 1800  # 30 minutes
