"""
STOREFRONT_DATA - Storefront data access & caching layer

Pooled MongoDB access, product filtering, concurrent dashboard analytics and
a best-effort Redis cache behind a single facade.
"""

from .analytics import AggregationEngine, AnalyticsSnapshot
from .cache import CacheKeys, CacheStore, CacheTTL
from .config import DataLayerConfig
from .core import StorefrontDataService
from .database import ConnectionPoolManager, ConnectionState, FilterCriteria, build_product_query
from .exceptions import (
    CacheUnavailableError,
    ConfigurationError,
    DataLayerError,
    IndexCreationError,
    NotConnectedError,
    SerializationError,
    StoreConnectionError,
    TransientStoreError,
)
from .indexes import INDEX_SPECS, IndexRegistrar, IndexSpec

__version__ = "0.1.0"

__all__ = [
    # Facade
    "StorefrontDataService",
    "DataLayerConfig",
    # Database
    "ConnectionPoolManager",
    "ConnectionState",
    "FilterCriteria",
    "build_product_query",
    # Indexes
    "INDEX_SPECS",
    "IndexSpec",
    "IndexRegistrar",
    # Analytics
    "AggregationEngine",
    "AnalyticsSnapshot",
    # Cache
    "CacheStore",
    "CacheKeys",
    "CacheTTL",
    # Errors
    "DataLayerError",
    "ConfigurationError",
    "StoreConnectionError",
    "NotConnectedError",
    "TransientStoreError",
    "IndexCreationError",
    "CacheUnavailableError",
    "SerializationError",
]
