"""
Cache layer.

Best-effort Redis cache plus the shared key/TTL conventions.
"""

from .keys import CacheKeys, CacheTTL
from .store import CacheStore

__all__ = ["CacheKeys", "CacheTTL", "CacheStore"]
