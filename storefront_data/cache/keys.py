"""
Cache key and TTL conventions.

Other components read and write these keys directly (cache-aside), so the
names must not change. Keys for one entity family share a ``<family>:``
prefix so ``CacheKeys.family`` can invalidate all of them at once.
"""

from ..constants import (
    ANALYTICS_TTL,
    CATEGORIES_TTL,
    GALLERY_TTL,
    PRODUCT_TTL,
    PRODUCTS_TTL,
    USER_TTL,
)


class CacheKeys:
    PRODUCTS = "products"
    CATEGORIES = "categories"
    ANALYTICS = "analytics:dashboard"
    GALLERY = "gallery"

    @staticmethod
    def product(product_id: object) -> str:
        return f"product:{product_id}"

    @staticmethod
    def user(user_id: object) -> str:
        return f"user:{user_id}"

    @staticmethod
    def family(name: str) -> str:
        """Glob matching every key of an entity family, e.g. ``product:*``."""
        return f"{name}:*"


class CacheTTL:
    """Seconds before each entity family expires."""

    PRODUCTS = PRODUCTS_TTL
    PRODUCT = PRODUCT_TTL
    CATEGORIES = CATEGORIES_TTL
    ANALYTICS = ANALYTICS_TTL
    USER = USER_TTL
    GALLERY = GALLERY_TTL
