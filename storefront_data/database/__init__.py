"""
Database layer.

Connection pool lifecycle and product query construction.
"""

from .connection import ConnectionPoolManager, ConnectionState
from .query_builder import FilterCriteria, build_product_query

__all__ = [
    "ConnectionPoolManager",
    "ConnectionState",
    "FilterCriteria",
    "build_product_query",
]
