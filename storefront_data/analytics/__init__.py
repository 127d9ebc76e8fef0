"""
Dashboard analytics.
"""

from .aggregation import (
    BRANCHES,
    AggregationEngine,
    AnalyticsSnapshot,
    ProductStats,
    RevenueStats,
    UserStats,
)

__all__ = [
    "BRANCHES",
    "AggregationEngine",
    "AnalyticsSnapshot",
    "ProductStats",
    "RevenueStats",
    "UserStats",
]
