"""
Core data access components.

``StorefrontDataService`` is the facade and composition root of the layer.
"""

from .service import StorefrontDataService, product_id_query

__all__ = ["StorefrontDataService", "product_id_query"]
