"""
FastAPI Dependencies for STOREFRONT_DATA

The application's lifespan handler opens a ``StorefrontDataService`` and
stores it on ``app.state.data_service``; route handlers receive it (or its
cache) through these dependencies.

Usage:
    from contextlib import asynccontextmanager
    from fastapi import Depends, FastAPI
    from storefront_data import StorefrontDataService
    from storefront_data.dependencies import get_data_service

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with StorefrontDataService() as service:
            app.state.data_service = service
            yield

    app = FastAPI(lifespan=lifespan)

    @app.get("/api/health")
    async def health(data: StorefrontDataService = Depends(get_data_service)):
        return await data.health_check()
"""

import logging
from typing import TYPE_CHECKING

from fastapi import HTTPException, Request

if TYPE_CHECKING:
    from .cache import CacheStore
    from .core.service import StorefrontDataService

logger = logging.getLogger(__name__)


async def get_data_service(request: Request) -> "StorefrontDataService":
    """Get the StorefrontDataService instance from app state."""
    service = getattr(request.app.state, "data_service", None)
    if not service:
        raise HTTPException(503, "Data service not initialized")
    if not service.opened:
        raise HTTPException(503, "Data service not open")
    return service


async def get_cache_store(request: Request) -> "CacheStore":
    """
    Get the cache store. Available even when Redis is down; the store then
    behaves as an always-miss pass-through.
    """
    service = await get_data_service(request)
    return service.cache
