"""
Cache Invalidation Service Factory

Returns Mock or Celery-backed cache invalidation based on ENV_MODE.

Usage:
    from orderhub.services.cache import build_cache_service

    cache = build_cache_service(settings)
    await cache.invalidate("table:T1", "active_orders:B1")
"""

import logging
from typing import Optional

from orderhub.core.config import Settings, get_settings
from orderhub.services.cache.base import (
    BaseCacheService,
    active_orders_key,
    order_key,
    table_key,
)
from orderhub.services.cache.mock import MockCacheService

logger = logging.getLogger(__name__)


def build_cache_service(settings: Optional[Settings] = None) -> BaseCacheService:
    """Create the cache invalidation service for the configured mode."""
    settings = settings or get_settings()

    if not settings.use_real_services:
        logger.info("Cache Service: Using MockCacheService (development mode)")
        return MockCacheService()

    # Celery is only imported when real services are in use
    from orderhub.services.cache.real import CeleryCacheService

    logger.info(f"Cache Service: Using CeleryCacheService ({settings.env_mode.value} mode)")
    return CeleryCacheService(settings)


__all__ = [
    "build_cache_service",
    "BaseCacheService",
    "MockCacheService",
    "table_key",
    "order_key",
    "active_orders_key",
]
