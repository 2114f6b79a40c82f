"""
Mock Cache Invalidation Service

Records invalidated keys in memory for development and tests.
No Redis or Celery needed.

Version: 1.0.0
"""

import logging

from orderhub.services.cache.base import BaseCacheService

logger = logging.getLogger(__name__)


class MockCacheService(BaseCacheService):
    """In-memory cache invalidation for development."""

    def __init__(self):
        self.invalidated: list[str] = []
        logger.info("MockCacheService initialized")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def invalidate(self, *keys: str) -> None:
        self.invalidated.extend(keys)
        logger.debug(f"Mock cache invalidated: {', '.join(keys)}")

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
