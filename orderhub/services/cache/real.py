"""
Real Cache Invalidation Service

Production implementation: key deletion is handed to a Celery worker
(Redis broker), which retries on Redis errors without holding up the
request that triggered the invalidation.

Version: 1.0.0
"""

import asyncio
import logging

import redis.asyncio as aioredis

from orderhub.core.config import Settings
from orderhub.services.cache.base import BaseCacheService
from orderhub.tasks import invalidate_cache_keys

logger = logging.getLogger(__name__)


class CeleryCacheService(BaseCacheService):
    """Cache invalidation through the Celery worker."""

    def __init__(self, settings: Settings):
        self.redis_url = settings.redis_url
        logger.info("CeleryCacheService initialized")

    @property
    def provider_name(self) -> str:
        return "celery"

    async def invalidate(self, *keys: str) -> None:
        if not keys:
            return
        # apply_async talks to the broker synchronously
        result = await asyncio.to_thread(
            invalidate_cache_keys.apply_async,
            args=[list(keys)],
            retry=False,
        )
        logger.debug(f"Queued cache invalidation {result.id}: {', '.join(keys)}")

    async def health_check(self) -> bool:
        client = aioredis.from_url(self.redis_url, socket_timeout=2)
        try:
            return bool(await client.ping())
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return False
        finally:
            await client.aclose()
