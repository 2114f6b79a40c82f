"""
Celery Tasks
Background tasks that keep read caches consistent with the order store.
"""

import logging
import time

import redis

from orderhub.celery_worker import celery_app, settings

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=2,
    autoretry_for=(redis.RedisError,),
    retry_backoff=True,
)
def invalidate_cache_keys(self, keys: list[str]) -> dict:
    """
    Delete cache keys touched by an order mutation.

    Args:
        keys: Cache keys such as "table:{id}" or "active_orders:{branch}"

    Returns:
        dict: Number of keys removed and timing information
    """
    task_id = self.request.id
    start_time = time.time()

    client = redis.Redis.from_url(settings.redis_url, socket_timeout=5)
    try:
        removed = client.delete(*keys) if keys else 0
    finally:
        client.close()

    elapsed = round(time.time() - start_time, 3)
    logger.info(f"Task {task_id}: invalidated {removed}/{len(keys)} keys in {elapsed}s")

    return {
        "task_id": task_id,
        "keys": keys,
        "removed": removed,
        "processing_time_seconds": elapsed,
    }

