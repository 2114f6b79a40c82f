"""
Post-commit side effects.

Run only after the order transaction has committed. A failure here never
reverses the commit; it is logged and the request still succeeds.
"""

import logging

from orderhub.services.cache.base import (
    BaseCacheService,
    active_orders_key,
    order_key,
    table_key,
)

logger = logging.getLogger(__name__)


def order_cache_keys(order_id: str, table_id: str, branch_id: str) -> list[str]:
    """Cache keys touched by any write to an order."""
    return [table_key(table_id), order_key(order_id), active_orders_key(branch_id)]


async def invalidate_quietly(cache: BaseCacheService, *keys: str) -> None:
    try:
        await cache.invalidate(*keys)
    except Exception:
        logger.exception(f"⚠️ Cache invalidation failed for {', '.join(keys)}")
