"""
Cache Invalidation Service Abstract Base Class

Read caches (menu, tables, active orders) are kept correct by telling this
collaborator which keys a completed mutation touched. Invalidation is
best-effort: callers log and swallow failures.

Version: 1.0.0
"""

from abc import ABC, abstractmethod


def table_key(table_id: str) -> str:
    return f"table:{table_id}"


def order_key(order_id: str) -> str:
    return f"order:{order_id}"


def active_orders_key(branch_id: str) -> str:
    return f"active_orders:{branch_id}"


class BaseCacheService(ABC):
    """Abstract base class for cache invalidation services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def invalidate(self, *keys: str) -> None:
        """Drop the given cache keys."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
