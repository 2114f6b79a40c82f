"""
Promotions Collaborator

Supplies the discount applied to an order. The default service grants
none; whatever a promotion engine returns is clamped to [0, subtotal] by
the order transaction manager so totals can never go negative.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Sequence

from orderhub.services.catalog.base import ProductInfo


class BasePromotionService(ABC):
    """Computes an order-level discount."""

    @abstractmethod
    async def discount_for(
        self,
        subtotal: Decimal,
        lines: Sequence[tuple[ProductInfo, int]],
        branch_id: str,
        customer_id: Optional[str] = None,
    ) -> Decimal:
        """Return the discount amount for the given priced lines."""
        pass


class NoPromotionService(BasePromotionService):
    """No promotions configured."""

    async def discount_for(
        self,
        subtotal: Decimal,
        lines: Sequence[tuple[ProductInfo, int]],
        branch_id: str,
        customer_id: Optional[str] = None,
    ) -> Decimal:
        return Decimal("0")
