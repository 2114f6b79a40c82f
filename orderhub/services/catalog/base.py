"""
Catalog Lookup and Table Directory Interfaces

The order core consumes the menu catalog and the table registry through
these narrow contracts only. Both return plain result objects so callers
never depend on how the catalog or the registry is stored.

Design Pattern: Strategy Pattern
    - Implementations are bound to the session of the order transaction,
      so prices and table rows are read inside the same transaction that
      writes the order.

Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class ProductInfo:
    """
    Catalog view of a product.

    Attributes:
        id: Product identifier
        name: Display name snapshotted onto order items
        price: Live unit price
        available: Whether the product can be ordered right now
        branch_id: Branch the product is sold at (None = every branch)
    """
    id: str
    name: str
    price: Decimal
    available: bool
    branch_id: Optional[str] = None

    def sold_at(self, branch_id: str) -> bool:
        return self.branch_id is None or self.branch_id == branch_id


@dataclass(frozen=True)
class TableInfo:
    """Table registry view of a dining table."""
    id: str
    branch_id: str
    table_number: str
    status: str


class BaseCatalogService(ABC):
    """Resolves product id -> name, price, availability."""

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[ProductInfo]:
        """
        Look up a product.

        Returns:
            ProductInfo, or None when the product does not exist
        """
        pass


class BaseTableDirectory(ABC):
    """Resolves table id -> branch and occupancy status."""

    @abstractmethod
    async def get_table(self, table_id: str, lock: bool = False) -> Optional[TableInfo]:
        """
        Look up a table.

        Args:
            table_id: Table identifier
            lock: Hold a row lock on the table until the transaction ends

        Returns:
            TableInfo, or None when the table does not exist
        """
        pass
