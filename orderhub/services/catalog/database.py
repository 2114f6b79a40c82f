"""
Database-backed Catalog Lookup and Table Directory

Both read through the AsyncSession of the caller's transaction.

Version: 1.0.0
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderhub.models import DiningTable, Product, ProductStatus
from orderhub.services.catalog.base import (
    BaseCatalogService,
    BaseTableDirectory,
    ProductInfo,
    TableInfo,
)

logger = logging.getLogger(__name__)


class DatabaseCatalogService(BaseCatalogService):
    """Catalog lookup over the `products` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_product(self, product_id: str) -> Optional[ProductInfo]:
        result = await self.session.execute(
            select(Product).where(Product.id == product_id)
        )
        product = result.scalar_one_or_none()

        if product is None:
            logger.debug(f"Product {product_id} not found in catalog")
            return None

        return ProductInfo(
            id=product.id,
            name=product.name,
            price=product.price,
            available=product.status == ProductStatus.AVAILABLE,
            branch_id=product.branch_id,
        )


class DatabaseTableDirectory(BaseTableDirectory):
    """Table directory over the `tables` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_table(self, table_id: str, lock: bool = False) -> Optional[TableInfo]:
        query = select(DiningTable).where(DiningTable.id == table_id)
        if lock:
            query = query.with_for_update()

        result = await self.session.execute(query)
        table = result.scalar_one_or_none()

        if table is None:
            return None

        return TableInfo(
            id=table.id,
            branch_id=table.branch_id,
            table_number=table.table_number,
            status=table.status.value,
        )
