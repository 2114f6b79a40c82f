"""
Catalog Lookup / Table Directory

Usage:
    from orderhub.services.catalog import DatabaseCatalogService

    catalog = DatabaseCatalogService(session)
    product = await catalog.get_product("prod-pho-bo")
"""

from orderhub.services.catalog.base import (
    BaseCatalogService,
    BaseTableDirectory,
    ProductInfo,
    TableInfo,
)
from orderhub.services.catalog.database import (
    DatabaseCatalogService,
    DatabaseTableDirectory,
)

__all__ = [
    "BaseCatalogService",
    "BaseTableDirectory",
    "ProductInfo",
    "TableInfo",
    "DatabaseCatalogService",
    "DatabaseTableDirectory",
]
