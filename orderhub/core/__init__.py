"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from orderhub.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from orderhub.core.exceptions import (
    OrderHubError,
    ValidationError,
    InvalidTableError,
    NotFoundError,
    ProductUnavailableError,
    InvalidTransitionError,
    TransactionError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "OrderHubError",
    "ValidationError",
    "InvalidTableError",
    "NotFoundError",
    "ProductUnavailableError",
    "InvalidTransitionError",
    "TransactionError",
]
