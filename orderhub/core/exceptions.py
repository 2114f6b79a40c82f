"""
Order Hub Error Taxonomy

Every business-rule failure raised by the order core derives from
OrderHubError. Each error carries a machine-readable code and the HTTP
status the REST layer answers with.

    ValidationError          400  malformed / missing fields
      InvalidTableError      400  placeholder or mismatched table id
    NotFoundError            404  table / order / item does not exist
    ProductUnavailableError  409  product cannot be ordered
    InvalidTransitionError   409  illegal state-machine move
    TransactionError         500  underlying store failure

Version: 1.0.0
"""

from typing import Any, Optional


class OrderHubError(Exception):
    """Base class for all order core errors."""

    code = "ORDER_HUB_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": False,
            "error": self.code,
            "detail": self.message,
        }


class ValidationError(OrderHubError):
    """Malformed or missing required fields (user-correctable)."""

    code = "VALIDATION_ERROR"
    status_code = 400


class InvalidTableError(ValidationError):
    """Table id is a known placeholder or does not match the given branch."""

    code = "INVALID_TABLE"

    def __init__(self, table_id: str, reason: Optional[str] = None):
        message = reason or (
            f"Invalid table_id: {table_id}. Please scan the QR code to get a valid table ID."
        )
        super().__init__(message, {"table_id": table_id})
        self.table_id = table_id


class NotFoundError(OrderHubError):
    """Table, order or item does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        else:
            message = f"{resource} not found"
        super().__init__(message, {"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id


class ProductUnavailableError(OrderHubError):
    """The named product cannot be ordered."""

    code = "PRODUCT_UNAVAILABLE"
    status_code = 409

    def __init__(self, product: str, reason: str = "is not available"):
        super().__init__(f'Product "{product}" {reason}', {"product": product})
        self.product = product


class InvalidTransitionError(OrderHubError):
    """Requested status change is not a legal state-machine move."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(
        self,
        entity: str,
        current: Any,
        target: Any,
        reason: Optional[str] = None,
    ):
        current_value = getattr(current, "value", current)
        target_value = getattr(target, "value", target)
        message = f"Cannot move {entity} from '{current_value}' to '{target_value}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            {"entity": entity, "current": current_value, "target": target_value},
        )
        self.current = current
        self.target = target


class TransactionError(OrderHubError):
    """Underlying store failure. Not user-correctable."""

    code = "TRANSACTION_ERROR"
    status_code = 500

    def __init__(self, message: str = "The order could not be saved. Please try again."):
        super().__init__(message)
