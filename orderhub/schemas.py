"""
Pydantic Schemas for Request/Response Validation

- Order creation requests (snake_case or camelCase keys)
- Status change requests for orders and items
- Order Snapshot: the fully denormalized order sent to viewers
- Realtime event payloads

Version: 1.0.0
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from orderhub.models import (
    Order,
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
)


class RequestModel(BaseModel):
    """Accepts both `table_id` and `tableId` style keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class OrderItemCreate(RequestModel):
    """Single item in an order. Prices always come from the catalog."""
    product_id: str = Field(..., min_length=1, max_length=36, examples=["prod-pho-bo"])
    quantity: int = Field(..., ge=1, le=999, examples=[2])
    notes: Optional[str] = Field(None, max_length=200, examples=["No spicy"])


class OrderCreate(RequestModel):
    """Request schema for creating a new order."""
    table_id: str = Field(..., min_length=1, max_length=36, examples=["T1"])
    branch_id: Optional[str] = Field(None, max_length=36, examples=["B1"])
    customer_id: Optional[str] = Field(None, max_length=36)
    items: List[OrderItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(RequestModel):
    """Staff request to move an order through its workflow."""
    status: OrderStatus
    notes: Optional[str] = Field(None, max_length=500, examples=["Customer left"])


class ItemStatusUpdate(RequestModel):
    """Kitchen request to move one item through its workflow."""
    status: OrderItemStatus


# =============================================================================
# ORDER SNAPSHOT
# =============================================================================

class OrderItemSnapshot(BaseModel):
    """Order line as shown to viewers."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    status: OrderItemStatus
    notes: Optional[str] = None


class OrderSnapshot(BaseModel):
    """
    Fully denormalized, self-contained order.

    Carries everything a kitchen display or table tracker needs, so
    consumers never issue a follow-up read.
    """
    id: str
    order_number: str
    table_id: str
    table_number: Optional[str] = None
    branch_id: str
    customer_id: Optional[str] = None
    items: List[OrderItemSnapshot]
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    payment_status: PaymentStatus
    status: OrderStatus
    items_ready: bool
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Order, table_number: Optional[str] = None) -> "OrderSnapshot":
        """
        Build a snapshot from an order whose items are loaded.

        The table relationship is only read when `table_number` is not given.
        """
        if table_number is None and order.table is not None:
            table_number = order.table.table_number
        return cls(
            id=order.id,
            order_number=order.order_number,
            table_id=order.table_id,
            table_number=table_number,
            branch_id=order.branch_id,
            customer_id=order.customer_id,
            items=[OrderItemSnapshot.model_validate(item) for item in order.items],
            subtotal=order.subtotal,
            discount=order.discount,
            tax=order.tax,
            total=order.total,
            payment_status=order.payment_status,
            status=order.status,
            items_ready=order.items_ready,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
        )

    def item(self, item_id: str) -> Optional[OrderItemSnapshot]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class KitchenOrder(OrderSnapshot):
    """Order as shown on a kitchen display, with its waiting time."""
    elapsed_minutes: int = Field(..., ge=0, description="Whole minutes since the order was placed")

    @classmethod
    def from_order(
        cls,
        order: Order,
        table_number: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> "KitchenOrder":
        snapshot = OrderSnapshot.from_order(order, table_number=table_number)
        now = now or datetime.now(timezone.utc)
        created_at = snapshot.created_at
        if created_at.tzinfo is None:
            # SQLite hands back naive datetimes; they are stored as UTC
            created_at = created_at.replace(tzinfo=timezone.utc)
        elapsed = max(int((now - created_at).total_seconds() // 60), 0)
        return cls(**snapshot.model_dump(), elapsed_minutes=elapsed)


# =============================================================================
# REALTIME EVENT PAYLOADS
# =============================================================================

class OrderStatusChanged(BaseModel):
    """Payload of `order.status_changed`."""
    order_id: str
    order_number: str
    table_id: str
    branch_id: str
    status: OrderStatus
    previous_status: OrderStatus
    items_ready: bool
    timestamp: datetime


class ItemStatusChanged(BaseModel):
    """Payload of `item.status_changed`."""
    order_id: str
    item_id: str
    product_name: str
    table_id: str
    branch_id: str
    status: OrderItemStatus
    previous_status: OrderItemStatus
    items_ready: bool
    timestamp: datetime

    @classmethod
    def from_item(
        cls,
        order: OrderSnapshot,
        item: OrderItemSnapshot,
        previous_status: OrderItemStatus,
        timestamp: datetime,
    ) -> "ItemStatusChanged":
        return cls(
            order_id=order.id,
            item_id=item.id,
            product_name=item.product_name,
            table_id=order.table_id,
            branch_id=order.branch_id,
            status=item.status,
            previous_status=previous_status,
            items_ready=order.items_ready,
            timestamp=timestamp,
        )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrderListResponse(BaseModel):
    """Response for listing multiple orders."""
    total: int
    orders: List[OrderSnapshot]


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    cache_service: str
    connections: int
    rooms: int
    timestamp: datetime
