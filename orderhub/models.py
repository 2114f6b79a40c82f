"""
SQLAlchemy Database Models

Durable state owned by the order core:
- orders / order_items: the atomic order write
- tables: table registry carrying the occupancy status
- products: catalog rows read by the catalog lookup

Version: 1.0.0
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from orderhub.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


MONEY = Numeric(12, 2)


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderItemStatus(str, enum.Enum):
    """Kitchen workflow for a single order line."""
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    SERVED = "served"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class TableStatus(str, enum.Enum):
    """Occupancy of a dining table."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class ProductStatus(str, enum.Enum):
    AVAILABLE = "available"
    OUT_OF_STOCK = "out_of_stock"
    DISCONTINUED = "discontinued"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


class DiningTable(Base):
    """
    Table registry row.

    Only the status column is written by the order core; everything else
    belongs to table management.
    """
    __tablename__ = "tables"

    id = Column(String(36), primary_key=True, default=new_id)
    branch_id = Column(String(36), nullable=False, index=True)
    table_number = Column(String(20), nullable=False)
    capacity = Column(Integer, nullable=True)
    status = Column(
        Enum(TableStatus),
        default=TableStatus.AVAILABLE,
        nullable=False,
    )
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<DiningTable {self.table_number} ({self.branch_id}) - {self.status.value}>"


class Product(Base):
    """Catalog row. branch_id is None for products sold at every branch."""
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    branch_id = Column(String(36), nullable=True, index=True)
    name = Column(String(150), nullable=False)
    price = Column(MONEY, nullable=False)
    status = Column(
        Enum(ProductStatus),
        default=ProductStatus.AVAILABLE,
        nullable=False,
    )

    def __repr__(self):
        return f"<Product {self.name} - {self.price}>"


class Order(Base):
    """
    Main Order table.

    Invariants:
        total == subtotal - discount + tax, total >= 0
        subtotal == sum(item.subtotal for item in items)

    Rows are never deleted; completed and cancelled orders are retained.
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(String(36), primary_key=True, default=new_id)
    order_number = Column(String(40), nullable=False, unique=True, index=True)

    # =========================================================================
    # PLACEMENT
    # =========================================================================
    table_id = Column(String(36), ForeignKey("tables.id"), nullable=False, index=True)
    branch_id = Column(String(36), nullable=False, index=True)
    customer_id = Column(String(36), nullable=True, index=True)
    notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(MONEY, nullable=False, default=Decimal("0"))
    discount = Column(MONEY, nullable=False, default=Decimal("0"))
    tax = Column(MONEY, nullable=False, default=Decimal("0"))
    total = Column(MONEY, nullable=False, default=Decimal("0"))

    # =========================================================================
    # STATUS
    # =========================================================================
    payment_status = Column(
        Enum(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )
    table = relationship("DiningTable")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    @property
    def items_ready(self) -> bool:
        """Every item is ready or served. Derived, never stored."""
        return bool(self.items) and all(
            item.status in (OrderItemStatus.READY, OrderItemStatus.SERVED)
            for item in self.items
        )

    def __repr__(self):
        return f"<Order {self.order_number} - table {self.table_id} - {self.status.value}>"


class OrderItem(Base):
    """
    One line of an order.

    product_name and unit_price are snapshots taken when the order was
    placed; later catalog changes never touch them.
    """
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    product_id = Column(String(36), nullable=False)
    product_name = Column(String(150), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)
    subtotal = Column(MONEY, nullable=False)
    notes = Column(Text, nullable=True)

    status = Column(
        Enum(OrderItemStatus),
        default=OrderItemStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.quantity}x {self.product_name} - {self.status.value}>"
