"""
Order Store

Session-bound access to the orders / order_items pair and the table
occupancy column. Every write goes through the caller's transaction; the
store never commits on its own.
"""

import secrets
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderhub.models import (
    TERMINAL_ORDER_STATUSES,
    DiningTable,
    Order,
    OrderStatus,
    TableStatus,
)

CENT = Decimal("0.01")

KITCHEN_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING)


def money(value: Decimal) -> Decimal:
    """Quantize to 2 places, half up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def generate_order_number(now: datetime) -> str:
    """
    Human-readable order number: ORD-YYYYMMDD-HHMMSSmmm-XXXXXX.

    The millisecond timestamp alone collides under concurrent creation, so a
    random 24-bit suffix is appended. The column is still unique-constrained.
    """
    millis = now.microsecond // 1000
    return (
        f"ORD-{now:%Y%m%d}-{now:%H%M%S}{millis:03d}-"
        f"{secrets.token_hex(3).upper()}"
    )


class OrderStore:
    """Durable order rows and table occupancy."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def add(self, order: Order) -> None:
        self.session.add(order)

    async def get_order(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        """Load an order with its items and table."""
        query = (
            select(Order)
            .options(selectinload(Order.items), selectinload(Order.table))
            .where(Order.id == order_id)
        )
        if for_update:
            query = query.with_for_update(of=Order)

        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def lock_table(self, table_id: str) -> Optional[DiningTable]:
        result = await self.session.execute(
            select(DiningTable).where(DiningTable.id == table_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def set_table_status(self, table_id: str, status: TableStatus) -> None:
        await self.session.execute(
            update(DiningTable)
            .where(DiningTable.id == table_id)
            .values(status=status)
        )

    async def count_active_orders(
        self,
        table_id: str,
        exclude_order_id: Optional[str] = None,
    ) -> int:
        """Orders on a table that have not reached a terminal status."""
        query = select(func.count(Order.id)).where(
            Order.table_id == table_id,
            Order.status.not_in(list(TERMINAL_ORDER_STATUSES)),
        )
        if exclude_order_id is not None:
            query = query.where(Order.id != exclude_order_id)

        result = await self.session.execute(query)
        return result.scalar() or 0

    async def list_orders(
        self,
        branch_id: Optional[str] = None,
        table_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[int, list[Order]]:
        """Paginated orders, newest first."""
        query = select(Order).options(selectinload(Order.items), selectinload(Order.table))
        count_query = select(func.count(Order.id))

        filters = []
        if branch_id:
            filters.append(Order.branch_id == branch_id)
        if table_id:
            filters.append(Order.table_id == table_id)
        if status:
            filters.append(Order.status == status)

        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        total_result = await self.session.execute(count_query)
        total = total_result.scalar() or 0

        result = await self.session.execute(
            query.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        )
        return total, list(result.scalars().all())

    async def kitchen_orders(self, branch_id: str) -> list[Order]:
        """Orders the kitchen still has to work on, oldest first."""
        result = await self.session.execute(
            select(Order)
            .options(selectinload(Order.items), selectinload(Order.table))
            .where(
                Order.branch_id == branch_id,
                Order.status.in_(KITCHEN_STATUSES),
            )
            .order_by(Order.created_at.asc())
        )
        return list(result.scalars().all())
