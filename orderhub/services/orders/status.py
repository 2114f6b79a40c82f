"""
Order Status Service

Moves orders and their items through the workflow enforced by
OrderStateMachine. Each change is committed before its event is published.

Changes to one order are serialized by a per-order lock that is held
across the transaction and the publish, so events about the same order
are queued in commit order. When an order reaches a terminal status its
table is released, unless another open order still sits at that table.

Version: 1.0.0
"""

import asyncio
import logging
from typing import Optional, Union
from weakref import WeakValueDictionary

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from orderhub.core.config import Settings, get_settings
from orderhub.core.exceptions import NotFoundError
from orderhub.models import (
    Order,
    OrderItemStatus,
    OrderStatus,
    TableStatus,
    utcnow,
)
from orderhub.schemas import OrderSnapshot
from orderhub.services.cache.base import BaseCacheService
from orderhub.services.orders.effects import invalidate_quietly, order_cache_keys
from orderhub.services.orders.state_machine import (
    OrderStateMachine,
    parse_item_status,
    parse_order_status,
)
from orderhub.services.orders.store import OrderStore
from orderhub.services.realtime.hub import DispatchHub

logger = logging.getLogger(__name__)


class OrderStatusService:
    """Applies order-level and item-level status changes."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        hub: DispatchHub,
        cache: BaseCacheService,
        settings: Optional[Settings] = None,
    ):
        self.session_maker = session_maker
        self.hub = hub
        self.cache = cache
        self.settings = settings or get_settings()
        self.state_machine = OrderStateMachine(
            strict_items=self.settings.strict_item_transitions
        )
        self._locks: WeakValueDictionary[str, asyncio.Lock] = WeakValueDictionary()

    def _lock_for(self, order_id: str) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[order_id] = lock
        return lock

    # =========================================================================
    # ORDER STATUS
    # =========================================================================

    async def update_order_status(
        self,
        order_id: str,
        status: Union[str, OrderStatus],
        notes: Optional[str] = None,
    ) -> OrderSnapshot:
        """
        Move an order to a new status.

        Args:
            order_id: Order to update
            status: Target status
            notes: Optional note, appended to the order notes

        Returns:
            OrderSnapshot after the change

        Raises:
            ValidationError: Unknown status value
            NotFoundError: Order does not exist
            InvalidTransitionError: Move is not legal from the current status
        """
        target = parse_order_status(status)

        async with self._lock_for(order_id):
            async with self.session_maker() as session:
                async with session.begin():
                    store = OrderStore(session)
                    order = await store.get_order(order_id, for_update=True)
                    if order is None:
                        raise NotFoundError("Order", order_id)

                    previous = order.status
                    self.state_machine.check_order_transition(
                        previous, target, items_ready=order.items_ready
                    )

                    now = utcnow()
                    order.status = target
                    order.updated_at = now
                    if notes:
                        order.notes = self._append_note(order.notes, target, notes)

                    if target == OrderStatus.COMPLETED:
                        order.completed_at = now
                    elif target == OrderStatus.CANCELLED:
                        order.cancelled_at = now

                    if order.is_terminal:
                        await self._release_table(store, order)

                snapshot = OrderSnapshot.from_order(order)

            logger.info(
                f"📋 Order {snapshot.order_number}: {previous.value} -> {target.value}"
            )
            self._publish(snapshot, previous)

        await invalidate_quietly(
            self.cache,
            *order_cache_keys(snapshot.id, snapshot.table_id, snapshot.branch_id),
        )
        return snapshot

    @staticmethod
    def _append_note(existing: Optional[str], status: OrderStatus, note: str) -> str:
        label = "Cancelled" if status == OrderStatus.CANCELLED else status.value.capitalize()
        line = f"{label}: {note}"
        return f"{existing}\n{line}" if existing else line

    @staticmethod
    async def _release_table(store: OrderStore, order: Order) -> None:
        table = await store.lock_table(order.table_id)
        if table is None or table.status != TableStatus.OCCUPIED:
            return

        remaining = await store.count_active_orders(order.table_id, exclude_order_id=order.id)
        if remaining:
            logger.info(
                f"Table {table.table_number} stays occupied ({remaining} open orders)"
            )
            return

        table.status = TableStatus.AVAILABLE
        logger.info(f"🪑 Table {table.table_number} released")

    # =========================================================================
    # ITEM STATUS
    # =========================================================================

    async def update_item_status(
        self,
        order_id: str,
        item_id: str,
        status: Union[str, OrderItemStatus],
    ) -> OrderSnapshot:
        """
        Move one order item to a new status.

        Returns:
            OrderSnapshot after the change, with items_ready recomputed

        Raises:
            ValidationError: Unknown status value
            NotFoundError: Order or item does not exist
            InvalidTransitionError: Move is not legal, or the order is closed
        """
        target = parse_item_status(status)

        async with self._lock_for(order_id):
            async with self.session_maker() as session:
                async with session.begin():
                    store = OrderStore(session)
                    order = await store.get_order(order_id, for_update=True)
                    if order is None:
                        raise NotFoundError("Order", order_id)

                    item = next((i for i in order.items if i.id == item_id), None)
                    if item is None:
                        raise NotFoundError("Order item", item_id)

                    previous = item.status
                    self.state_machine.check_item_transition(
                        previous, target, order_status=order.status
                    )

                    now = utcnow()
                    item.status = target
                    item.updated_at = now
                    order.updated_at = now

                snapshot = OrderSnapshot.from_order(order)

            logger.info(
                f"🍳 Order {snapshot.order_number} item {item_id}: "
                f"{previous.value} -> {target.value}"
            )
            self._publish(snapshot, previous, item_id=item_id)

        await invalidate_quietly(
            self.cache,
            *order_cache_keys(snapshot.id, snapshot.table_id, snapshot.branch_id),
        )
        return snapshot

    def _publish(
        self,
        snapshot: OrderSnapshot,
        previous,
        item_id: Optional[str] = None,
    ) -> None:
        item = snapshot.item(item_id) if item_id else None
        try:
            self.hub.publish_status_changed(
                snapshot, previous, item=item, timestamp=snapshot.updated_at
            )
        except Exception:
            logger.exception(f"⚠️ Failed to publish status change for {snapshot.order_number}")
