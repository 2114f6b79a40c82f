"""
Dispatch Hub

Publishes order events to the rooms derived from an order's table, branch
and id. The hub only ever targets rooms; there is no broadcast to every
connection.

Fan-out:
    order.created          -> branch:{branch}, kitchen:{branch}
    order.status_changed   -> table:{table}, branch:{branch}, order:{order}
    item.status_changed    -> table:{table}, branch:{branch}, kitchen:{branch}, order:{order}

Delivery is best-effort and at-most-once. Publishing only enqueues frames
on each member connection, so it never blocks the caller, and two events
about the same order published in commit order reach any one room in
that order.

Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from orderhub.models import OrderItemStatus, OrderStatus
from orderhub.schemas import (
    ItemStatusChanged,
    OrderItemSnapshot,
    OrderSnapshot,
    OrderStatusChanged,
)
from orderhub.services.realtime.registry import ConnectionRegistry
from orderhub.services.realtime.rooms import (
    branch_room,
    kitchen_room,
    order_room,
    table_room,
)

logger = logging.getLogger(__name__)


# Event catalog
ORDER_CREATED = "order.created"
ORDER_STATUS_CHANGED = "order.status_changed"
ITEM_STATUS_CHANGED = "item.status_changed"


class DispatchHub:
    """Targeted room publisher shared by every component that emits events."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def publish(self, event: str, room: str, payload: dict[str, Any]) -> int:
        """
        Queue one event for every connection currently in a room.

        Returns:
            Number of connections the event was queued for
        """
        message = {"event": event, "room": room, "data": payload}
        delivered = 0

        for connection in self.registry.members_of(room):
            if connection.enqueue(message):
                delivered += 1

        logger.debug(f"Published {event} to {room} ({delivered} connections)")
        return delivered

    def publish_order_created(self, order: OrderSnapshot) -> dict[str, int]:
        """Announce a new order to the branch dashboards and the kitchen."""
        payload = order.model_dump(mode="json")
        rooms = [branch_room(order.branch_id), kitchen_room(order.branch_id)]

        result = {room: self.publish(ORDER_CREATED, room, payload) for room in rooms}

        logger.info(
            f"🔥 {ORDER_CREATED} {order.order_number} -> "
            + ", ".join(f"{room} ({count})" for room, count in result.items())
        )
        return result

    def publish_status_changed(
        self,
        order: OrderSnapshot,
        previous_status: Any,
        item: Optional[OrderItemSnapshot] = None,
        timestamp: Optional[datetime] = None,
    ) -> dict[str, int]:
        """
        Announce an order-level or, when `item` is given, an item-level
        status change.

        Args:
            order: Snapshot taken after the change was committed
            previous_status: Status of the order (or item) before the change
            item: The changed item for item-level updates
            timestamp: When the change was committed
        """
        timestamp = timestamp or datetime.now(timezone.utc)
        rooms = [table_room(order.table_id), branch_room(order.branch_id)]

        if item is None:
            event = ORDER_STATUS_CHANGED
            payload = OrderStatusChanged(
                order_id=order.id,
                order_number=order.order_number,
                table_id=order.table_id,
                branch_id=order.branch_id,
                status=order.status,
                previous_status=OrderStatus(previous_status),
                items_ready=order.items_ready,
                timestamp=timestamp,
            )
        else:
            event = ITEM_STATUS_CHANGED
            payload = ItemStatusChanged.from_item(
                order,
                item,
                OrderItemStatus(previous_status),
                timestamp,
            )
            rooms.append(kitchen_room(order.branch_id))

        rooms.append(order_room(order.id))
        data = payload.model_dump(mode="json")

        result = {room: self.publish(event, room, data) for room in rooms}

        logger.info(
            f"📣 {event} {order.order_number} -> "
            + ", ".join(f"{room} ({count})" for room, count in result.items())
        )
        return result
