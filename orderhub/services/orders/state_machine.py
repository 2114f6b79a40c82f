"""
Order State Machine

Order workflow:

    pending -> confirmed -> preparing -> ready -> served -> completed
        \\__________\\___________\\_________\\________\\-----> cancelled

Orders move one step forward at a time; `cancelled` is reachable from any
non-terminal status. `completed` and `cancelled` are terminal. An order may
only become `ready` once every item is `ready` or `served`.

Item workflow:

    pending -> preparing -> ready -> served

In strict mode items move one step at a time. In lenient mode any forward
jump is allowed (e.g. pending -> ready as a start+finish shortcut). Backward
and same-state moves are always rejected, and items of an order in a
terminal status are frozen.
"""

from typing import Union

from orderhub.core.exceptions import InvalidTransitionError, ValidationError
from orderhub.models import (
    TERMINAL_ORDER_STATUSES,
    OrderItemStatus,
    OrderStatus,
)

ORDER_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.COMPLETED,
)

ITEM_FLOW = (
    OrderItemStatus.PENDING,
    OrderItemStatus.PREPARING,
    OrderItemStatus.READY,
    OrderItemStatus.SERVED,
)


def parse_order_status(value: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        valid = [s.value for s in OrderStatus]
        raise ValidationError(f"Invalid order status '{value}'. Options: {valid}")


def parse_item_status(value: Union[str, OrderItemStatus]) -> OrderItemStatus:
    try:
        return OrderItemStatus(value)
    except ValueError:
        valid = [s.value for s in OrderItemStatus]
        raise ValidationError(f"Invalid item status '{value}'. Options: {valid}")


class OrderStateMachine:
    """Legal status transitions for orders and order items."""

    def __init__(self, strict_items: bool = True):
        self.strict_items = strict_items

    # =========================================================================
    # ORDERS
    # =========================================================================

    @staticmethod
    def is_terminal(status: OrderStatus) -> bool:
        return status in TERMINAL_ORDER_STATUSES

    def order_targets(self, current: OrderStatus) -> frozenset[OrderStatus]:
        """Statuses an order in `current` may move to."""
        if self.is_terminal(current):
            return frozenset()

        index = ORDER_FLOW.index(current)
        return frozenset({ORDER_FLOW[index + 1], OrderStatus.CANCELLED})

    def check_order_transition(
        self,
        current: OrderStatus,
        target: OrderStatus,
        items_ready: bool = True,
    ) -> None:
        """
        Validate an order-level move.

        Args:
            current: Current order status
            target: Requested status
            items_ready: Whether every item is ready or served

        Raises:
            InvalidTransitionError: The move is not legal
        """
        if self.is_terminal(current):
            raise InvalidTransitionError("order", current, target, "order is already closed")

        if target not in self.order_targets(current):
            raise InvalidTransitionError("order", current, target)

        if target == OrderStatus.READY and not items_ready:
            raise InvalidTransitionError(
                "order", current, target, "all items must be ready or served first"
            )

    # =========================================================================
    # ITEMS
    # =========================================================================

    def item_targets(self, current: OrderItemStatus) -> frozenset[OrderItemStatus]:
        """Statuses an item in `current` may move to."""
        index = ITEM_FLOW.index(current)
        if self.strict_items:
            return frozenset(ITEM_FLOW[index + 1:index + 2])
        return frozenset(ITEM_FLOW[index + 1:])

    def check_item_transition(
        self,
        current: OrderItemStatus,
        target: OrderItemStatus,
        order_status: OrderStatus = OrderStatus.PENDING,
    ) -> None:
        """
        Validate an item-level move.

        Raises:
            InvalidTransitionError: The move is not legal or the order is closed
        """
        if self.is_terminal(order_status):
            raise InvalidTransitionError(
                "item", current, target, f"order is already {order_status.value}"
            )

        if target not in self.item_targets(current):
            reason = None
            if self.strict_items and ITEM_FLOW.index(target) > ITEM_FLOW.index(current):
                required = ITEM_FLOW[ITEM_FLOW.index(current) + 1]
                reason = f"'{required.value}' is required first"
            raise InvalidTransitionError("item", current, target, reason)
