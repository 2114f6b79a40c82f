"""
Order core: atomic creation, status workflow and post-commit effects.

Usage:
    from orderhub.services.orders import OrderTransactionManager

    manager = OrderTransactionManager(session_maker, hub, cache, settings)
    snapshot = await manager.create_order("T1", [{"product_id": "P1", "quantity": 2}])
"""

from orderhub.services.orders.manager import OrderTransactionManager
from orderhub.services.orders.state_machine import (
    ITEM_FLOW,
    ORDER_FLOW,
    OrderStateMachine,
    parse_item_status,
    parse_order_status,
)
from orderhub.services.orders.status import OrderStatusService
from orderhub.services.orders.store import OrderStore, generate_order_number, money

__all__ = [
    "OrderTransactionManager",
    "OrderStatusService",
    "OrderStateMachine",
    "OrderStore",
    "ORDER_FLOW",
    "ITEM_FLOW",
    "parse_order_status",
    "parse_item_status",
    "generate_order_number",
    "money",
]
