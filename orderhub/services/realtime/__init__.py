"""
Realtime Module

Connection registry, room naming, the dispatch hub and the WebSocket
gateway that binds viewers to rooms.

Usage:
    registry = ConnectionRegistry()
    hub = DispatchHub(registry)
    hub.publish_order_created(snapshot)
"""

from orderhub.services.realtime.gateway import RealtimeGateway
from orderhub.services.realtime.hub import (
    DispatchHub,
    ITEM_STATUS_CHANGED,
    ORDER_CREATED,
    ORDER_STATUS_CHANGED,
)
from orderhub.services.realtime.registry import Connection, ConnectionRegistry
from orderhub.services.realtime.rooms import (
    RoomType,
    branch_room,
    kitchen_room,
    order_room,
    parse_room_request,
    room_name,
    table_room,
)

__all__ = [
    "RealtimeGateway",
    "DispatchHub",
    "ORDER_CREATED",
    "ORDER_STATUS_CHANGED",
    "ITEM_STATUS_CHANGED",
    "Connection",
    "ConnectionRegistry",
    "RoomType",
    "room_name",
    "kitchen_room",
    "branch_room",
    "table_room",
    "order_room",
    "parse_room_request",
]
