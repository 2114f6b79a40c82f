"""
Room Naming

Rooms are plain string keys built from a type tag and an id. The scheme is
a wire-level convention shared with every viewer:

    kitchen:{branchId}   kitchen display clients
    branch:{branchId}    manager / admin dashboards
    table:{tableId}      customer-facing order tracker
    order:{orderId}      single-order detail view
"""

from enum import Enum
from typing import Any

from orderhub.core.exceptions import ValidationError


class RoomType(str, Enum):
    KITCHEN = "kitchen"
    BRANCH = "branch"
    TABLE = "table"
    ORDER = "order"


def room_name(room_type: RoomType, room_id: Any) -> str:
    return f"{RoomType(room_type).value}:{room_id}"


def kitchen_room(branch_id: str) -> str:
    return room_name(RoomType.KITCHEN, branch_id)


def branch_room(branch_id: str) -> str:
    return room_name(RoomType.BRANCH, branch_id)


def table_room(table_id: str) -> str:
    return room_name(RoomType.TABLE, table_id)


def order_room(order_id: str) -> str:
    return room_name(RoomType.ORDER, order_id)


def parse_room_request(data: Any) -> str:
    """
    Resolve a client `{type, id}` join/leave request to a room name.

    Raises:
        ValidationError: Missing type or id, or an unknown room type
    """
    if not isinstance(data, dict):
        raise ValidationError("Room request must be an object with 'type' and 'id'")

    raw_type = data.get("type")
    raw_id = data.get("id")

    if raw_type is None or raw_id is None:
        raise ValidationError("Type and ID are required")

    if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)):
        raise ValidationError("Room ID must be a string or an integer")

    room_id = str(raw_id).strip()
    if not room_id:
        raise ValidationError("Type and ID are required")

    try:
        room_type = RoomType(str(raw_type).strip().lower())
    except ValueError:
        valid = [t.value for t in RoomType]
        raise ValidationError(f"Unknown room type: {raw_type}. Must be one of: {valid}")

    return room_name(room_type, room_id)
