"""
Realtime WebSocket Gateway

Serves one WebSocket per viewer. Clients subscribe with control frames:

    {"event": "room.join",  "data": {"type": "kitchen", "id": "B1"}}
    {"event": "room.leave", "data": {"type": "kitchen", "id": "B1"}}
    {"event": "ping"}

and receive `room.joined` / `room.left` acknowledgments naming the
resolved room, `pong`, or an `error` event for malformed requests. Order
events arrive as `{"event", "room", "data"}` frames.

No session continuity exists across reconnects: a client that reconnects
re-issues its joins and reconciles through a full read.
"""

import asyncio
import json
import logging
from contextlib import suppress
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from orderhub.core.exceptions import ValidationError
from orderhub.services.realtime.registry import Connection, ConnectionRegistry
from orderhub.services.realtime.rooms import parse_room_request

logger = logging.getLogger(__name__)

JOIN = "room.join"
LEAVE = "room.leave"


def error_frame(message: str) -> dict[str, Any]:
    return {"event": "error", "room": None, "data": {"message": message}}


class RealtimeGateway:
    """Binds WebSocket transports to the connection registry."""

    def __init__(self, registry: ConnectionRegistry, queue_size: int = 100):
        self.registry = registry
        self.queue_size = queue_size

    async def serve(self, websocket: WebSocket) -> None:
        """Run one connection until the client disconnects."""
        await websocket.accept()

        connection = Connection(websocket.send_json, max_queue=self.queue_size)
        self.registry.register(connection)
        sender = asyncio.create_task(connection.run_sender())

        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))

                raw = message.get("text")
                if raw is None:
                    connection.enqueue(error_frame("Message must be text JSON"))
                    continue
                self.handle_message(connection, raw)
        except WebSocketDisconnect as e:
            logger.info(f"Socket {connection.id} closed by client (code={e.code})")
        finally:
            connection.close()
            self.registry.disconnect(connection)
            sender.cancel()
            with suppress(asyncio.CancelledError):
                await sender

    def handle_message(self, connection: Connection, raw: str) -> None:
        """Apply one client control frame."""
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            connection.enqueue(error_frame("Message must be valid JSON"))
            return

        if not isinstance(message, dict):
            connection.enqueue(error_frame("Message must be a JSON object"))
            return

        event = message.get("event")
        # {type, id} may be sent inside "data" or at the top level
        data = message.get("data", message)

        if event == "ping":
            connection.enqueue({"event": "pong", "room": None, "data": {}})
            return

        if event not in (JOIN, LEAVE):
            logger.warning(f"Unknown event from {connection.id}: {event!r}")
            connection.enqueue(error_frame(f"Unknown event: {event}"))
            return

        try:
            room = parse_room_request(data)
        except ValidationError as e:
            logger.warning(f"Invalid {event} request from {connection.id}: {e.message}")
            connection.enqueue(error_frame(e.message))
            return

        if event == JOIN:
            self.registry.join(connection, room)
            connection.enqueue({
                "event": "room.joined",
                "room": room,
                "data": {"room": room, "message": "Successfully joined room"},
            })
        else:
            self.registry.leave(connection, room)
            connection.enqueue({
                "event": "room.left",
                "room": room,
                "data": {"room": room},
            })
