"""
Connection Registry / Room Membership

Tracks which live connections belong to which rooms. Membership is
ephemeral: it is created by explicit joins, dropped in one step on
disconnect, and never consulted for business state.

Each Connection owns a bounded outbound queue drained by a single sender
task, so:
    - events reach one connection in the order they were enqueued
    - a slow viewer fills only its own queue; overflow is dropped
    - publishing never waits on the network

All registry methods run on the event loop thread and never await.
"""

import asyncio
import logging
import uuid
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

SendFunc = Callable[[dict[str, Any]], Awaitable[None]]


class Connection:
    """A live viewer connection with its own outbound queue."""

    def __init__(
        self,
        send: SendFunc,
        max_queue: int = 100,
        connection_id: Optional[str] = None,
    ):
        self.id = connection_id or uuid.uuid4().hex[:12]
        self._send = send
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.dropped = 0
        self.closed = False

    def enqueue(self, message: dict[str, Any]) -> bool:
        """
        Queue a frame for delivery without waiting.

        Returns:
            False when the connection is closed or its queue is full
        """
        if self.closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"Connection {self.id} queue full, dropped '{message.get('event')}' "
                f"(dropped so far: {self.dropped})"
            )
            return False
        return True

    async def run_sender(self) -> None:
        """Drain the queue onto the transport until closed or the send fails."""
        while not self.closed:
            message = await self._queue.get()
            try:
                await self._send(message)
            except Exception as e:
                logger.info(f"Connection {self.id} send failed, stopping sender: {e}")
                self.closed = True

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self.closed = True

    def __repr__(self):
        return f"<Connection {self.id}>"


class ConnectionRegistry:
    """Room membership lookup: room -> connections, connection -> rooms."""

    def __init__(self):
        self._rooms: dict[str, set[Connection]] = {}
        self._memberships: dict[Connection, set[str]] = {}

    def register(self, connection: Connection) -> None:
        self._memberships.setdefault(connection, set())
        logger.info(f"🔌 Connection registered: {connection.id}")

    def join(self, connection: Connection, room: str) -> bool:
        """
        Add a connection to a room. Idempotent.

        Returns:
            True if the connection was not yet a member
        """
        rooms = self._memberships.setdefault(connection, set())
        if room in rooms:
            return False

        rooms.add(room)
        self._rooms.setdefault(room, set()).add(connection)
        logger.info(f"Connection {connection.id} joined room: {room}")
        return True

    def leave(self, connection: Connection, room: str) -> bool:
        """
        Remove a connection from a room.

        Returns:
            True if the connection was a member
        """
        rooms = self._memberships.get(connection)
        if not rooms or room not in rooms:
            return False

        rooms.discard(room)
        self._discard_member(room, connection)
        logger.info(f"Connection {connection.id} left room: {room}")
        return True

    def disconnect(self, connection: Connection) -> set[str]:
        """
        Forget a connection and every room it belonged to.

        Returns:
            The rooms the connection was removed from
        """
        rooms = self._memberships.pop(connection, set())
        for room in rooms:
            self._discard_member(room, connection)

        logger.info(f"❌ Connection {connection.id} disconnected (left {len(rooms)} rooms)")
        return rooms

    def members_of(self, room: str) -> frozenset[Connection]:
        return frozenset(self._rooms.get(room, ()))

    def rooms_of(self, connection: Connection) -> frozenset[str]:
        return frozenset(self._memberships.get(connection, ()))

    @property
    def connection_count(self) -> int:
        return len(self._memberships)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    def _discard_member(self, room: str, connection: Connection) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._rooms[room]
