"""Socket registry and fan-out for the realtime channel.

Frames are JSON objects ``{"event": <name>, "data": <payload>}`` in both directions. A socket
opened with a user id is joined to the room ``user:<id>`` on connect. Delivery is best effort:
nothing is stored or replayed, and a socket whose send fails is dropped from the registry.

Route handlers run in worker threads while the sockets belong to the event loop, so the sync
``dispatch_*`` entry points hand the send coroutine over to that loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
import uuid
from collections import defaultdict
from collections.abc import Coroutine
from dataclasses import dataclass, field
from typing import Any, Protocol

from goodcall.metrics import observe_realtime_event, set_realtime_connections


logger = logging.getLogger("goodcall.realtime")


class SocketLike(Protocol):
    async def send_json(self, data: Any, mode: str = "text") -> None: ...


@dataclass
class Connection:
    socket_id: str
    websocket: SocketLike
    user_id: str | None
    rooms: set[str] = field(default_factory=set)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


class RealtimeHub:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)
        self._loop: asyncio.AbstractEventLoop | None = None

    def _join(self, connection: Connection, room: str) -> None:
        with self._lock:
            self._rooms[room].add(connection.socket_id)
            connection.rooms.add(room)

    def _leave(self, connection: Connection, room: str) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(connection.socket_id)
                if not members:
                    del self._rooms[room]
            connection.rooms.discard(room)

    def _room_members(self, room: str) -> list[Connection]:
        with self._lock:
            return [self._connections[sid] for sid in self._rooms.get(room, ()) if sid in self._connections]

    def _all_connections(self) -> list[Connection]:
        with self._lock:
            return list(self._connections.values())

    async def connect(self, websocket: SocketLike, user_id: str | None) -> Connection:
        self._loop = asyncio.get_running_loop()
        connection = Connection(socket_id=uuid.uuid4().hex, websocket=websocket, user_id=user_id or None)
        with self._lock:
            self._connections[connection.socket_id] = connection
            count = len(self._connections)
        set_realtime_connections(count)

        # anonymous sockets still receive broadcasts but get no room and no greeting
        if not connection.user_id:
            logger.info("realtime.connected_anonymous", extra={"socket_id": connection.socket_id})
            return connection

        self._join(connection, user_room(connection.user_id))
        logger.info("realtime.connected", extra={"socket_id": connection.socket_id, "user_id": connection.user_id})
        await self._send(
            connection,
            "connected",
            {
                "message": "Conectado al servidor de notificaciones",
                "socketId": connection.socket_id,
                "userId": connection.user_id,
            },
        )
        return connection

    def disconnect(self, socket_id: str) -> None:
        with self._lock:
            connection = self._connections.pop(socket_id, None)
            if connection is None:
                return
            for room in connection.rooms:
                members = self._rooms.get(room)
                if members is not None:
                    members.discard(socket_id)
                    if not members:
                        del self._rooms[room]
            connection.rooms.clear()
            count = len(self._connections)

        set_realtime_connections(count)
        logger.info("realtime.disconnected", extra={"socket_id": socket_id, "user_id": connection.user_id})

    def stats(self, connection: Connection) -> dict[str, Any]:
        with self._lock:
            connected_users = {conn.user_id for conn in self._connections.values() if conn.user_id}
            return {
                "connected": True,
                "rooms": sorted(connection.rooms),
                "userId": connection.user_id,
                "connectedUsers": len(connected_users),
            }

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    async def _send(self, connection: Connection, event: str, data: Any) -> bool:
        try:
            await connection.websocket.send_json({"event": event, "data": data})
        except Exception as exc:
            logger.warning(
                "realtime.send_failed",
                extra={"socket_id": connection.socket_id, "event_name": event, "error": str(exc)},
            )
            self.disconnect(connection.socket_id)
            return False
        return True

    async def handle_message(self, connection: Connection, raw: str) -> None:
        try:
            message = json.loads(raw)
        except ValueError:
            await self._send(connection, "error", {"message": "Invalid JSON frame"})
            return
        if not isinstance(message, dict):
            await self._send(connection, "error", {"message": "Frames must be JSON objects"})
            return

        event = message.get("event")
        data = message.get("data") if isinstance(message.get("data"), dict) else {}
        room = data.get("room")

        if event == "join-room" and isinstance(room, str) and room:
            self._join(connection, room)
            logger.debug("realtime.room_joined", extra={"socket_id": connection.socket_id, "room": room})
            await self._send(connection, "room-joined", {"room": room})
        elif event == "leave-room" and isinstance(room, str) and room:
            self._leave(connection, room)
            await self._send(connection, "room-left", {"room": room})
        elif event == "get-stats":
            await self._send(connection, "stats", self.stats(connection))
        else:
            await self._send(connection, "error", {"message": f"Unsupported event: {event}"})

    async def emit_to_room(self, room: str, event: str, data: Any) -> int:
        delivered = 0
        for connection in self._room_members(room):
            if await self._send(connection, event, data):
                delivered += 1
        observe_realtime_event(event, "room")
        return delivered

    async def emit_to_user(self, user_id: str, event: str, data: Any) -> int:
        return await self.emit_to_room(user_room(user_id), event, data)

    async def broadcast(self, event: str, data: Any) -> int:
        delivered = 0
        for connection in self._all_connections():
            if await self._send(connection, event, data):
                delivered += 1
        observe_realtime_event(event, "all")
        return delivered

    def _schedule(self, coro: Coroutine[Any, Any, int]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed() or self.connection_count() == 0:
            coro.close()
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            loop.create_task(coro)
        else:
            asyncio.run_coroutine_threadsafe(coro, loop)

    def dispatch_to_user(self, user_id: str, event: str, data: Any) -> None:
        self._schedule(self.emit_to_user(user_id, event, data))

    def dispatch_broadcast(self, event: str, data: Any) -> None:
        self._schedule(self.broadcast(event, data))

    def reset(self) -> None:
        with self._lock:
            self._connections.clear()
            self._rooms.clear()
        self._loop = None
        set_realtime_connections(0)


hub = RealtimeHub()
