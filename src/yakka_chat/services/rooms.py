"""In-process room registry for realtime chat sockets."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class EventSocket(Protocol):
    """Minimal interface the relay needs from a connected client."""

    sid: str

    async def emit(self, event: str, data: dict[str, Any]) -> None: ...


class RoomManager:
    """Maps each chat id to the sockets currently joined to it.

    All access happens on the event loop thread, so no locking is needed.
    """

    def __init__(self) -> None:
        self._rooms: dict[str, dict[str, EventSocket]] = defaultdict(dict)

    def join(self, room: str, socket: EventSocket) -> None:
        self._rooms[room][socket.sid] = socket

    def leave(self, room: str, socket: EventSocket) -> None:
        members = self._rooms.get(room)
        if members is None:
            return
        members.pop(socket.sid, None)
        if not members:
            del self._rooms[room]

    def members(self, room: str) -> list[EventSocket]:
        return list(self._rooms.get(room, {}).values())

    async def emit_to_room(
        self,
        room: str,
        event: str,
        data: dict[str, Any],
        *,
        skip: EventSocket | None = None,
    ) -> int:
        """Send an event to everyone in ``room`` except ``skip``.

        Returns:
            Number of sockets the event was delivered to.
        """
        delivered = 0
        for member in self.members(room):
            if skip is not None and member.sid == skip.sid:
                continue
            try:
                await member.emit(event, data)
            except Exception as err:  # noqa: BLE001 - a dead peer must not break the sender
                logger.info("Dropping socket %s from room %s: %s", member.sid, room, err)
                self.leave(room, member)
                continue
            delivered += 1
        return delivered
