"""
Connection Hub - WebSocket registry and the Broadcaster built on it.

Every accepted socket gets a connection id. Rooms are groups of connection
ids; a group send goes to each member independently so one dead socket
never stops delivery to the others.
"""

from __future__ import annotations
from typing import Any, Optional
import uuid

import structlog
from fastapi import WebSocket

from ..session.broadcast import Broadcaster, EventName

logger = structlog.get_logger()


def event_message(event: EventName, payload: Optional[Any] = None) -> dict[str, Any]:
    return {"type": event.value, "payload": payload}


class ConnectionHub:
    """Open sockets by connection id, plus group membership."""

    def __init__(self):
        self._sockets: dict[str, WebSocket] = {}
        self._groups: dict[str, set[str]] = {}

    def register(self, websocket: WebSocket) -> str:
        connection_id = uuid.uuid4().hex
        self._sockets[connection_id] = websocket
        return connection_id

    def unregister(self, connection_id: str):
        self._sockets.pop(connection_id, None)
        for members in self._groups.values():
            members.discard(connection_id)
        self._groups = {g: m for g, m in self._groups.items() if m}

    def add_to_group(self, connection_id: str, group: str):
        self._groups.setdefault(group, set()).add(connection_id)

    def remove_from_group(self, connection_id: str, group: str):
        members = self._groups.get(group)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._groups[group]

    def members(self, group: str) -> list[str]:
        return sorted(self._groups.get(group, ()))

    def __len__(self) -> int:
        return len(self._sockets)

    async def send(self, connection_id: str, message: dict[str, Any]) -> bool:
        """Send to one socket. False if it is gone or the send failed."""
        websocket = self._sockets.get(connection_id)
        if websocket is None:
            return False
        try:
            await websocket.send_json(message)
        except Exception:
            logger.warning("websocket send failed", connection_id=connection_id)
            return False
        return True

    async def send_group(self, group: str, message: dict[str, Any]) -> int:
        """Send to every member of a group. Returns the number delivered."""
        delivered = 0
        for connection_id in self.members(group):
            if await self.send(connection_id, message):
                delivered += 1
        return delivered


class HubBroadcaster(Broadcaster):
    """Broadcaster that serializes game events as JSON messages."""

    def __init__(self, hub: ConnectionHub):
        self.hub = hub

    async def state_changed(self, group, snapshot):
        await self.hub.send_group(group, event_message(EventName.STATE_CHANGED, snapshot.to_dict()))

    async def dice_rolled(self, group, side, raw_roll):
        await self.hub.send_group(
            group,
            event_message(EventName.DICE_ROLLED, {"side": side.value, "roll": raw_roll}),
        )

    async def move_made(self, group, move, outcome):
        await self.hub.send_group(
            group,
            event_message(
                EventName.MOVE_MADE,
                {"move": move.to_dict(), "outcome": outcome.to_dict()},
            ),
        )

    async def turn_forfeited(self, group, side):
        await self.hub.send_group(group, event_message(EventName.TURN_FORFEITED, {"side": side.value}))

    async def game_over(self, group, winner):
        await self.hub.send_group(group, event_message(EventName.GAME_OVER, {"winner": winner.value}))

    async def error(self, group, message):
        await self.hub.send_group(group, event_message(EventName.ERROR, {"message": message}))

    async def game_starting(self, group, side_one_name, side_two_name, ruleset_name):
        await self.hub.send_group(
            group,
            event_message(
                EventName.GAME_STARTING,
                {
                    "side_one_name": side_one_name,
                    "side_two_name": side_two_name,
                    "ruleset_name": ruleset_name,
                },
            ),
        )

    async def send(self, connection_id, event, payload=None):
        await self.hub.send(connection_id, event_message(event, payload))

    async def add_to_group(self, connection_id, group):
        self.hub.add_to_group(connection_id, group)

    async def remove_from_group(self, connection_id, group):
        self.hub.remove_from_group(connection_id, group)
