"""
Broadcaster - Outbound event interface to connected clients.

Group events go to everyone in a room (the group is the room code).
Targeted events go to a single connection.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..engine_core.move import Move, MoveOutcome
    from ..engine_core.snapshot import StateSnapshot
    from ..engine_core.state import Side


class EventName(str, Enum):
    """Event names as they appear on the wire."""
    STATE_CHANGED = "state_changed"
    DICE_ROLLED = "dice_rolled"
    MOVE_MADE = "move_made"
    TURN_FORFEITED = "turn_forfeited"
    GAME_OVER = "game_over"
    ERROR = "error"
    GAME_STARTING = "game_starting"
    MOVE_REQUIRED = "move_required"
    SKIP_REQUIRED = "skip_required"
    OPPONENT_JOINED = "opponent_joined"
    OPPONENT_SLOW = "opponent_slow"
    OPPONENT_RECONNECTING = "opponent_reconnecting"
    OPPONENT_RECONNECTED = "opponent_reconnected"
    OPPONENT_DISCONNECTED = "opponent_disconnected"


class Broadcaster(ABC):
    """
    Fire-and-forget delivery of game events.

    Implementations must not raise for a single unreachable recipient.
    """

    @abstractmethod
    async def state_changed(self, group: str, snapshot: StateSnapshot):
        pass

    @abstractmethod
    async def dice_rolled(self, group: str, side: Side, raw_roll: int):
        pass

    @abstractmethod
    async def move_made(self, group: str, move: Move, outcome: MoveOutcome):
        pass

    @abstractmethod
    async def turn_forfeited(self, group: str, side: Side):
        pass

    @abstractmethod
    async def game_over(self, group: str, winner: Side):
        pass

    @abstractmethod
    async def error(self, group: str, message: str):
        pass

    @abstractmethod
    async def game_starting(
        self,
        group: str,
        side_one_name: str,
        side_two_name: str,
        ruleset_name: str,
    ):
        pass

    @abstractmethod
    async def send(self, connection_id: str, event: EventName, payload: Optional[Any] = None):
        """Deliver one event to one connection."""
        pass

    async def add_to_group(self, connection_id: str, group: str):
        pass

    async def remove_from_group(self, connection_id: str, group: str):
        pass
