"""
Event Sink - Ordered, non-blocking delivery of game events.

The turn loop reports through the synchronous EventSink interface and never
waits on the network. EventDispatcher queues those reports and a single
consumer task forwards them to a Broadcaster in order.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import asyncio
from typing import Any, Optional, TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from ..engine_core.move import Move, MoveOutcome
    from ..engine_core.snapshot import StateSnapshot
    from ..engine_core.state import Side
    from .broadcast import Broadcaster, EventName

logger = structlog.get_logger()


class EventSink(ABC):
    """Receives turn loop events. Calls must return without blocking."""

    @abstractmethod
    def on_state_changed(self, snapshot: StateSnapshot):
        pass

    @abstractmethod
    def on_dice_rolled(self, side: Side, raw_roll: int):
        pass

    @abstractmethod
    def on_move_made(self, move: Move, outcome: MoveOutcome):
        pass

    @abstractmethod
    def on_turn_forfeited(self, side: Side):
        pass

    @abstractmethod
    def on_game_over(self, winner: Side):
        pass

    def on_error(self, message: str):
        pass


_CLOSE = object()


class EventDispatcher(EventSink):
    """
    Queues events for one room and pumps them to a Broadcaster.

    Usage:
        dispatcher = EventDispatcher(broadcaster, group=code)
        dispatcher.start()
        dispatcher.on_dice_rolled(Side.ONE, 3)   # returns immediately
        ...
        await dispatcher.aclose()                # drains the queue

    A delivery that raises is logged and skipped; later events still go out.
    """

    def __init__(self, broadcaster: Broadcaster, group: str):
        self.broadcaster = broadcaster
        self.group = group
        self.last_snapshot: Optional[StateSnapshot] = None
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    def start(self):
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._pump())

    @property
    def is_closed(self) -> bool:
        return self._closed

    # -------------------------------------------------------------------------
    # EventSink
    # -------------------------------------------------------------------------

    def on_state_changed(self, snapshot):
        self.last_snapshot = snapshot
        self._enqueue("state_changed", self.group, snapshot)

    def on_dice_rolled(self, side, raw_roll):
        self._enqueue("dice_rolled", self.group, side, raw_roll)

    def on_move_made(self, move, outcome):
        self._enqueue("move_made", self.group, move, outcome)

    def on_turn_forfeited(self, side):
        self._enqueue("turn_forfeited", self.group, side)

    def on_game_over(self, winner):
        self._enqueue("game_over", self.group, winner)

    def on_error(self, message):
        self._enqueue("error", self.group, message)

    # -------------------------------------------------------------------------
    # Room events
    # -------------------------------------------------------------------------

    def game_starting(self, side_one_name: str, side_two_name: str, ruleset_name: str):
        self._enqueue("game_starting", self.group, side_one_name, side_two_name, ruleset_name)

    def send(self, connection_id: str, event: EventName, payload: Optional[Any] = None):
        self._enqueue("send", connection_id, event, payload)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self):
        """Stop accepting events; the pump exits after draining the queue."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSE)

    async def aclose(self):
        self.close()
        if self._task is not None:
            await self._task

    def _enqueue(self, method: str, *args):
        if self._closed:
            logger.debug("event dropped after close", group=self.group, method=method)
            return
        self._queue.put_nowait((method, args))

    async def _pump(self):
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            method, args = item
            try:
                await getattr(self.broadcaster, method)(*args)
            except Exception:
                logger.warning("event delivery failed", group=self.group, method=method, exc_info=True)
