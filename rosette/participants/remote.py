"""
Remote participant - A move source backed by a network connection.

The orchestrator awaits choose_move / should_skip; the transport resolves
those awaits by calling submit_move / submit_skip when the client answers.

Rules:
- At most one request is outstanding at a time
- A submission is accepted only if it matches the outstanding request
  exactly; anything else is rejected and changes nothing
- A timeout started with each request only notifies (opponent slow); it
  never resolves or cancels the request
- cancel() fails the outstanding request with RequestCancelled and every
  later request immediately
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING

import structlog

from ..engine_core.errors import ProtocolViolation, RequestCancelled
from .base import SkipCapableParticipant

if TYPE_CHECKING:
    from ..engine_core.move import Move
    from ..session.clock import Clock, TimerHandle

logger = structlog.get_logger()


class RequestKind(Enum):
    MOVE = "move"
    SKIP = "skip"


@dataclass(frozen=True)
class PendingRequest:
    """What the remote client is being asked to answer."""
    kind: RequestKind
    legal_moves: tuple[Move, ...]
    roll: int


RequestCallback = Callable[["RemoteParticipant", PendingRequest], None]


class RemoteParticipant(SkipCapableParticipant):
    """
    Participant whose answers arrive from a remote client.

    connection_id is rebound when the client reconnects; callbacks read it
    at call time.
    """

    def __init__(
        self,
        name: str,
        connection_id: str,
        clock: Clock,
        move_timeout: float = 60.0,
        on_request: Optional[RequestCallback] = None,
        on_timeout: Optional[RequestCallback] = None,
    ):
        super().__init__(name)
        self.connection_id = connection_id
        self.clock = clock
        self.move_timeout = move_timeout
        self.on_request = on_request
        self.on_timeout = on_timeout

        self._pending: Optional[PendingRequest] = None
        self._future: Optional[asyncio.Future] = None
        self._timer: Optional[TimerHandle] = None
        self._closed = False

    # -------------------------------------------------------------------------
    # ParticipantSource
    # -------------------------------------------------------------------------

    async def choose_move(self, board, legal_moves, roll):
        return await self._request(RequestKind.MOVE, legal_moves, roll)

    async def should_skip(self, board, legal_moves, roll):
        return await self._request(RequestKind.SKIP, legal_moves, roll)

    # -------------------------------------------------------------------------
    # Transport side
    # -------------------------------------------------------------------------

    @property
    def pending_request(self) -> Optional[PendingRequest]:
        return self._pending

    @property
    def is_awaiting_move(self) -> bool:
        return self._pending is not None and self._pending.kind is RequestKind.MOVE

    @property
    def is_awaiting_skip(self) -> bool:
        return self._pending is not None and self._pending.kind is RequestKind.SKIP

    @property
    def is_closed(self) -> bool:
        return self._closed

    def submit_move(self, move: Move) -> bool:
        """Resolve the outstanding move request. False if move is not offered."""
        if not self.is_awaiting_move or self._future.done():
            return False
        if move not in self._pending.legal_moves:
            return False
        self._resolve(move)
        return True

    def submit_skip(self, skip: bool) -> bool:
        """Answer the outstanding skip question. False if none is outstanding."""
        if not self.is_awaiting_skip or self._future.done():
            return False
        self._resolve(bool(skip))
        return True

    def cancel(self):
        """Fail the outstanding request and refuse all later ones. Idempotent."""
        self._closed = True
        future = self._future
        self._clear()
        if future is not None and not future.done():
            future.set_exception(RequestCancelled(f"{self.name}: request cancelled"))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _request(self, kind: RequestKind, legal_moves, roll: int):
        if self._closed:
            raise RequestCancelled(f"{self.name}: participant closed")
        if self._future is not None and not self._future.done():
            raise ProtocolViolation(f"{self.name}: a request is already outstanding")

        future = asyncio.get_running_loop().create_future()
        pending = PendingRequest(kind=kind, legal_moves=tuple(legal_moves), roll=roll)
        self._future = future
        self._pending = pending
        if self.move_timeout > 0:
            self._timer = self.clock.call_later(self.move_timeout, self._fire_timeout)

        if self.on_request is not None:
            self.on_request(self, pending)

        try:
            return await future
        finally:
            if self._future is future:
                self._clear()

    def _resolve(self, value):
        future = self._future
        self._clear()
        future.set_result(value)

    def _clear(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None
        self._future = None

    def _fire_timeout(self):
        self._timer = None
        pending = self._pending
        if pending is None:
            return
        logger.info("remote participant slow", participant=self.name, kind=pending.kind.value)
        if self.on_timeout is not None:
            self.on_timeout(self, pending)
