"""
Room - One two-player game session.

LIFECYCLE:
1. Host creates the room (LOBBY), seat one is filled
2. Exactly one guest joins
3. Host starts the game (ACTIVE) - happens at most once
4. The turn loop ends on a win, a stop, or a crash (FINISHED)
5. FINISHED is terminal: timers disposed, participants closed, seats
   never reused, completion callback fired exactly once

DISCONNECTS:
- While ACTIVE a dropped seat gets a grace period bound to its prior
  connection id; rejoining with the seat token cancels it
- Expiry is reported through on_grace_period_expired; the owner decides
  how to tear down
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from enum import Enum
import secrets
import threading
from typing import Any, Callable, Optional, TYPE_CHECKING

import structlog

from ..engine_core.dice import CoinDice
from ..engine_core.engine import TurnEngine
from ..engine_core.errors import RequestCancelled
from ..engine_core.state import Side
from ..participants.remote import PendingRequest, RemoteParticipant, RequestKind
from .broadcast import EventName
from .clock import SystemClock
from .events import EventDispatcher
from .game_loop import TurnOrchestrator

if TYPE_CHECKING:
    from ..engine_core.dice import Dice
    from ..engine_core.rules import RuleSet
    from ..engine_core.snapshot import StateSnapshot
    from .broadcast import Broadcaster
    from .clock import Clock, TimerHandle

logger = structlog.get_logger()


class SessionPhase(Enum):
    """Lifecycle phase of a room."""
    LOBBY = "lobby"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass
class Seat:
    """A filled participant slot."""
    name: str
    participant: RemoteParticipant
    token: str = field(default_factory=lambda: secrets.token_urlsafe(24))

    @property
    def connection_id(self) -> str:
        return self.participant.connection_id


@dataclass
class PendingDisconnect:
    """A seat waiting out its grace period."""
    side: Side
    prior_connection_id: str
    timer: TimerHandle
    started_at: float


def request_payload(pending: PendingRequest) -> dict[str, Any]:
    return {
        "moves": [m.to_dict() for m in pending.legal_moves],
        "roll": pending.roll,
    }


class Session:
    """
    A room and the game running in it.

    Usage:
        session = Session("ABCD", FINKEL, "Ann", "conn-1")
        session.try_join("Bob", "conn-2")
        session.start(broadcaster)       # from inside the event loop
        ...
        session.stop()
    """

    def __init__(
        self,
        code: str,
        ruleset: RuleSet,
        host_name: str,
        host_connection_id: str,
        clock: Optional[Clock] = None,
        grace_period: float = 30.0,
        move_timeout: float = 60.0,
        dice_factory: Optional[Callable[[RuleSet], Dice]] = None,
    ):
        self.code = code
        self.ruleset = ruleset
        self.clock = clock or SystemClock()
        self.grace_period = grace_period
        self.move_timeout = move_timeout
        self.dice_factory = dice_factory
        self.created_at = self.clock.now()

        self.phase = SessionPhase.LOBBY
        self.winner: Optional[Side] = None
        self.seats: dict[Side, Seat] = {Side.ONE: self._make_seat(host_name, host_connection_id)}

        self.on_completed: Optional[Callable[[str], None]] = None
        self.on_grace_period_expired: Optional[Callable[[str, str], None]] = None

        self.engine: Optional[TurnEngine] = None
        self.orchestrator: Optional[TurnOrchestrator] = None
        self._dispatcher: Optional[EventDispatcher] = None
        self._task: Optional[asyncio.Task] = None
        self._disconnects: dict[Side, PendingDisconnect] = {}
        self._lock = threading.Lock()
        self._completed = False

    # -------------------------------------------------------------------------
    # Seats
    # -------------------------------------------------------------------------

    def _make_seat(self, name: str, connection_id: str) -> Seat:
        participant = RemoteParticipant(
            name,
            connection_id,
            self.clock,
            move_timeout=self.move_timeout,
            on_request=self._on_request,
            on_timeout=self._on_timeout,
        )
        return Seat(name=name, participant=participant)

    @property
    def host(self) -> Seat:
        return self.seats[Side.ONE]

    @property
    def guest(self) -> Optional[Seat]:
        return self.seats.get(Side.TWO)

    @property
    def is_full(self) -> bool:
        return Side.TWO in self.seats

    def try_join(self, name: str, connection_id: str) -> bool:
        """Claim the guest seat. Exactly one caller ever succeeds."""
        with self._lock:
            if self.phase is not SessionPhase.LOBBY or Side.TWO in self.seats:
                return False
            self.seats[Side.TWO] = self._make_seat(name, connection_id)
        logger.info("guest joined", code=self.code, name=name)
        return True

    def side_of(self, connection_id: str) -> Optional[Side]:
        for side, seat in self.seats.items():
            if seat.connection_id == connection_id:
                return side
        return None

    def seat(self, side: Side) -> Optional[Seat]:
        return self.seats.get(side)

    def participant(self, side: Side) -> Optional[RemoteParticipant]:
        seat = self.seats.get(side)
        return seat.participant if seat else None

    def seat_by_token(self, token: str) -> Optional[Side]:
        for side, seat in self.seats.items():
            if secrets.compare_digest(seat.token, token):
                return side
        return None

    def rebind(self, side: Side, connection_id: str):
        """Point a seat at a new connection."""
        self.seats[side].participant.connection_id = connection_id

    @property
    def last_snapshot(self) -> Optional[StateSnapshot]:
        return self._dispatcher.last_snapshot if self._dispatcher else None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, broadcaster: Broadcaster) -> bool:
        """
        Move LOBBY -> ACTIVE and launch the turn loop.

        Returns False (and does nothing) without a guest or when the room
        has already started. Must be called from the running event loop.
        """
        with self._lock:
            if self.phase is not SessionPhase.LOBBY or not self.is_full:
                return False
            self.phase = SessionPhase.ACTIVE

        dice = self.dice_factory(self.ruleset) if self.dice_factory else CoinDice()
        self.engine = TurnEngine(self.ruleset, dice)
        self._dispatcher = EventDispatcher(broadcaster, self.code)
        self._dispatcher.start()
        self.orchestrator = TurnOrchestrator(
            self.engine,
            self.seats[Side.ONE].participant,
            self.seats[Side.TWO].participant,
            self._dispatcher,
        )

        self._dispatcher.game_starting(
            self.seats[Side.ONE].name,
            self.seats[Side.TWO].name,
            self.ruleset.name,
        )
        self._task = asyncio.get_running_loop().create_task(self._run())
        self._task.add_done_callback(lambda _: self._finish())
        logger.info("game started", code=self.code, ruleset=self.ruleset.name)
        return True

    def stop(self):
        """Cancel the loop, fail outstanding requests, dispose timers. Idempotent."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._finish()

    async def wait_finished(self):
        """Wait for the loop task and the event queue to wind down."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._dispatcher is not None:
            await self._dispatcher.aclose()

    async def _run(self):
        try:
            self.winner = await self.orchestrator.run()
            logger.info("game finished", code=self.code, winner=self.winner.value)
        except asyncio.CancelledError:
            logger.info("game loop cancelled", code=self.code)
            raise
        except RequestCancelled:
            logger.info("game loop stopped", code=self.code)
        except Exception as exc:
            logger.exception("game loop crashed", code=self.code)
            self._dispatcher.on_error(str(exc) or type(exc).__name__)

    def _finish(self):
        with self._lock:
            if self._completed:
                return
            self._completed = True
            self.phase = SessionPhase.FINISHED

        for pending in self._disconnects.values():
            pending.timer.cancel()
        self._disconnects.clear()
        for seat in self.seats.values():
            seat.participant.cancel()
        if self._dispatcher is not None:
            self._dispatcher.close()

        if self.on_completed is not None:
            self.on_completed(self.code)

    # -------------------------------------------------------------------------
    # Grace period
    # -------------------------------------------------------------------------

    def start_grace_period(self, connection_id: str) -> bool:
        """Begin the reconnection window for the seat bound to connection_id."""
        side = self.side_of(connection_id)
        if side is None or self.phase is not SessionPhase.ACTIVE:
            return False

        previous = self._disconnects.pop(side, None)
        if previous is not None:
            previous.timer.cancel()

        pending = PendingDisconnect(
            side=side,
            prior_connection_id=connection_id,
            timer=None,
            started_at=self.clock.now(),
        )
        pending.timer = self.clock.call_later(
            self.grace_period, lambda: self._grace_expired(pending)
        )
        self._disconnects[side] = pending
        logger.info("grace period started", code=self.code, side=side.value, seconds=self.grace_period)
        return True

    def cancel_grace_period(self, connection_id: str) -> bool:
        """Cancel the window started for connection_id. False if none is running."""
        for side, pending in list(self._disconnects.items()):
            if pending.prior_connection_id == connection_id:
                pending.timer.cancel()
                del self._disconnects[side]
                logger.info("grace period cancelled", code=self.code, side=side.value)
                return True
        return False

    def is_disconnected(self, side: Side) -> bool:
        return side in self._disconnects

    def _grace_expired(self, pending: PendingDisconnect):
        if self._disconnects.get(pending.side) is not pending:
            return
        del self._disconnects[pending.side]
        logger.info("grace period expired", code=self.code, side=pending.side.value)
        if self.on_grace_period_expired is not None:
            self.on_grace_period_expired(self.code, pending.prior_connection_id)

    # -------------------------------------------------------------------------
    # Targeted events
    # -------------------------------------------------------------------------

    def notify(self, side: Side, event: EventName, payload: Optional[Any] = None) -> bool:
        """Queue an event for one seat behind the game events already sent."""
        seat = self.seats.get(side)
        if seat is None or self._dispatcher is None or self._dispatcher.is_closed:
            return False
        self._dispatcher.send(seat.connection_id, event, payload)
        return True

    def replay_to(self, side: Side):
        """Resend the latest board and any outstanding request to a seat."""
        snapshot = self.last_snapshot
        if snapshot is not None:
            self.notify(side, EventName.STATE_CHANGED, snapshot.to_dict())
        pending = self.seats[side].participant.pending_request
        if pending is not None:
            self._on_request(self.seats[side].participant, pending)

    def _side_of_participant(self, participant: RemoteParticipant) -> Side:
        for side, seat in self.seats.items():
            if seat.participant is participant:
                return side
        raise KeyError(participant.name)

    def _on_request(self, participant: RemoteParticipant, pending: PendingRequest):
        event = (
            EventName.MOVE_REQUIRED
            if pending.kind is RequestKind.MOVE
            else EventName.SKIP_REQUIRED
        )
        self.notify(self._side_of_participant(participant), event, request_payload(pending))

    def _on_timeout(self, participant: RemoteParticipant, pending: PendingRequest):
        side = self._side_of_participant(participant)
        self.notify(
            side.opponent,
            EventName.OPPONENT_SLOW,
            {"side": side.value, "name": participant.name},
        )
