"""
Room Service - Business logic layer between the transport and sessions.

The service:
1. Validates and routes room operations (create, join, start, submit)
2. Tracks which connection sits in which room, and seat tokens
3. Handles disconnects, grace-period expiry and reconnection
4. Removes rooms when their game ends

This layer is framework-agnostic: the WebSocket app maps messages onto
these calls, tests drive it directly with a recording broadcaster.
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, TYPE_CHECKING

import structlog

from ..config import Settings
from ..engine_core.rules import PRESETS, RuleSet, resolve_ruleset
from ..engine_core.state import Side
from ..session.broadcast import EventName
from ..session.manager import SessionRegistry
from ..session.room import SessionPhase
from .schemas import (
    MAX_PLAYER_NAME_LENGTH,
    CreateRoomResult,
    CustomRuleSet,
    ErrorCode,
    JoinRoomResult,
    OperationResult,
    RejoinResult,
    RoomStatusResponse,
    RuleSetInfo,
    SessionStatus,
)

if TYPE_CHECKING:
    from ..engine_core.dice import Dice
    from ..engine_core.move import Move
    from ..session.broadcast import Broadcaster
    from ..session.clock import Clock
    from ..session.room import Session

logger = structlog.get_logger()


def validate_player_name(name: Optional[str]) -> tuple[Optional[str], Optional[ErrorCode], str]:
    """Return (clean_name, error_code, message)."""
    clean = (name or "").strip()
    if not clean:
        return None, ErrorCode.NAME_REQUIRED, "Player name is required"
    if len(clean) > MAX_PLAYER_NAME_LENGTH:
        return (
            None,
            ErrorCode.NAME_TOO_LONG,
            f"Player name must be {MAX_PLAYER_NAME_LENGTH} characters or fewer",
        )
    return clean, None, ""


@dataclass
class RoomService:
    """
    Main room service.

    Usage:
        service = RoomService(broadcaster)

        created = await service.create_room("Ann", "conn-1", "Finkel")
        joined = await service.join_room(created.code, "Bob", "conn-2")
        await service.start_game(created.code, "conn-1")

        service.submit_move(created.code, "conn-1", move)
    """
    broadcaster: Broadcaster
    registry: SessionRegistry = field(default_factory=SessionRegistry)
    settings: Settings = field(default_factory=Settings)
    clock: Optional[Clock] = None
    dice_factory: Optional[Callable[[RuleSet], Dice]] = None

    # connection id -> room code
    _connections: dict[str, str] = field(default_factory=dict, init=False, repr=False)
    # session token -> (room code, side)
    _tokens: dict[str, tuple[str, Side]] = field(default_factory=dict, init=False, repr=False)
    _background: set = field(default_factory=set, init=False, repr=False)

    # =========================================================================
    # Rooms
    # =========================================================================

    async def create_room(
        self,
        player_name: str,
        connection_id: str,
        ruleset_name: str = "Finkel",
        custom_rules: Optional[CustomRuleSet] = None,
    ) -> CreateRoomResult:
        """Open a room with the caller as host (side one)."""
        name, code, message = validate_player_name(player_name)
        if code:
            return CreateRoomResult.failure(code, message)
        if connection_id in self._connections:
            return CreateRoomResult.failure(ErrorCode.ALREADY_IN_ROOM, "Already in a room")

        try:
            ruleset = custom_rules.to_ruleset() if custom_rules else resolve_ruleset(ruleset_name)
        except ValueError as e:
            error_code = ErrorCode.INVALID_RULESET if custom_rules else ErrorCode.UNKNOWN_RULESET
            return CreateRoomResult.failure(error_code, str(e))

        session = self.registry.create(
            ruleset,
            name,
            connection_id,
            clock=self.clock,
            grace_period=self.settings.grace_period,
            move_timeout=self.settings.move_timeout,
            dice_factory=self.dice_factory,
        )
        session.on_completed = self._on_session_completed
        session.on_grace_period_expired = self._on_grace_period_expired

        self._connections[connection_id] = session.code
        self._tokens[session.host.token] = (session.code, Side.ONE)
        await self.broadcaster.add_to_group(connection_id, session.code)

        return CreateRoomResult(
            code=session.code,
            ruleset_name=ruleset.name,
            session_token=session.host.token,
        )

    async def join_room(self, code: str, player_name: str, connection_id: str) -> JoinRoomResult:
        """Take the guest seat (side two) of an open room."""
        name, error_code, message = validate_player_name(player_name)
        if error_code:
            return JoinRoomResult.failure(error_code, message, code=code or "")
        if connection_id in self._connections:
            return JoinRoomResult.failure(ErrorCode.ALREADY_IN_ROOM, "Already in a room", code=code or "")

        session = self.registry.get(code)
        if session is None:
            return JoinRoomResult.failure(ErrorCode.ROOM_NOT_FOUND, "Room not found", code=code or "")

        if not session.try_join(name, connection_id):
            return JoinRoomResult.failure(
                ErrorCode.ROOM_UNAVAILABLE,
                "Room is full or game already started",
                code=session.code,
                ruleset_name=session.ruleset.name,
            )

        guest = session.guest
        self._connections[connection_id] = session.code
        self._tokens[guest.token] = (session.code, Side.TWO)
        await self.broadcaster.add_to_group(connection_id, session.code)
        await self._send(session.host.connection_id, EventName.OPPONENT_JOINED, {"name": name})

        return JoinRoomResult(
            code=session.code,
            ruleset_name=session.ruleset.name,
            host_name=session.host.name,
            session_token=guest.token,
        )

    async def start_game(self, code: str, connection_id: str) -> OperationResult:
        """Host starts the game once the room is full."""
        session = self.registry.get(code)
        if session is None:
            return OperationResult.failure(ErrorCode.ROOM_NOT_FOUND, "Room not found")
        if session.side_of(connection_id) is not Side.ONE:
            return OperationResult.failure(ErrorCode.NOT_HOST, "Only the host can start the game")
        if not session.start(self.broadcaster):
            return OperationResult.failure(ErrorCode.CANNOT_START, "Room is not full or already started")
        return OperationResult()

    def submit_move(self, code: str, connection_id: str, move: Move) -> OperationResult:
        participant = self._participant_for(code, connection_id)
        if participant is None:
            return OperationResult.failure(ErrorCode.NOT_IN_ROOM, "Not seated in this room")
        if not participant.submit_move(move):
            return OperationResult.failure(ErrorCode.INVALID_MOVE, "Invalid move or not your turn")
        return OperationResult()

    def submit_skip(self, code: str, connection_id: str, skip: bool) -> OperationResult:
        participant = self._participant_for(code, connection_id)
        if participant is None:
            return OperationResult.failure(ErrorCode.NOT_IN_ROOM, "Not seated in this room")
        if not participant.submit_skip(skip):
            return OperationResult.failure(ErrorCode.NOT_AWAITING_SKIP, "Not awaiting skip decision")
        return OperationResult()

    def get_room_status(self, code: str) -> Optional[RoomStatusResponse]:
        session = self.registry.get(code)
        if session is None:
            return None
        snapshot = session.last_snapshot
        guest = session.guest
        return RoomStatusResponse(
            code=session.code,
            status=SessionStatus(session.phase.value),
            ruleset_name=session.ruleset.name,
            host_name=session.host.name,
            guest_name=guest.name if guest else None,
            winner=session.winner,
            snapshot=snapshot.to_dict() if snapshot else None,
        )

    def list_rulesets(self) -> list[RuleSetInfo]:
        return [RuleSetInfo(**rules.describe()) for rules in PRESETS.values()]

    def room_of(self, connection_id: str) -> Optional[str]:
        return self._connections.get(connection_id)

    # =========================================================================
    # Disconnects
    # =========================================================================

    async def handle_disconnect(self, connection_id: str):
        """
        A connection dropped.

        Lobby: tear the room down at once. Active: start the grace period
        and tell the opponent; if the opponent is itself already gone there
        is nobody left to wait for.
        """
        session = self._session_for(connection_id)
        if session is None:
            self._connections.pop(connection_id, None)
            return

        side = session.side_of(connection_id)
        if session.phase is SessionPhase.ACTIVE and side is not None:
            if session.is_disconnected(side.opponent):
                logger.info("both players gone", code=session.code)
                await self._teardown(session, connection_id)
                return
            session.start_grace_period(connection_id)
            session.notify(
                side.opponent,
                EventName.OPPONENT_RECONNECTING,
                {"side": side.value, "grace_period": session.grace_period},
            )
            logger.info("player disconnected", code=session.code, side=side.value)
            return

        await self._teardown(session, connection_id)

    async def handle_leave(self, connection_id: str) -> bool:
        """Explicit leave: the room ends immediately."""
        session = self._session_for(connection_id)
        if session is None:
            return False
        await self._teardown(session, connection_id)
        return True

    async def handle_rejoin(self, session_token: str, connection_id: str) -> RejoinResult:
        """Reclaim a seat with its token and replay the game to the new connection."""
        entry = self._tokens.get(session_token or "")
        session = self.registry.get(entry[0]) if entry else None
        if session is None or session.phase is SessionPhase.FINISHED:
            if entry:
                self._tokens.pop(session_token, None)
            return RejoinResult.failure(ErrorCode.INVALID_TOKEN, "Invalid session token")

        side = entry[1]
        seat = session.seat(side)
        old_connection_id = seat.connection_id
        current = self._connections.get(connection_id)
        if current is not None and connection_id != old_connection_id:
            return RejoinResult.failure(ErrorCode.ALREADY_IN_ROOM, "Already in a room", code=current)
        if session.is_disconnected(side):
            session.cancel_grace_period(old_connection_id)

        session.rebind(side, connection_id)
        self._connections.pop(old_connection_id, None)
        self._connections[connection_id] = session.code
        await self.broadcaster.remove_from_group(old_connection_id, session.code)
        await self.broadcaster.add_to_group(connection_id, session.code)

        opponent = session.seat(side.opponent)
        if session.phase is SessionPhase.ACTIVE:
            session.notify(side.opponent, EventName.OPPONENT_RECONNECTED, {"side": side.value})
            session.replay_to(side)
        logger.info("player rejoined", code=session.code, side=side.value)

        return RejoinResult(
            code=session.code,
            side=side,
            ruleset_name=session.ruleset.name,
            opponent_name=opponent.name if opponent else "",
        )

    async def shutdown(self):
        """Stop every room (process exit)."""
        for session in list(self.registry):
            session.stop()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    # =========================================================================
    # Teardown
    # =========================================================================

    async def _teardown(self, session: Session, departing_connection_id: str):
        recipients = self._cleanup(session, departing_connection_id)
        await self._notify_disconnected(session, recipients)

    def _cleanup(self, session: Session, departing_connection_id: str) -> list[str]:
        """Remove the room everywhere and stop it. Returns who to notify."""
        recipients = [
            seat.connection_id
            for side, seat in session.seats.items()
            if seat.connection_id != departing_connection_id and not session.is_disconnected(side)
        ]
        self.registry.remove(session.code)
        self._forget_room(session.code)
        session.stop()
        return recipients

    async def _notify_disconnected(self, session: Session, recipients: list[str]):
        for connection_id in recipients:
            await self._send(connection_id, EventName.OPPONENT_DISCONNECTED, {"code": session.code})
            try:
                await self.broadcaster.remove_from_group(connection_id, session.code)
            except Exception:
                logger.warning("group removal failed", code=session.code, connection_id=connection_id)

    def _on_grace_period_expired(self, code: str, connection_id: str):
        session = self.registry.get(code)
        if session is None:
            return
        logger.info("reconnection window closed", code=code, connection_id=connection_id)
        recipients = self._cleanup(session, connection_id)
        self._spawn(self._notify_disconnected(session, recipients))

    def _on_session_completed(self, code: str):
        self.registry.remove(code)
        self._forget_room(code)

    def _forget_room(self, code: str):
        for connection_id in [c for c, room in self._connections.items() if room == code]:
            del self._connections[connection_id]
        for token in [t for t, (room, _) in self._tokens.items() if room == code]:
            del self._tokens[token]

    # =========================================================================
    # Helpers
    # =========================================================================

    def _session_for(self, connection_id: str) -> Optional[Session]:
        code = self._connections.get(connection_id)
        return self.registry.get(code) if code else None

    def _participant_for(self, code: str, connection_id: str):
        session = self.registry.get(code)
        if session is None:
            return None
        side = session.side_of(connection_id)
        if side is None:
            return None
        return session.participant(side)

    async def _send(self, connection_id: str, event: EventName, payload: Any = None):
        """Best-effort targeted send."""
        try:
            await self.broadcaster.send(connection_id, event, payload)
        except Exception:
            logger.warning("send failed", connection_id=connection_id, event_name=event.value, exc_info=True)

    def _spawn(self, coro):
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("no event loop for background notification")
            return
        self._background.add(task)
        task.add_done_callback(self._background.discard)
