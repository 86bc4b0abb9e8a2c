"""
Game Loop - Drives a TurnEngine with two participants.

Each turn:
1. Emit the current board
2. Roll and emit the roll
3. No legal moves: forfeit, emit, next turn
4. Only backward moves and voluntary skip allowed: ask whether to skip
5. Ask the side to move for a move, execute it, emit the outcome
6. Stop on a win

The loop awaits only the participant calls; cancelling the task there
unwinds without a game-over event.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional, TYPE_CHECKING

import structlog

from ..engine_core.move import MoveResult
from ..engine_core.state import Side
from ..participants.base import SkipCapableParticipant

if TYPE_CHECKING:
    from ..engine_core.engine import TurnEngine
    from ..participants.base import ParticipantSource
    from .events import EventSink

logger = structlog.get_logger()


class LoopState(Enum):
    """State of the turn loop."""
    IDLE = "idle"
    ROLLING = "rolling"
    WAITING_PARTICIPANT = "waiting_participant"
    FINISHED = "finished"


class TurnOrchestrator:
    """
    The main turn loop.

    Usage:
        loop = TurnOrchestrator(engine, greedy, remote, sink)
        winner = await loop.run()
    """

    def __init__(
        self,
        engine: TurnEngine,
        participant_one: ParticipantSource,
        participant_two: ParticipantSource,
        sink: EventSink,
    ):
        self.engine = engine
        self.participants = {Side.ONE: participant_one, Side.TWO: participant_two}
        self.sink = sink
        self.state = LoopState.IDLE
        self.turns_played = 0

    def participant(self, side: Side) -> ParticipantSource:
        return self.participants[side]

    async def run(self) -> Optional[Side]:
        """Play until a side wins. Returns the winner."""
        engine = self.engine
        sink = self.sink

        if engine.winner is not None:
            self.state = LoopState.FINISHED
            return engine.winner

        while True:
            self.state = LoopState.ROLLING
            sink.on_state_changed(engine.snapshot())

            side = engine.current_side
            raw = engine.roll()
            sink.on_dice_rolled(side, raw)
            self.turns_played += 1

            moves = engine.legal_moves()
            if not moves:
                self._forfeit(side)
                continue

            source = self.participants[side]
            roll = engine.board.last_roll

            if engine.ruleset.allow_voluntary_skip and all(m.is_backward for m in moves):
                self.state = LoopState.WAITING_PARTICIPANT
                if isinstance(source, SkipCapableParticipant):
                    skip = await source.should_skip(engine.board.copy(), list(moves), roll)
                else:
                    skip = True
                if skip:
                    logger.debug("turn skipped", side=side.value, participant=source.name)
                    self._forfeit(side)
                    continue

            self.state = LoopState.WAITING_PARTICIPANT
            move = await source.choose_move(engine.board.copy(), list(moves), roll)

            outcome = engine.execute(move)
            sink.on_move_made(move, outcome)
            sink.on_state_changed(engine.snapshot())
            if outcome.result.grants_extra_turn:
                logger.debug("extra turn", side=side.value)

            if outcome.result is MoveResult.WIN:
                self.state = LoopState.FINISHED
                sink.on_game_over(side)
                return side

    def _forfeit(self, side: Side):
        self.engine.forfeit()
        self.sink.on_turn_forfeited(side)
        self.sink.on_state_changed(self.engine.snapshot())
