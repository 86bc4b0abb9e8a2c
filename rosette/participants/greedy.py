"""
Greedy automated participant.

Scores each legal move with a fixed priority table and plays the best one
after a short thinking delay, so human opponents can follow its turns.
"""

from __future__ import annotations
import asyncio
from typing import TYPE_CHECKING

from ..engine_core.state import START
from .base import SkipCapableParticipant

if TYPE_CHECKING:
    from ..engine_core.move import Move
    from ..engine_core.state import BoardState


BEAR_OFF_SCORE = 1000
ROSETTE_SCORE = 800
CAPTURE_SCORE = 600
ADVANCE_SCORE = 200
ENTER_SCORE = 100


def score_move(move: Move, board: BoardState) -> int:
    """
    Priority of a move:
    1. Bear off
    2. Land on a rosette
    3. Capture
    4. Advance a piece already on the board (further is better)
    5. Enter a new piece
    """
    rules = board.ruleset
    target = move.to_position

    if target == rules.borne_off:
        return BEAR_OFF_SCORE
    if rules.is_rosette(target):
        return ROSETTE_SCORE
    if rules.is_shared_lane(target) and board.is_occupied_by(
        move.side.opponent, rules.capture_target(target)
    ):
        return CAPTURE_SCORE
    if move.from_position != START:
        return ADVANCE_SCORE + target
    return ENTER_SCORE


class GreedyParticipant(SkipCapableParticipant):
    """
    Plays the highest-scoring move; ties go to the earliest legal move.

    Never declines a turn voluntarily.
    """

    def __init__(self, name: str, thinking_delay: float = 0.5):
        super().__init__(name)
        self.thinking_delay = thinking_delay

    async def choose_move(self, board, legal_moves, roll):
        if self.thinking_delay > 0:
            await asyncio.sleep(self.thinking_delay)

        best = legal_moves[0]
        best_score = score_move(best, board)
        for move in legal_moves[1:]:
            score = score_move(move, board)
            if score > best_score:
                best, best_score = move, score
        return best

    async def should_skip(self, board, legal_moves, roll):
        return False
