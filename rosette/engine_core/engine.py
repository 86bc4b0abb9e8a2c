"""
Turn Engine - The roll / move / forfeit state machine.

The engine is the only writer of a BoardState. Every turn follows:

    roll()  ->  legal_moves()  ->  execute(move) | forfeit()

Calls out of that order raise ProtocolViolation. Rejections that a remote
player can cause (a stale or illegal submission) are filtered out before
they reach the engine, so a ProtocolViolation here is always a caller bug.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional

from .dice import CoinDice, Dice
from .errors import ProtocolViolation
from .move import Move, MoveOutcome, MoveResult
from .rules import RuleSet
from .snapshot import StateSnapshot, snapshot_of
from .state import START, BoardState, Side


class TurnPhase(Enum):
    """Where the engine is in the turn protocol."""
    AWAITING_ROLL = "awaiting_roll"
    AWAITING_MOVE = "awaiting_move"
    FINISHED = "finished"


class TurnEngine:
    """
    Drives one game under a fixed ruleset.

    Usage:
        engine = TurnEngine(FINKEL)
        engine.roll()
        moves = engine.legal_moves()
        if moves:
            outcome = engine.execute(moves[0])
        else:
            engine.forfeit()
    """

    def __init__(
        self,
        ruleset: RuleSet,
        dice: Optional[Dice] = None,
        board: Optional[BoardState] = None,
    ):
        if board is not None and board.ruleset != ruleset:
            raise ValueError("board was built for a different ruleset")
        self.ruleset = ruleset
        self.dice = dice or CoinDice()
        self.board = board or BoardState.initial(ruleset)
        self._roll_pending = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def phase(self) -> TurnPhase:
        if self.board.is_finished:
            return TurnPhase.FINISHED
        if self._roll_pending:
            return TurnPhase.AWAITING_MOVE
        return TurnPhase.AWAITING_ROLL

    @property
    def current_side(self) -> Side:
        return self.board.current_side

    @property
    def winner(self) -> Optional[Side]:
        return self.board.winner

    def snapshot(self) -> StateSnapshot:
        return snapshot_of(self.board)

    # -------------------------------------------------------------------------
    # Protocol
    # -------------------------------------------------------------------------

    def roll(self) -> int:
        """Roll the dice for the side to move. Returns the raw value."""
        if self.board.is_finished:
            raise ProtocolViolation("cannot roll: game is over")
        if self._roll_pending:
            raise ProtocolViolation("cannot roll: a roll is already pending")

        raw = self.dice.roll(self.ruleset.dice_count)
        effective = raw
        if raw == 0 and self.ruleset.zero_roll_value is not None:
            effective = self.ruleset.zero_roll_value

        self.board.last_roll = raw
        self.board.effective_roll = effective
        self._roll_pending = True
        return raw

    def legal_moves(self) -> list[Move]:
        """
        Moves available for the pending roll.

        One move per distinct (from, to) pair; the lowest piece index on a
        square represents it.
        """
        if not self._roll_pending:
            raise ProtocolViolation("cannot list moves: no roll pending")

        roll = self.board.effective_roll
        if roll <= 0:
            return []

        side = self.board.current_side
        rules = self.ruleset
        seen: set[tuple[int, int]] = set()
        moves: list[Move] = []

        for index, piece in enumerate(self.board.pieces(side)):
            origin = piece.position
            if origin == rules.borne_off:
                continue

            targets = [origin + roll]
            if rules.allow_backward_moves and origin > 0 and origin - roll >= 0:
                targets.append(origin - roll)

            for target in targets:
                key = (origin, target)
                if key in seen:
                    continue
                if self._is_valid_destination(side, target):
                    seen.add(key)
                    moves.append(Move(side, index, origin, target))

        return moves

    def execute(self, move: Move) -> MoveOutcome:
        """Apply a legal move for the pending roll."""
        if self.board.is_finished:
            raise ProtocolViolation("cannot move: game is over")
        if not self._roll_pending:
            raise ProtocolViolation("cannot move: no roll pending")

        legal = self.legal_moves()
        if not any(
            m.side == move.side
            and m.from_position == move.from_position
            and m.to_position == move.to_position
            for m in legal
        ):
            raise ProtocolViolation(f"illegal move: {move}")

        board = self.board
        rules = self.ruleset
        side = move.side
        origin, target = move.from_position, move.to_position

        for index in self._movers(side, move.piece_index, origin):
            board._set_position(side, index, target)

        captured = self._capture(side, target)

        self._roll_pending = False

        borne_off = target == rules.borne_off
        if borne_off and board.pieces_borne_off(side) == rules.pieces_per_side:
            board.winner = side
            return MoveOutcome(MoveResult.WIN, captured)

        extra_turn = (rules.is_rosette(target) and rules.rosette_extra_turn) or (
            captured is not None and rules.capture_extra_turn
        )

        if borne_off:
            result = MoveResult.BORNE_OFF_EXTRA_TURN if extra_turn else MoveResult.BORNE_OFF
        elif captured is not None:
            result = MoveResult.CAPTURED_EXTRA_TURN if extra_turn else MoveResult.CAPTURED
        else:
            result = MoveResult.EXTRA_TURN if extra_turn else MoveResult.MOVED

        if not extra_turn:
            board.current_side = side.opponent

        return MoveOutcome(result, captured)

    def forfeit(self):
        """
        Give up the pending roll and pass the turn.

        Allowed when no move exists, or when voluntary skipping is enabled
        and no forward move exists.
        """
        if self.board.is_finished:
            raise ProtocolViolation("cannot forfeit: game is over")
        if not self._roll_pending:
            raise ProtocolViolation("cannot forfeit: no roll pending")

        moves = self.legal_moves()
        if moves:
            if not self.ruleset.allow_voluntary_skip:
                raise ProtocolViolation("cannot forfeit: legal moves exist")
            if any(m.is_forward for m in moves):
                raise ProtocolViolation("cannot forfeit: a forward move exists")

        self._roll_pending = False
        self.board.current_side = self.board.current_side.opponent

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _is_valid_destination(self, side: Side, target: int) -> bool:
        rules = self.ruleset
        if target > rules.borne_off:
            return False
        if target == rules.borne_off:
            return True

        if self.board.is_occupied_by(side, target):
            if not (rules.allow_stacking and rules.is_rosette(target)):
                return False

        if rules.is_shared_lane(target) and rules.safe_rosettes and rules.is_rosette(target):
            if self.board.is_occupied_by(side.opponent, rules.capture_target(target)):
                return False

        return True

    def _movers(self, side: Side, piece_index: int, origin: int) -> list[int]:
        pieces = self.board.pieces(side)
        on_origin = [i for i, p in enumerate(pieces) if p.position == origin]
        if self.ruleset.allow_stacking:
            return on_origin
        if 0 <= piece_index < len(pieces) and pieces[piece_index].position == origin:
            return [piece_index]
        return on_origin[:1]

    def _capture(self, side: Side, target: int) -> Optional[int]:
        rules = self.ruleset
        if target >= rules.borne_off or not rules.is_shared_lane(target):
            return None

        opponent = side.opponent
        square = rules.capture_target(target)
        hit = [
            i for i, p in enumerate(self.board.pieces(opponent))
            if p.position == square
        ]
        if not hit:
            return None
        if not rules.allow_stacking:
            hit = hit[:1]
        for index in hit:
            self.board._set_position(opponent, index, START)
        return hit[0]
