"""
Board State - Piece positions and turn bookkeeping.

Design principles:
- Each side owns a fixed-length list of pieces; pieces are never added or
  removed, only replaced by a repositioned copy at the same index
- Read access hands out immutable views
- Only the TurnEngine mutates a board; everyone else works on copies
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .rules import RuleSet


START = -1


class Side(Enum):
    """The two sides of the board."""
    ONE = "one"
    TWO = "two"

    @property
    def opponent(self) -> Side:
        return Side.TWO if self is Side.ONE else Side.ONE


@dataclass(frozen=True)
class Piece:
    """A single piece. position is START, a track square, or path_length."""
    piece_id: int
    position: int = START

    def moved_to(self, position: int) -> Piece:
        return Piece(piece_id=self.piece_id, position=position)


@dataclass
class BoardState:
    """
    Mutable board for one game.

    last_roll and effective_roll stay at -1 until the first roll.
    """
    ruleset: RuleSet
    side_one: list[Piece] = field(default_factory=list)
    side_two: list[Piece] = field(default_factory=list)
    current_side: Side = Side.ONE
    winner: Optional[Side] = None
    last_roll: int = -1
    effective_roll: int = -1

    @classmethod
    def initial(cls, ruleset: RuleSet, first_side: Side = Side.ONE) -> BoardState:
        """All pieces at start, first_side to move."""
        count = ruleset.pieces_per_side
        return cls(
            ruleset=ruleset,
            side_one=[Piece(piece_id=i) for i in range(count)],
            side_two=[Piece(piece_id=i) for i in range(count)],
            current_side=first_side,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def pieces(self, side: Side) -> tuple[Piece, ...]:
        return tuple(self._list(side))

    def pieces_at_start(self, side: Side) -> int:
        return sum(1 for p in self._list(side) if p.position == START)

    def pieces_on_track(self, side: Side) -> int:
        limit = self.ruleset.path_length
        return sum(1 for p in self._list(side) if 0 <= p.position < limit)

    def pieces_borne_off(self, side: Side) -> int:
        limit = self.ruleset.path_length
        return sum(1 for p in self._list(side) if p.position == limit)

    def is_occupied_by(self, side: Side, position: int) -> bool:
        return any(p.position == position for p in self._list(side))

    def piece_count_at(self, side: Side, position: int) -> int:
        return sum(1 for p in self._list(side) if p.position == position)

    @property
    def is_finished(self) -> bool:
        return self.winner is not None

    def copy(self) -> BoardState:
        """Independent copy; pieces are immutable so shallow lists suffice."""
        return BoardState(
            ruleset=self.ruleset,
            side_one=list(self.side_one),
            side_two=list(self.side_two),
            current_side=self.current_side,
            winner=self.winner,
            last_roll=self.last_roll,
            effective_roll=self.effective_roll,
        )

    # -------------------------------------------------------------------------
    # Engine-only mutation
    # -------------------------------------------------------------------------

    def _list(self, side: Side) -> list[Piece]:
        return self.side_one if side is Side.ONE else self.side_two

    def _set_position(self, side: Side, index: int, position: int):
        pieces = self._list(side)
        pieces[index] = pieces[index].moved_to(position)


class BoardStateBuilder:
    """
    Builds arbitrary positions for tests and snapshot replay.

    Usage:
        board = (
            BoardStateBuilder(FINKEL)
            .with_piece(Side.ONE, 0, 4)
            .with_current_side(Side.TWO)
            .build()
        )

    Unplaced pieces sit at START. Piece lists are padded or truncated to
    pieces_per_side.
    """

    def __init__(self, ruleset: RuleSet):
        self.ruleset = ruleset
        self._positions: dict[Side, dict[int, int]] = {Side.ONE: {}, Side.TWO: {}}
        self._current_side = Side.ONE
        self._winner: Optional[Side] = None
        self._last_roll = -1
        self._effective_roll = -1

    def with_piece(self, side: Side, index: int, position: int) -> BoardStateBuilder:
        limit = self.ruleset.path_length
        if not START <= position <= limit:
            raise ValueError(f"position {position} is off the board")
        self._positions[side][index] = position
        return self

    def with_current_side(self, side: Side) -> BoardStateBuilder:
        self._current_side = side
        return self

    def with_winner(self, side: Optional[Side]) -> BoardStateBuilder:
        self._winner = side
        return self

    def with_rolls(self, last_roll: int, effective_roll: int) -> BoardStateBuilder:
        self._last_roll = last_roll
        self._effective_roll = effective_roll
        return self

    def build(self) -> BoardState:
        count = self.ruleset.pieces_per_side
        lists = {}
        for side, placed in self._positions.items():
            lists[side] = [
                Piece(piece_id=i, position=placed.get(i, START))
                for i in range(count)
            ]
        return BoardState(
            ruleset=self.ruleset,
            side_one=lists[Side.ONE],
            side_two=lists[Side.TWO],
            current_side=self._current_side,
            winner=self._winner,
            last_roll=self._last_roll,
            effective_roll=self._effective_roll,
        )
