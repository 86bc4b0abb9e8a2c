"""
State Snapshot - Wire projection of a board.

A snapshot carries everything a client needs to redraw the game and
everything needed to rebuild an equivalent BoardState.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

from .rules import RuleSet, resolve_ruleset
from .state import BoardState, BoardStateBuilder, Piece, Side


@dataclass(frozen=True)
class PieceSnapshot:
    piece_id: int
    position: int

    def to_dict(self) -> dict[str, int]:
        return {"piece_id": self.piece_id, "position": self.position}


@dataclass(frozen=True)
class StateSnapshot:
    """Immutable board projection. Piece order follows piece index."""
    ruleset_name: str
    current_side: Side
    winner: Optional[Side]
    last_roll: int
    effective_roll: int
    side_one_pieces: tuple[PieceSnapshot, ...]
    side_two_pieces: tuple[PieceSnapshot, ...]

    def pieces(self, side: Side) -> tuple[PieceSnapshot, ...]:
        return self.side_one_pieces if side is Side.ONE else self.side_two_pieces

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleset_name": self.ruleset_name,
            "current_side": self.current_side.value,
            "winner": self.winner.value if self.winner else None,
            "last_roll": self.last_roll,
            "effective_roll": self.effective_roll,
            "side_one_pieces": [p.to_dict() for p in self.side_one_pieces],
            "side_two_pieces": [p.to_dict() for p in self.side_two_pieces],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StateSnapshot:
        winner = data.get("winner")
        return cls(
            ruleset_name=data["ruleset_name"],
            current_side=Side(data["current_side"]),
            winner=Side(winner) if winner else None,
            last_roll=int(data.get("last_roll", -1)),
            effective_roll=int(data.get("effective_roll", -1)),
            side_one_pieces=tuple(
                PieceSnapshot(int(p["piece_id"]), int(p["position"]))
                for p in data.get("side_one_pieces", [])
            ),
            side_two_pieces=tuple(
                PieceSnapshot(int(p["piece_id"]), int(p["position"]))
                for p in data.get("side_two_pieces", [])
            ),
        )


def _project(pieces: tuple[Piece, ...]) -> tuple[PieceSnapshot, ...]:
    return tuple(PieceSnapshot(p.piece_id, p.position) for p in pieces)


def snapshot_of(board: BoardState) -> StateSnapshot:
    return StateSnapshot(
        ruleset_name=board.ruleset.name,
        current_side=board.current_side,
        winner=board.winner,
        last_roll=board.last_roll,
        effective_roll=board.effective_roll,
        side_one_pieces=_project(board.pieces(Side.ONE)),
        side_two_pieces=_project(board.pieces(Side.TWO)),
    )


def board_from_snapshot(
    snapshot: StateSnapshot,
    ruleset: Optional[RuleSet] = None,
) -> BoardState:
    """
    Rebuild a board from a snapshot.

    Presets are found by name; custom rulesets must be passed explicitly.
    """
    rules = ruleset or resolve_ruleset(snapshot.ruleset_name)
    builder = (
        BoardStateBuilder(rules)
        .with_current_side(snapshot.current_side)
        .with_winner(snapshot.winner)
        .with_rolls(snapshot.last_roll, snapshot.effective_roll)
    )
    for side in (Side.ONE, Side.TWO):
        for piece in snapshot.pieces(side):
            builder.with_piece(side, piece.piece_id, piece.position)
    return builder.build()
