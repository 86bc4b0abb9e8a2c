"""
Moves and move outcomes.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .state import Side


@dataclass(frozen=True)
class Move:
    """
    A move of one piece (or, with stacking, the stack it belongs to).

    Equality is structural; the network layer relies on it to match
    submissions against the legal set.
    """
    side: Side
    piece_index: int
    from_position: int
    to_position: int

    @property
    def is_forward(self) -> bool:
        return self.to_position > self.from_position

    @property
    def is_backward(self) -> bool:
        return self.to_position < self.from_position

    def to_dict(self) -> dict[str, Any]:
        return {
            "side": self.side.value,
            "piece_index": self.piece_index,
            "from_position": self.from_position,
            "to_position": self.to_position,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Move:
        return cls(
            side=Side(data["side"]),
            piece_index=int(data["piece_index"]),
            from_position=int(data["from_position"]),
            to_position=int(data["to_position"]),
        )

    def __str__(self) -> str:
        return f"{self.side.value}#{self.piece_index} {self.from_position}->{self.to_position}"


class MoveResult(Enum):
    """What a successful execute did."""
    MOVED = "moved"
    EXTRA_TURN = "extra_turn"
    CAPTURED = "captured"
    CAPTURED_EXTRA_TURN = "captured_extra_turn"
    BORNE_OFF = "borne_off"
    BORNE_OFF_EXTRA_TURN = "borne_off_extra_turn"
    WIN = "win"

    @property
    def grants_extra_turn(self) -> bool:
        return self in (
            MoveResult.EXTRA_TURN,
            MoveResult.CAPTURED_EXTRA_TURN,
            MoveResult.BORNE_OFF_EXTRA_TURN,
        )


@dataclass(frozen=True)
class MoveOutcome:
    """Result plus the index of the captured opposing piece, if any."""
    result: MoveResult
    captured_piece_index: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result.value,
            "captured_piece_index": self.captured_piece_index,
        }
