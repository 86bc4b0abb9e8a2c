"""
Rulesets - Immutable rule configurations.

A RuleSet describes the physical board (track length, rosettes, the lane
both sides share) and the behavioral switches that distinguish the
historical variants. The engine never branches on a ruleset name, only on
these fields.

Positions:
    -1          piece waiting at start
    0 .. L-1    on the track
    L           borne off
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional


@dataclass(frozen=True)
class RuleSet:
    """
    An immutable ruleset.

    capture_map maps a shared-lane position (as seen by the mover) to the
    physical square it aliases on the other side's track. When omitted it
    is the identity over shared_lane_start..shared_lane_end.
    """
    rosettes: frozenset[int]
    pieces_per_side: int
    path_length: int
    shared_lane_start: int
    shared_lane_end: int
    dice_count: int = 4
    name: str = "Custom"
    capture_map: Optional[Mapping[int, int]] = field(default=None, hash=False)
    safe_rosettes: bool = True
    rosette_extra_turn: bool = True
    capture_extra_turn: bool = False
    zero_roll_value: Optional[int] = None
    allow_stacking: bool = False
    allow_backward_moves: bool = False
    allow_voluntary_skip: bool = False

    def __post_init__(self):
        if self.path_length <= 0:
            raise ValueError("path_length must be positive")
        if self.pieces_per_side <= 0:
            raise ValueError("pieces_per_side must be positive")
        if self.dice_count <= 0:
            raise ValueError("dice_count must be positive")
        if self.zero_roll_value is not None and self.zero_roll_value < 0:
            raise ValueError("zero_roll_value must not be negative")

        rosettes = frozenset(self.rosettes)
        for pos in rosettes:
            if not 0 <= pos < self.path_length:
                raise ValueError(f"rosette {pos} is outside the track")
        object.__setattr__(self, "rosettes", rosettes)

        if self.capture_map is None:
            if self.shared_lane_start > self.shared_lane_end:
                raise ValueError("shared lane start must not exceed its end")
            mapping = {
                pos: pos
                for pos in range(self.shared_lane_start, self.shared_lane_end + 1)
            }
        else:
            mapping = dict(self.capture_map)
        for src, dst in mapping.items():
            if not 0 <= src < self.path_length or not 0 <= dst < self.path_length:
                raise ValueError(f"capture map entry {src}->{dst} is outside the track")
        object.__setattr__(self, "capture_map", MappingProxyType(mapping))

    @property
    def borne_off(self) -> int:
        """Position value of a piece that has left the board."""
        return self.path_length

    def is_rosette(self, position: int) -> bool:
        return position in self.rosettes

    def is_shared_lane(self, position: int) -> bool:
        return position in self.capture_map

    def capture_target(self, position: int) -> int:
        """Physical square on the opponent's track aliased by position."""
        return self.capture_map.get(position, position)

    def describe(self) -> dict:
        """Plain summary for listings."""
        return {
            "name": self.name,
            "path_length": self.path_length,
            "pieces_per_side": self.pieces_per_side,
            "dice_count": self.dice_count,
            "rosettes": sorted(self.rosettes),
            "shared_lane": [self.shared_lane_start, self.shared_lane_end],
            "safe_rosettes": self.safe_rosettes,
            "rosette_extra_turn": self.rosette_extra_turn,
            "capture_extra_turn": self.capture_extra_turn,
            "zero_roll_value": self.zero_roll_value,
            "allow_stacking": self.allow_stacking,
            "allow_backward_moves": self.allow_backward_moves,
            "allow_voluntary_skip": self.allow_voluntary_skip,
        }


# =============================================================================
# Presets
# =============================================================================

# Masters track: the lane folds back on itself after square 10, so landing
# on 11 threatens the opponent's 15 and so on.
MASTERS_CAPTURE_MAP = {
    4: 4, 5: 5, 6: 6, 7: 7, 8: 8, 9: 9, 10: 10,
    11: 15, 12: 14, 13: 13, 14: 12, 15: 11,
}
MASTERS_ROSETTES = frozenset({3, 7, 11, 15})

FINKEL = RuleSet(
    name="Finkel",
    rosettes=frozenset({4, 8, 14}),
    pieces_per_side=7,
    path_length=15,
    shared_lane_start=5,
    shared_lane_end=12,
    dice_count=4,
)

SIMPLE = RuleSet(
    name="Simple",
    rosettes=frozenset({4, 8}),
    pieces_per_side=7,
    path_length=15,
    shared_lane_start=5,
    shared_lane_end=12,
    dice_count=4,
)

MASTERS = RuleSet(
    name="Masters",
    rosettes=MASTERS_ROSETTES,
    pieces_per_side=7,
    path_length=16,
    shared_lane_start=4,
    shared_lane_end=15,
    dice_count=3,
    capture_map=MASTERS_CAPTURE_MAP,
    safe_rosettes=False,
    zero_roll_value=4,
)

BLITZ = RuleSet(
    name="Blitz",
    rosettes=MASTERS_ROSETTES,
    pieces_per_side=5,
    path_length=16,
    shared_lane_start=4,
    shared_lane_end=15,
    dice_count=4,
    capture_map=MASTERS_CAPTURE_MAP,
    safe_rosettes=False,
    capture_extra_turn=True,
)

TOURNAMENT = RuleSet(
    name="Tournament",
    rosettes=MASTERS_ROSETTES,
    pieces_per_side=5,
    path_length=16,
    shared_lane_start=4,
    shared_lane_end=15,
    dice_count=4,
    capture_map=MASTERS_CAPTURE_MAP,
    safe_rosettes=True,
    rosette_extra_turn=False,
    allow_stacking=True,
    allow_backward_moves=True,
    allow_voluntary_skip=True,
)

PRESETS: dict[str, RuleSet] = {
    rules.name.lower(): rules
    for rules in (FINKEL, SIMPLE, MASTERS, BLITZ, TOURNAMENT)
}


def resolve_ruleset(name: str) -> RuleSet:
    """Look up a preset by name (case-insensitive)."""
    rules = PRESETS.get((name or "").strip().lower())
    if rules is None:
        raise ValueError(f"Unknown ruleset: {name}")
    return rules
