"""
Engine Core - Rulesets, board state and the turn protocol.

The engine is the runtime that:
1. Holds an immutable RuleSet
2. Owns the BoardState
3. Rolls the dice and generates legal moves
4. Executes moves (captures, bear-offs, extra turns) or forfeits the roll
"""

from .rules import (
    RuleSet,
    FINKEL,
    SIMPLE,
    MASTERS,
    BLITZ,
    TOURNAMENT,
    PRESETS,
    resolve_ruleset,
)
from .state import START, Side, Piece, BoardState, BoardStateBuilder
from .move import Move, MoveResult, MoveOutcome
from .dice import Dice, CoinDice, ScriptedDice
from .errors import RosetteError, ProtocolViolation, RequestCancelled
from .snapshot import StateSnapshot, PieceSnapshot, snapshot_of, board_from_snapshot
from .engine import TurnEngine, TurnPhase

__all__ = [
    "RuleSet",
    "FINKEL",
    "SIMPLE",
    "MASTERS",
    "BLITZ",
    "TOURNAMENT",
    "PRESETS",
    "resolve_ruleset",
    "START",
    "Side",
    "Piece",
    "BoardState",
    "BoardStateBuilder",
    "Move",
    "MoveResult",
    "MoveOutcome",
    "Dice",
    "CoinDice",
    "ScriptedDice",
    "RosetteError",
    "ProtocolViolation",
    "RequestCancelled",
    "StateSnapshot",
    "PieceSnapshot",
    "snapshot_of",
    "board_from_snapshot",
    "TurnEngine",
    "TurnPhase",
]
