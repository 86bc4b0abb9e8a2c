"""
Participant Sources - Where moves come from.

A ParticipantSource is asked for a move once per turn that has at least
one legal move. Sources may answer immediately (scripted, local UI), after
a delay (automated players), or whenever a remote client responds.

Sources that can decline backward-only turns under voluntary skip rules
implement SkipCapableParticipant; the orchestrator skips on behalf of
sources that cannot answer.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import random
from typing import Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..engine_core.move import Move
    from ..engine_core.state import BoardState


class ParticipantSource(ABC):
    """
    Abstract base class for move sources.

    The board passed in is a copy owned by the call; sources may inspect
    or mutate it freely.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    async def choose_move(
        self,
        board: BoardState,
        legal_moves: list[Move],
        roll: int,
    ) -> Move:
        """Return one element of legal_moves."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class SkipCapableParticipant(ParticipantSource):
    """A source that can answer the voluntary skip question."""

    @abstractmethod
    async def should_skip(
        self,
        board: BoardState,
        legal_moves: list[Move],
        roll: int,
    ) -> bool:
        """True to forfeit a turn whose only moves are backward."""
        pass


class FirstLegalParticipant(SkipCapableParticipant):
    """Always plays the first legal move. Never skips."""

    async def choose_move(self, board, legal_moves, roll):
        return legal_moves[0]

    async def should_skip(self, board, legal_moves, roll):
        return False


class RandomParticipant(SkipCapableParticipant):
    """Picks uniformly among legal moves. Seedable for reproducibility."""

    def __init__(self, name: str, seed: Optional[int] = None, skip_probability: float = 0.0):
        super().__init__(name)
        self.rng = random.Random(seed)
        self.skip_probability = skip_probability

    async def choose_move(self, board, legal_moves, roll):
        return self.rng.choice(legal_moves)

    async def should_skip(self, board, legal_moves, roll):
        return self.rng.random() < self.skip_probability


class CallbackParticipant(ParticipantSource):
    """
    Immediate source backed by plain callables.

    Used for local play where a UI (or a test) decides synchronously.
    Without a skipper the source is not skip-capable at all.
    """

    def __init__(
        self,
        name: str,
        chooser: Callable[[BoardState, list[Move], int], Move],
        skipper: Optional[Callable[[BoardState, list[Move], int], bool]] = None,
    ):
        super().__init__(name)
        self.chooser = chooser
        self.skipper = skipper

    async def choose_move(self, board, legal_moves, roll):
        return self.chooser(board, legal_moves, roll)


class SkippingCallbackParticipant(CallbackParticipant, SkipCapableParticipant):
    """CallbackParticipant that also answers the skip question."""

    def __init__(self, name, chooser, skipper):
        super().__init__(name, chooser, skipper)

    async def should_skip(self, board, legal_moves, roll):
        return bool(self.skipper(board, legal_moves, roll))


def callback_participant(name, chooser, skipper=None) -> ParticipantSource:
    """Build the right callback source for the given callables."""
    if skipper is None:
        return CallbackParticipant(name, chooser)
    return SkippingCallbackParticipant(name, chooser, skipper)
