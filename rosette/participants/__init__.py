"""
Participants module - Move sources for the turn orchestrator.

Provides:
- ParticipantSource: Interface for anything that chooses moves
- FirstLegalParticipant / RandomParticipant: Immediate sources
- CallbackParticipant: Local source backed by plain callables
- GreedyParticipant: Automated player with a thinking delay
- RemoteParticipant: Network-backed source with move timeouts
"""

from .base import (
    ParticipantSource,
    SkipCapableParticipant,
    FirstLegalParticipant,
    RandomParticipant,
    CallbackParticipant,
    SkippingCallbackParticipant,
    callback_participant,
)
from .greedy import GreedyParticipant, score_move
from .remote import RemoteParticipant, PendingRequest, RequestKind

__all__ = [
    "ParticipantSource",
    "SkipCapableParticipant",
    "FirstLegalParticipant",
    "RandomParticipant",
    "CallbackParticipant",
    "SkippingCallbackParticipant",
    "callback_participant",
    "GreedyParticipant",
    "score_move",
    "RemoteParticipant",
    "PendingRequest",
    "RequestKind",
]
