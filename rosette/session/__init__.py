"""
Session Module - Rooms, turn loop and event delivery.

A session represents one two-player game:
- Created when a host opens a room
- Joined by exactly one guest
- Runs a turn loop over remote participants
- Survives short disconnects through a grace period
- Destroyed when the game ends

Sessions are EPHEMERAL: no persistence, removed on completion.
"""

from .broadcast import Broadcaster, EventName
from .clock import Clock, SystemClock, ManualClock, TimerHandle
from .events import EventSink, EventDispatcher
from .game_loop import TurnOrchestrator, LoopState
from .room import Session, SessionPhase, Seat, PendingDisconnect
from .manager import SessionRegistry, CODE_ALPHABET, generate_code

__all__ = [
    "Broadcaster",
    "EventName",
    "Clock",
    "SystemClock",
    "ManualClock",
    "TimerHandle",
    "EventSink",
    "EventDispatcher",
    "TurnOrchestrator",
    "LoopState",
    "Session",
    "SessionPhase",
    "Seat",
    "PendingDisconnect",
    "SessionRegistry",
    "CODE_ALPHABET",
    "generate_code",
]
