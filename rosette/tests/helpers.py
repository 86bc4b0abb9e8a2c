"""
Test doubles and async helpers shared by the test modules.
"""

import asyncio

from ..engine_core.rules import RuleSet
from ..session.broadcast import Broadcaster
from ..session.events import EventSink


# One piece, a four-square track, no rosettes: a game takes a few rolls.
TINY = RuleSet(
    name="Tiny",
    rosettes=frozenset(),
    pieces_per_side=1,
    path_length=4,
    shared_lane_start=1,
    shared_lane_end=2,
    dice_count=4,
)


async def settle(rounds: int = 20):
    """Let queued tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate, timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.001)


class RecordingSink(EventSink):
    """Keeps (name, args) for every loop event."""

    def __init__(self):
        self.events = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> list[tuple]:
        return [args for n, args in self.events if n == name]

    def on_state_changed(self, snapshot):
        self.events.append(("state_changed", (snapshot,)))

    def on_dice_rolled(self, side, raw_roll):
        self.events.append(("dice_rolled", (side, raw_roll)))

    def on_move_made(self, move, outcome):
        self.events.append(("move_made", (move, outcome)))

    def on_turn_forfeited(self, side):
        self.events.append(("turn_forfeited", (side,)))

    def on_game_over(self, winner):
        self.events.append(("game_over", (winner,)))

    def on_error(self, message):
        self.events.append(("error", (message,)))


class RecordingBroadcaster(Broadcaster):
    """
    Keeps (target, event name, payload) for everything delivered.

    target is the group for group events and the connection id for
    targeted sends.
    """

    def __init__(self, failing_connections=()):
        self.events = []
        self.groups = {}
        self.failing_connections = set(failing_connections)

    def names(self) -> list[str]:
        return [name for _, name, _ in self.events]

    def to(self, target: str, name: str = None) -> list:
        return [
            payload
            for t, n, payload in self.events
            if t == target and (name is None or n == name)
        ]

    async def state_changed(self, group, snapshot):
        self.events.append((group, "state_changed", snapshot))

    async def dice_rolled(self, group, side, raw_roll):
        self.events.append((group, "dice_rolled", (side, raw_roll)))

    async def move_made(self, group, move, outcome):
        self.events.append((group, "move_made", (move, outcome)))

    async def turn_forfeited(self, group, side):
        self.events.append((group, "turn_forfeited", side))

    async def game_over(self, group, winner):
        self.events.append((group, "game_over", winner))

    async def error(self, group, message):
        self.events.append((group, "error", message))

    async def game_starting(self, group, side_one_name, side_two_name, ruleset_name):
        self.events.append((group, "game_starting", (side_one_name, side_two_name, ruleset_name)))

    async def send(self, connection_id, event, payload=None):
        if connection_id in self.failing_connections:
            raise ConnectionError(f"{connection_id} is unreachable")
        self.events.append((connection_id, event.value, payload))

    async def add_to_group(self, connection_id, group):
        self.groups.setdefault(group, set()).add(connection_id)

    async def remove_from_group(self, connection_id, group):
        self.groups.get(group, set()).discard(connection_id)
