"""
Tests for a single room.

Tests:
- Seat claiming and the start transition
- A complete game driven by remote submissions
- Stop, crash and completion handling
- Disconnect grace periods
"""

import threading

import pytest

from ..engine_core.dice import ScriptedDice
from ..engine_core.move import Move
from ..engine_core.state import START, Side
from ..session.broadcast import EventName
from ..session.room import Session, SessionPhase
from .helpers import settle


def make_session(rules, clock, rolls=(4, 0, 1), **kwargs):
    return Session(
        "ABCD",
        rules,
        "Ann",
        "c1",
        clock=clock,
        dice_factory=lambda _: ScriptedDice(rolls),
        **kwargs,
    )


@pytest.fixture
def completed():
    return []


@pytest.fixture
def expired():
    return []


@pytest.fixture
def session(tiny, clock, completed, expired):
    session = make_session(tiny, clock, grace_period=30, move_timeout=60)
    session.on_completed = completed.append
    session.on_grace_period_expired = lambda code, conn: expired.append((code, conn))
    return session


class TestSeats:
    """Tests for joining a room."""

    def test_host_takes_side_one(self, session):
        assert session.phase is SessionPhase.LOBBY
        assert session.host.name == "Ann"
        assert session.side_of("c1") is Side.ONE
        assert session.guest is None
        assert not session.is_full

    def test_exactly_one_guest(self, session):
        assert session.try_join("Bob", "c2")
        assert not session.try_join("Cat", "c3")
        assert session.guest.name == "Bob"
        assert session.side_of("c3") is None

    def test_concurrent_joins(self, session):
        results = []
        barrier = threading.Barrier(8)

        def join(index):
            barrier.wait()
            results.append(session.try_join(f"p{index}", f"conn-{index}"))

        threads = [threading.Thread(target=join, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1
        assert session.is_full

    def test_tokens_identify_seats(self, session):
        session.try_join("Bob", "c2")
        assert session.host.token != session.guest.token
        assert session.seat_by_token(session.guest.token) is Side.TWO
        assert session.seat_by_token("forged") is None

    def test_rebind(self, session):
        session.rebind(Side.ONE, "c9")
        assert session.side_of("c9") is Side.ONE
        assert session.side_of("c1") is None


class TestStart:
    """Tests for the LOBBY -> ACTIVE transition."""

    @pytest.mark.asyncio
    async def test_needs_guest(self, session, broadcaster):
        assert not session.start(broadcaster)
        assert session.phase is SessionPhase.LOBBY

    @pytest.mark.asyncio
    async def test_starts_once(self, session, broadcaster):
        session.try_join("Bob", "c2")
        assert session.start(broadcaster)
        assert not session.start(broadcaster)
        assert session.phase is SessionPhase.ACTIVE
        assert not session.try_join("Cat", "c3")
        await settle()

        assert broadcaster.names()[:3] == ["game_starting", "state_changed", "dice_rolled"]
        assert broadcaster.to("ABCD", "game_starting") == [("Ann", "Bob", "Tiny")]
        session.stop()
        await session.wait_finished()


class TestRemoteGame:
    """Tests for a game played through submissions."""

    @pytest.mark.asyncio
    async def test_complete_game(self, session, broadcaster, completed):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        host = session.participant(Side.ONE)
        entry = Move(Side.ONE, 0, START, 3)
        assert broadcaster.to("c1", "move_required") == [
            {"moves": [entry.to_dict()], "roll": 4}
        ]
        assert broadcaster.to("c2") == []
        assert host.submit_move(entry)
        await settle()

        # Side two rolled a zero and forfeited; side one is asked again
        finish = Move(Side.ONE, 0, 3, 4)
        assert host.is_awaiting_move
        assert host.submit_move(finish)
        await session.wait_finished()
        await settle()

        assert session.phase is SessionPhase.FINISHED
        assert session.winner is Side.ONE
        assert broadcaster.names()[-1] == "game_over"
        assert broadcaster.to("ABCD", "game_over") == [Side.ONE]
        assert completed == ["ABCD"]

    @pytest.mark.asyncio
    async def test_stale_submission_rejected(self, session, broadcaster):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        guest = session.participant(Side.TWO)
        assert not guest.submit_move(Move(Side.TWO, 0, START, 3))
        assert session.participant(Side.ONE).is_awaiting_move
        session.stop()
        await session.wait_finished()

    @pytest.mark.asyncio
    async def test_slow_player_reported_to_opponent(self, session, broadcaster, clock):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        clock.advance(60)
        await settle()

        assert broadcaster.to("c2", "opponent_slow") == [{"side": "one", "name": "Ann"}]
        assert session.participant(Side.ONE).is_awaiting_move
        session.stop()
        await session.wait_finished()

    @pytest.mark.asyncio
    async def test_replay_resends_board_and_request(self, session, broadcaster):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        session.rebind(Side.ONE, "c9")
        session.replay_to(Side.ONE)
        await settle()

        assert [name for target, name, _ in broadcaster.events if target == "c9"] == [
            "state_changed", "move_required",
        ]
        assert broadcaster.to("c9", "state_changed")[0] == session.last_snapshot.to_dict()
        session.stop()
        await session.wait_finished()


class TestStop:
    """Tests for stopping and completion."""

    @pytest.mark.asyncio
    async def test_stop_in_lobby_completes_once(self, session, completed):
        session.stop()
        session.stop()
        assert session.phase is SessionPhase.FINISHED
        assert completed == ["ABCD"]
        assert not session.try_join("Bob", "c2")

    @pytest.mark.asyncio
    async def test_stop_active_game(self, session, broadcaster, completed, clock):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        session.stop()
        await session.wait_finished()

        assert session.phase is SessionPhase.FINISHED
        assert session.winner is None
        assert completed == ["ABCD"]
        assert session.participant(Side.ONE).is_closed
        assert "game_over" not in broadcaster.names()
        assert clock.pending == 0

    @pytest.mark.asyncio
    async def test_crash_is_broadcast(self, tiny, clock, broadcaster, completed):
        session = make_session(tiny, clock, rolls=())
        session.on_completed = completed.append
        session.try_join("Bob", "c2")
        session.start(broadcaster)

        await session.wait_finished()
        await settle()

        assert broadcaster.names() == ["game_starting", "state_changed", "error"]
        assert broadcaster.to("ABCD", "error") == ["dice script exhausted"]
        assert session.phase is SessionPhase.FINISHED
        assert completed == ["ABCD"]

    @pytest.mark.asyncio
    async def test_notify_after_finish_is_dropped(self, session, broadcaster):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        session.stop()
        await session.wait_finished()

        assert not session.notify(Side.TWO, EventName.OPPONENT_SLOW)


class TestGracePeriod:
    """Tests for disconnect grace periods."""

    @pytest.mark.asyncio
    async def test_not_in_lobby(self, session):
        assert not session.start_grace_period("c1")

    @pytest.mark.asyncio
    async def test_unknown_connection(self, session, broadcaster):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        assert not session.start_grace_period("nobody")
        session.stop()
        await session.wait_finished()

    @pytest.mark.asyncio
    async def test_expiry(self, session, broadcaster, clock, expired):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        assert session.start_grace_period("c2")
        assert session.is_disconnected(Side.TWO)
        clock.advance(29)
        assert expired == []
        clock.advance(1)

        assert expired == [("ABCD", "c2")]
        assert not session.is_disconnected(Side.TWO)
        session.stop()
        await session.wait_finished()

    @pytest.mark.asyncio
    async def test_cancel(self, session, broadcaster, clock, expired):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        session.start_grace_period("c2")
        clock.advance(10)
        assert session.cancel_grace_period("c2")
        assert not session.cancel_grace_period("c2")
        clock.advance(60)

        assert expired == []
        assert not session.is_disconnected(Side.TWO)
        session.stop()
        await session.wait_finished()

    @pytest.mark.asyncio
    async def test_stop_disposes_grace_timers(self, session, broadcaster, clock, expired):
        session.try_join("Bob", "c2")
        session.start(broadcaster)
        await settle()

        session.start_grace_period("c2")
        session.stop()
        await session.wait_finished()
        clock.advance(60)

        assert expired == []
