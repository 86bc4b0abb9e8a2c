"""
Tests for the turn loop.

Tests:
- Event order over a complete short game
- Forfeits and voluntary skips
- Participants receive copies of the board and the raw roll
"""

import asyncio

import pytest

from ..engine_core.dice import CoinDice, ScriptedDice
from ..engine_core.engine import TurnEngine
from ..engine_core.errors import RequestCancelled
from ..engine_core.move import Move, MoveResult
from ..engine_core.rules import MASTERS, PRESETS, TOURNAMENT
from ..engine_core.state import START, BoardStateBuilder, Side
from ..participants.base import FirstLegalParticipant, callback_participant
from ..participants.greedy import GreedyParticipant
from ..participants.remote import RemoteParticipant
from ..session.game_loop import LoopState, TurnOrchestrator
from .helpers import settle


def tournament_endgame_board():
    """Side one has four pieces off and one on 14; only 14 -> 11 exists for a 3."""
    builder = BoardStateBuilder(TOURNAMENT)
    for index in range(4):
        builder.with_piece(Side.ONE, index, TOURNAMENT.borne_off)
    return builder.with_piece(Side.ONE, 4, 14).build()


class TestFullGame:
    """Tests for a whole game on the one-piece board."""

    @pytest.mark.asyncio
    async def test_event_order(self, tiny, sink):
        engine = TurnEngine(tiny, ScriptedDice([4, 0, 1]))
        loop = TurnOrchestrator(
            engine, FirstLegalParticipant("ann"), FirstLegalParticipant("bob"), sink
        )

        winner = await loop.run()

        assert winner is Side.ONE
        assert loop.state is LoopState.FINISHED
        assert loop.turns_played == 3
        assert sink.names() == [
            "state_changed", "dice_rolled", "move_made", "state_changed",
            "state_changed", "dice_rolled", "turn_forfeited", "state_changed",
            "state_changed", "dice_rolled", "move_made", "state_changed",
            "game_over",
        ]
        assert sink.of("dice_rolled") == [(Side.ONE, 4), (Side.TWO, 0), (Side.ONE, 1)]
        assert sink.of("turn_forfeited") == [(Side.TWO,)]

        first, last = sink.of("move_made")
        assert first[0] == Move(Side.ONE, 0, START, 3)
        assert first[1].result is MoveResult.MOVED
        assert last[1].result is MoveResult.WIN
        assert sink.of("game_over") == [(Side.ONE,)]

    @pytest.mark.asyncio
    async def test_final_state_shows_winner(self, tiny, sink):
        engine = TurnEngine(tiny, ScriptedDice([4, 0, 1]))
        await TurnOrchestrator(
            engine, FirstLegalParticipant("a"), FirstLegalParticipant("b"), sink
        ).run()

        (final,) = sink.of("state_changed")[-1]
        assert final.winner is Side.ONE
        assert final.side_one_pieces[0].position == tiny.borne_off

    @pytest.mark.asyncio
    async def test_finished_engine_returns_immediately(self, tiny, sink):
        board = BoardStateBuilder(tiny).with_winner(Side.TWO).build()
        engine = TurnEngine(tiny, ScriptedDice([]), board=board)
        loop = TurnOrchestrator(
            engine, FirstLegalParticipant("a"), FirstLegalParticipant("b"), sink
        )

        assert await loop.run() is Side.TWO
        assert sink.events == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", sorted(PRESETS))
    async def test_greedy_games_finish(self, name, sink):
        rules = PRESETS[name]
        engine = TurnEngine(rules, CoinDice(seed=11))
        loop = TurnOrchestrator(
            engine,
            GreedyParticipant("g1", thinking_delay=0),
            GreedyParticipant("g2", thinking_delay=0),
            sink,
        )

        winner = await asyncio.wait_for(loop.run(), timeout=30)

        assert engine.board.pieces_borne_off(winner) == rules.pieces_per_side
        assert sink.names()[-1] == "game_over"
        assert sink.names().count("game_over") == 1


class TestSkipping:
    """Tests for voluntary skips on backward-only turns."""

    @pytest.mark.asyncio
    async def test_source_without_skip_support_skips(self, clock, sink):
        engine = TurnEngine(TOURNAMENT, ScriptedDice([3, 2]), board=tournament_endgame_board())
        chosen = []
        one = callback_participant("ann", lambda b, m, r: chosen.append(m) or m[0])
        two = RemoteParticipant("bob", "c2", clock)
        task = asyncio.create_task(TurnOrchestrator(engine, one, two, sink).run())
        await settle()

        assert chosen == []
        assert sink.names() == [
            "state_changed", "dice_rolled", "turn_forfeited", "state_changed",
            "state_changed", "dice_rolled",
        ]
        assert engine.board.pieces(Side.ONE)[4].position == 14
        assert two.is_awaiting_move

        two.cancel()
        with pytest.raises(RequestCancelled):
            await task

    @pytest.mark.asyncio
    async def test_declined_skip_plays_backward(self, clock, sink):
        engine = TurnEngine(TOURNAMENT, ScriptedDice([3, 2]), board=tournament_endgame_board())
        asked = []

        def skipper(board, moves, roll):
            asked.append((moves, roll))
            return False

        one = callback_participant("ann", lambda b, m, r: m[0], skipper)
        two = RemoteParticipant("bob", "c2", clock)
        task = asyncio.create_task(TurnOrchestrator(engine, one, two, sink).run())
        await settle()

        assert asked == [([Move(Side.ONE, 4, 14, 11)], 3)]
        assert "turn_forfeited" not in sink.names()
        assert engine.board.pieces(Side.ONE)[4].position == 11
        # No extra turn from the rosette under these rules
        assert sink.of("dice_rolled")[-1] == (Side.TWO, 2)

        two.cancel()
        with pytest.raises(RequestCancelled):
            await task

    @pytest.mark.asyncio
    async def test_accepted_skip_forfeits(self, clock, sink):
        engine = TurnEngine(TOURNAMENT, ScriptedDice([3, 2]), board=tournament_endgame_board())
        one = callback_participant("ann", lambda b, m, r: m[0], lambda b, m, r: True)
        two = RemoteParticipant("bob", "c2", clock)
        task = asyncio.create_task(TurnOrchestrator(engine, one, two, sink).run())
        await settle()

        assert sink.of("turn_forfeited") == [(Side.ONE,)]
        assert engine.board.pieces(Side.ONE)[4].position == 14

        two.cancel()
        with pytest.raises(RequestCancelled):
            await task


class TestParticipantInputs:
    """Tests for what participants are handed."""

    @pytest.mark.asyncio
    async def test_board_is_a_copy(self, tiny, sink):
        engine = TurnEngine(tiny, ScriptedDice([4, 0, 1]))
        seen = []

        def chooser(board, moves, roll):
            seen.append(board)
            board._set_position(Side.TWO, 0, 2)
            return moves[0]

        await TurnOrchestrator(
            engine, callback_participant("ann", chooser), FirstLegalParticipant("bob"), sink
        ).run()

        assert len(seen) == 2
        assert all(board is not engine.board for board in seen)
        assert engine.board.pieces(Side.TWO)[0].position == START

    @pytest.mark.asyncio
    async def test_raw_roll_is_passed(self, sink):
        """On Masters a zero moves four squares but the source sees the zero."""
        engine = TurnEngine(MASTERS, ScriptedDice([0]))
        seen = []

        def chooser(board, moves, roll):
            seen.append((roll, moves[0].to_position))
            return moves[0]

        task = asyncio.create_task(
            TurnOrchestrator(
                engine, callback_participant("ann", chooser), FirstLegalParticipant("bob"), sink
            ).run()
        )
        # Landing on 3 grants another roll and the script is empty
        with pytest.raises(IndexError):
            await task
        assert seen == [(0, 3)]
