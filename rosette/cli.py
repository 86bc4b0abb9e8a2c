"""
Rosette CLI - Command-line interface.

Usage:
    rosette serve [--host HOST] [--port PORT]     Run the WebSocket server
    rosette demo [--rules NAME] [--seed N]        Watch two greedy players
    rosette rulesets                              List preset rulesets
"""

import argparse
import asyncio
import sys

from .config import Settings
from .log import configure_logging
from .session.events import EventSink


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Rosette - Royal Game of Ur engine and server",
        prog="rosette",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    serve_parser = subparsers.add_parser("serve", help="Run the WebSocket server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    demo_parser = subparsers.add_parser("demo", help="Play greedy vs greedy locally")
    demo_parser.add_argument("--rules", default="Finkel", help="Preset ruleset name")
    demo_parser.add_argument("--seed", type=int, default=None, help="Dice seed")
    demo_parser.add_argument(
        "--delay", type=float, default=None,
        help="Thinking delay in seconds (default: ROSETTE_AI_THINKING_DELAY)",
    )

    subparsers.add_parser("rulesets", help="List preset rulesets")

    args = parser.parse_args(argv)

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "demo":
        cmd_demo(args)
    elif args.command == "rulesets":
        cmd_rulesets(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_serve(args):
    """Run the server under uvicorn."""
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)
    uvicorn.run(
        "rosette.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
    )


def cmd_demo(args):
    """Play a local game between two greedy participants."""
    from .engine_core import CoinDice, TurnEngine, resolve_ruleset
    from .participants import GreedyParticipant
    from .session.game_loop import TurnOrchestrator

    try:
        rules = resolve_ruleset(args.rules)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    delay = args.delay if args.delay is not None else Settings.from_env().ai_thinking_delay
    configure_logging("WARNING")
    engine = TurnEngine(rules, CoinDice(args.seed))
    loop = TurnOrchestrator(
        engine,
        GreedyParticipant("Greedy One", thinking_delay=delay),
        GreedyParticipant("Greedy Two", thinking_delay=delay),
        PrintingSink(),
    )

    print(f"Playing {rules.name}: {rules.pieces_per_side} pieces, track of {rules.path_length}")
    winner = asyncio.run(loop.run())
    print(f"\nWinner: side {winner.value} after {loop.turns_played} turns")


def cmd_rulesets(args):
    """List preset rulesets."""
    from .engine_core import PRESETS

    for rules in PRESETS.values():
        info = rules.describe()
        flags = [
            key
            for key in (
                "safe_rosettes",
                "rosette_extra_turn",
                "capture_extra_turn",
                "allow_stacking",
                "allow_backward_moves",
                "allow_voluntary_skip",
            )
            if info[key]
        ]
        print(f"{rules.name}")
        print(f"  Track: {rules.path_length}  Pieces: {rules.pieces_per_side}  Dice: {rules.dice_count}")
        print(f"  Rosettes: {', '.join(str(r) for r in info['rosettes'])}")
        if rules.zero_roll_value is not None:
            print(f"  Zero counts as: {rules.zero_roll_value}")
        print(f"  Flags: {', '.join(flags) or 'none'}")


class PrintingSink(EventSink):
    """Writes loop events as plain lines."""

    def on_state_changed(self, snapshot):
        pass

    def on_dice_rolled(self, side, raw_roll):
        print(f"[{side.value}] rolled {raw_roll}")

    def on_move_made(self, move, outcome):
        line = f"[{move.side.value}] {move.from_position} -> {move.to_position} ({outcome.result.value})"
        if outcome.captured_piece_index is not None:
            line += f", captured piece {outcome.captured_piece_index}"
        if outcome.result.grants_extra_turn:
            line += ", rolls again"
        print(line)

    def on_turn_forfeited(self, side):
        print(f"[{side.value}] no move")

    def on_game_over(self, winner):
        print(f"[{winner.value}] bears off the last piece")

    def on_error(self, message):
        print(f"Error: {message}")


if __name__ == "__main__":
    main()
