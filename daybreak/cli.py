"""
Daybreak CLI - Command-line interface for the engine.

Usage:
    daybreak status                 Print the report of a fresh (or loaded) run
    daybreak play <script>          Replay a command script
    daybreak lint <file>            Validate choice markup in a dialogue file
    daybreak serve                  Run the HTTP API with uvicorn

Script format, one command per line ('#' starts a comment):
    consume_time 4
    change_stat hope +5
    set_phase evening
    submit_dialogue_choice hope:+5,sister:+10
    append_memory_text - She remembered the tower.   ('-' = active memory)
    commit_choice \\CHOICE[Stay|hope:+5|sister>10]
    {"command": "advance_day"}                      (JSON form)
"""

import argparse
import json
import random
import sys

from .config import EngineConfig, log_level_from_env
from .log import setup_logging
from .engine_core.command import Command, CommandType
from .engine_core.orchestrator import Orchestrator
from .engine_core.state import StateDecodeError
from .engine_core.status import Relationship
from .dialogue.validation import validate_script

# Positional parameter names per command; the last one takes the rest of the line
SCRIPT_PARAMS = {
    CommandType.SET_PHASE: ("phase",),
    CommandType.CONSUME_TIME: ("amount",),
    CommandType.ADD_TIME: ("amount",),
    CommandType.SET_TIME: ("value",),
    CommandType.CHANGE_STAT: ("stat", "delta"),
    CommandType.SET_STAT: ("stat", "value"),
    CommandType.CHANGE_RELATIONSHIP: ("track", "delta"),
    CommandType.SET_RELATIONSHIP: ("track", "value"),
    CommandType.START_MEMORY: ("memory_id",),
    CommandType.UNLOCK_MEMORY: ("memory_id",),
    CommandType.APPEND_MEMORY_TEXT: ("memory_id", "value"),
    CommandType.APPEND_MEMORY_PORTRAIT: ("memory_id", "value"),
    CommandType.APPEND_MEMORY_BACKGROUND: ("memory_id", "value"),
    CommandType.SUBMIT_DIALOGUE_CHOICE: ("effect_spec",),
    CommandType.COMMIT_CHOICE: ("markup",),
}

ACTIVE_MEMORY = "-"


def parse_script_line(line: str) -> Command | None:
    """
    Parse one script line into a Command.

    Returns None for blank lines and comments. Raises ValueError for
    unknown commands or missing parameters.
    """
    text = line.strip()
    if not text or text.startswith("#"):
        return None
    if text.startswith("{"):
        try:
            return Command.from_dict(json.loads(text))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            raise ValueError(f"Invalid JSON command: {e}") from e

    name, _, rest = text.partition(" ")
    command_type = CommandType.parse(name)
    names = SCRIPT_PARAMS.get(command_type, ())
    if not names:
        return Command(command_type)

    values = rest.strip().split(None, len(names) - 1) if rest.strip() else []
    if len(values) < len(names):
        raise ValueError(f"{command_type.value} expects: {' '.join(names)}")

    params = dict(zip(names, values))
    if params.get("memory_id") == ACTIVE_MEMORY:
        params["memory_id"] = None
    return Command(command_type, params)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Daybreak - Narrative State Engine",
        prog="daybreak",
    )
    parser.add_argument("--config", "-c", help="JSON config file (default: DAYBREAK_* environment)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Status command
    status_parser = subparsers.add_parser("status", help="Print a run's status report")
    status_parser.add_argument("--load", help="Saved run to load")
    status_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    # Play command
    play_parser = subparsers.add_parser("play", help="Replay a command script")
    play_parser.add_argument("script", help="Path to command script")
    play_parser.add_argument("--seed", type=int, help="RNG seed for memory offers")
    play_parser.add_argument("--load", help="Saved run to start from")
    play_parser.add_argument("--save", help="Write the final run state here")
    play_parser.add_argument("--keep-going", action="store_true", help="Continue after a failed command")
    play_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    # Lint command
    lint_parser = subparsers.add_parser("lint", help="Validate choice markup")
    lint_parser.add_argument("file", help="Dialogue file to check")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true")

    args = parser.parse_args(argv)
    setup_logging(level="DEBUG" if args.verbose else log_level_from_env())

    if args.command == "status":
        return cmd_status(args)
    elif args.command == "play":
        return cmd_play(args)
    elif args.command == "lint":
        return cmd_lint(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        return 1


def _load_config(args) -> EngineConfig:
    if args.config:
        return EngineConfig.load(args.config)
    return EngineConfig.from_env()


def _load_run(path: str | None, config: EngineConfig, seed: int | None = None) -> Orchestrator:
    rng = random.Random(seed) if seed is not None else None
    if not path:
        return Orchestrator(config=config, rng=rng)
    with open(path, "r", encoding="utf-8") as f:
        return Orchestrator.from_json(f.read(), config=config, rng=rng)


def print_report(run: Orchestrator, as_json: bool = False):
    report = run.get_status_report()
    if as_json:
        print(json.dumps(report.to_dict(), indent=2, sort_keys=True))
        return

    print(f"Day {report.day} - {report.phase.label}  (time {report.time}/{report.max_time})")
    print(f"Fatigue {report.fatigue}  Corruption {report.corruption}  Hope {report.hope}")
    tracks = ", ".join(
        f"{track.label} {value}" for track, value in zip(Relationship, report.relationships)
    )
    print(f"Relationships: {tracks}")
    unlocked = ", ".join(str(mid) for mid in report.unlocked_memory_ids) or "none"
    print(f"Memories unlocked: {unlocked}")
    counters = report.counters
    print(
        f"Actions {counters.total_actions}  Dialogues {counters.total_dialogues}  "
        f"Memories {counters.total_memories}"
    )
    if report.ending:
        print(f"Ending: {report.ending.label}")


def cmd_status(args):
    """Print the status report of a fresh or loaded run."""
    try:
        run = _load_run(args.load, _load_config(args))
    except (OSError, StateDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print_report(run, as_json=args.json)
    return 0


def cmd_play(args):
    """Replay a command script."""
    try:
        with open(args.script, "r", encoding="utf-8") as f:
            lines = f.readlines()
        run = _load_run(args.load, _load_config(args), seed=args.seed)
    except FileNotFoundError as e:
        print(f"Error: File not found: {e.filename}", file=sys.stderr)
        return 1
    except (OSError, StateDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    failures = 0
    for number, line in enumerate(lines, start=1):
        try:
            command = parse_script_line(line)
        except ValueError as e:
            result_error = str(e)
        else:
            if command is None:
                continue
            result = run.apply(command)
            if result.success:
                continue
            result_error = f"{result.error} ({result.error_code})"

        failures += 1
        print(f"line {number}: {result_error}", file=sys.stderr)
        if not args.keep_going:
            return 1

    print_report(run, as_json=args.json)
    print(f"Ending so far: {run.evaluate_ending().label}")

    notifications = run.drain_notifications()
    if notifications:
        print("\nNotifications:")
        for message in notifications:
            print(f"  - {message}")

    if args.save:
        with open(args.save, "w", encoding="utf-8") as f:
            f.write(run.to_json())
        print(f"\nSaved run to {args.save}")

    return 1 if failures else 0


def cmd_lint(args):
    """Validate choice markup in a dialogue file."""
    try:
        with open(args.file, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return 1

    result = validate_script(lines)

    if result.warnings:
        print("Warnings:")
        for w in result.warnings:
            print(f"  - {w}")

    if result.errors:
        print("Errors:")
        for e in result.errors:
            print(f"  - {e}")

    print("OK" if result.valid else f"{len(result.errors)} error(s)")
    return 0 if result.valid else 1


def cmd_serve(args):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("daybreak.api.app:app", host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
