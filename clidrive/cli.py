from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from clidrive.collector import console_sink
from clidrive.config import load_settings
from clidrive.errors import ConfigError, ExecutionFailure, SpawnFailure
from clidrive.harness import RunSpec, run_spec
from clidrive.inputs import InputEvent, check_delay
from clidrive.keys import key

EXIT_USAGE = 2


def input_step(value: str) -> tuple[str, str]:
    return ("text", value)


def key_step(value: str) -> tuple[str, str]:
    try:
        return ("text", key(value))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def pause_step(value: str) -> tuple[str, float]:
    try:
        return ("pause", check_delay(float(value)))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid pause {value!r}: {exc}") from None


def build_inputs(steps: list[tuple[str, object]] | None) -> tuple[InputEvent, ...]:
    """Turn ordered --input/--key/--pause steps into input events.

    A pause applies to the next input only as its explicit delay (which then
    carries forward as the default, like any explicit delay).
    """
    events: list[InputEvent] = []
    pending: float | None = None
    for kind, value in steps or []:
        if kind == "pause":
            pending = float(value)
            continue
        events.append(InputEvent(str(value), pending))
        pending = None
    return tuple(events)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="clidrive", description="Drive an interactive program from scripted input")
    subparsers = parser.add_subparsers(dest="mode", required=True)

    run = subparsers.add_parser("run", help="Run a program and type inputs into it")
    target = run.add_mutually_exclusive_group(required=True)
    target.add_argument("--command", help="Shell command to run")
    target.add_argument("--script", help="Script file whose body is run with --interpreter")
    run.add_argument("--interpreter", help="Command used to run --script (default: this Python)")
    run.add_argument("--cwd", help="Working directory for the program")
    run.add_argument("--input", dest="steps", action="append", type=input_step, help="Text to type")
    run.add_argument("--key", dest="steps", action="append", type=key_step, help="Named key to press (ENTER, DOWN, ...)")
    run.add_argument(
        "--pause",
        dest="steps",
        action="append",
        type=pause_step,
        help="Seconds to wait before the next input; becomes the new default delay",
    )
    run.add_argument("--delay", type=float, help="Default seconds between inputs")
    run.add_argument("--extension", help="File extension for the temporary script")
    run.add_argument("--record-dir", dest="record_dir", help="Write session logs and an asciinema cast here")
    run.add_argument("--config", help="YAML settings file")
    run.add_argument("--debug", action="store_true", help="Echo output as it arrives and keep the temporary script")
    run.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def read_script(path: str) -> str:
    with open(path, "r", encoding="utf-8") as handle:
        return handle.read()


def run_mode(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    spec = RunSpec(
        command=args.command,
        script=read_script(args.script) if args.script else None,
        interpreter=args.interpreter,
        cwd=args.cwd,
        inputs=build_inputs(args.steps),
        input_delay=args.delay,
        debug=args.debug,
        extension=args.extension,
        record_dir=args.record_dir,
    )
    # debug mode already echoes every chunk
    echo = not (spec.debug or settings.debug)
    try:
        result = asyncio.run(
            run_spec(
                spec,
                settings=settings,
                on_output=console_sink(sys.stdout) if echo else None,
                on_error=console_sink(sys.stderr) if echo else None,
            )
        )
    except ExecutionFailure as exc:
        print(exc.message, file=sys.stderr)
        return exc.exit_code
    return result.exit_code


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run_mode(args)
    except (ConfigError, SpawnFailure, OSError, ValueError) as exc:
        print(f"clidrive: {exc}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
