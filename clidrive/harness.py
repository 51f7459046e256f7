from __future__ import annotations

"""
Primary entry points.

`run_spec` drives one program described by a `RunSpec`:
- a literal shell `command`, or
- an inline `script` body written to a uniquely named temporary file and run
  with `interpreter` (the running Python by default).

The temporary script is removed on every exit path unless `debug` is set, in
which case it is left in place for inspection.
"""

import asyncio
import contextlib
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from clidrive.collector import ExecutionResult, OnData
from clidrive.config import Settings, load_settings
from clidrive.execute import exec_command
from clidrive.inputs import InputItem
from clidrive.launcher import check_interpreter, script_command, write_script
from clidrive.recording import SessionRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunSpec:
    command: str | None = None
    script: str | None = None
    interpreter: str | None = None
    cwd: str | None = None
    inputs: tuple[InputItem, ...] = ()
    input_delay: float | None = None
    debug: bool = False
    extension: str | None = None
    env: Mapping[str, str] | None = None
    record_dir: str | None = None

    def __post_init__(self) -> None:
        if self.command is None and self.script is None:
            raise ValueError("RunSpec needs a command or a script")
        # private copy of the caller's inputs
        object.__setattr__(self, "inputs", tuple(self.inputs))


@dataclass
class ResolvedRun:
    spec: RunSpec
    interpreter: str
    cwd: str
    input_delay: float
    debug: bool
    extension: str
    tmp_dir: str
    record_dir: str | None
    script_path: str | None = field(default=None)


def resolve(spec: RunSpec, settings: Settings) -> ResolvedRun:
    return ResolvedRun(
        spec=spec,
        interpreter=spec.interpreter or settings.interpreter,
        cwd=spec.cwd or settings.tmp_dir,
        input_delay=settings.input_delay if spec.input_delay is None else spec.input_delay,
        debug=spec.debug or settings.debug,
        extension=(spec.extension or settings.extension).lstrip("."),
        tmp_dir=settings.tmp_dir,
        record_dir=spec.record_dir or settings.record_dir,
    )


def remove_script(path: str) -> None:
    try:
        os.unlink(path)
    except OSError as exc:
        logger.warning("could not remove temporary script %s: %s", path, exc)


@contextlib.contextmanager
def temporary_script(run: ResolvedRun) -> Iterator[str]:
    """Yield the command to execute, writing and later removing the script if needed."""
    spec = run.spec
    if spec.script is None:
        yield spec.command or ""
        return
    check_interpreter(run.interpreter)
    run.script_path = write_script(spec.script, run.tmp_dir, run.extension)
    try:
        yield script_command(run.interpreter, run.script_path)
    finally:
        if run.debug:
            logger.info("keeping temporary script %s (debug)", run.script_path)
        else:
            remove_script(run.script_path)


async def run_spec(
    spec: RunSpec,
    *,
    settings: Settings | None = None,
    on_output: OnData | None = None,
    on_error: OnData | None = None,
    check: bool = True,
) -> ExecutionResult:
    run = resolve(spec, settings or load_settings())
    if spec.cwd is None:
        os.makedirs(run.tmp_dir, exist_ok=True)
    with temporary_script(run) as command:
        options: dict[str, Any] = {
            "cwd": run.cwd,
            "inputs": spec.inputs,
            "input_delay": run.input_delay,
            "on_output": on_output,
            "on_error": on_error,
            "debug": run.debug,
            "env": spec.env,
            "check": check,
        }
        if run.record_dir is None:
            return await exec_command(command, **options)
        with SessionRecorder(run.record_dir, command, run.cwd) as recorder:
            return await exec_command(command, recorder=recorder, **options)


async def run_cli(
    command: str | None = None,
    *,
    script: str | None = None,
    inputs: tuple[InputItem, ...] | list[InputItem] = (),
    interpreter: str | None = None,
    cwd: str | None = None,
    input_delay: float | None = None,
    debug: bool = False,
    extension: str | None = None,
    env: Mapping[str, str] | None = None,
    record_dir: str | None = None,
    settings: Settings | None = None,
    on_output: OnData | None = None,
    on_error: OnData | None = None,
    check: bool = True,
) -> ExecutionResult:
    spec = RunSpec(
        command=command,
        script=script,
        interpreter=interpreter,
        cwd=cwd,
        inputs=tuple(inputs),
        input_delay=input_delay,
        debug=debug,
        extension=extension,
        env=env,
        record_dir=record_dir,
    )
    return await run_spec(spec, settings=settings, on_output=on_output, on_error=on_error, check=check)


def drive_cli(command: str | None = None, **options: Any) -> ExecutionResult:
    """Blocking form of `run_cli` for synchronous callers."""
    return asyncio.run(run_cli(command, **options))
