from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
from typing import Iterable, Mapping

from clidrive.collector import (
    ChunkLog,
    ExecutionResult,
    OnData,
    collect_stream,
    console_sink,
    finalize,
    normalize_exit_code,
)
from clidrive.config import DEFAULT_INPUT_DELAY
from clidrive.inputs import InputItem, schedule, send_inputs
from clidrive.launcher import ChildProcess, spawn
from clidrive.recording import SessionRecorder

logger = logging.getLogger(__name__)

# Output already written before exit is read within this window.
EXIT_DRAIN_SECONDS = 0.25


async def wait_for_exit(child: ChildProcess, readers: list[asyncio.Future]) -> int:
    """Wait for the child itself to exit, re-raising the first sink error."""
    pending = {child.exited, *readers}
    while not child.exited.done():
        done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if task is not child.exited:
                task.result()
    return child.exited.result()


async def drain_readers(command: str, readers: list[asyncio.Future]) -> None:
    done, pending = await asyncio.wait(readers, timeout=EXIT_DRAIN_SECONDS)
    for task in done:
        task.result()
    if pending:
        logger.debug("%r exited but its output pipes are still held open", command)


async def stop_readers(readers: list[asyncio.Future]) -> None:
    for task in readers:
        if not task.done():
            task.cancel()
    # sink errors were already raised from wait_for_exit or drain_readers
    await asyncio.gather(*readers, return_exceptions=True)


async def exec_command(
    command: str,
    *,
    cwd: str | None = None,
    inputs: Iterable[InputItem] = (),
    input_delay: float = DEFAULT_INPUT_DELAY,
    on_output: OnData | None = None,
    on_error: OnData | None = None,
    debug: bool = False,
    env: Mapping[str, str] | None = None,
    check: bool = True,
    recorder: SessionRecorder | None = None,
) -> ExecutionResult:
    """Run `command` through the shell, typing `inputs` into it.

    Every stdout/stderr chunk lands in the result's `output`/`error` logs and
    is passed to `on_output`/`on_error` as it arrives. The call resolves when
    the shell exits, even if a background descendant keeps the pipes open.
    With `check` (the default) a non-zero exit raises `ExecutionFailure`.
    """
    inputs = list(inputs)
    schedule(inputs, input_delay)

    output = ChunkLog()
    error = ChunkLog()
    output_sinks: list[OnData | None] = [output, on_output]
    error_sinks: list[OnData | None] = [error, on_error]
    if debug:
        output_sinks.append(console_sink(sys.stdout))
        error_sinks.append(console_sink(sys.stderr))
    if recorder is not None:
        output_sinks.append(recorder.output)
        error_sinks.append(recorder.error)

    child = await spawn(command, cwd, env)
    injector = asyncio.ensure_future(
        send_inputs(
            child.stdin,
            inputs,
            input_delay,
            on_send=recorder.input if recorder is not None else None,
        )
    )
    readers = [
        asyncio.ensure_future(collect_stream(child.stdout, output_sinks)),
        asyncio.ensure_future(collect_stream(child.stderr, error_sinks)),
    ]
    try:
        returncode = await wait_for_exit(child, readers)
        await drain_readers(command, readers)
    except BaseException:
        logger.warning("killing %r after the harness call failed", command)
        child.kill()
        if not child.exited.done():
            await asyncio.shield(child.exited)
        raise
    finally:
        await stop_readers(readers)
        if not injector.done():
            injector.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await injector
        child.close()

    if recorder is not None:
        recorder.finish(normalize_exit_code(returncode))
    return finalize(command, returncode, output, error, check=check)
