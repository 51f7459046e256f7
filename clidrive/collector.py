from __future__ import annotations

import asyncio
import codecs
import logging
import re
import signal
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, TextIO

from clidrive.errors import ExecutionFailure

logger = logging.getLogger(__name__)

OnData = Callable[[str], None]

READ_CHUNK_SIZE = 4096


class ChunkLog:
    """Recording sink: keeps every chunk it is called with, in order."""

    def __init__(self, chunks: Iterable[str] = ()) -> None:
        self.calls: list[str] = list(chunks)

    def __call__(self, chunk: str) -> None:
        self.calls.append(chunk)

    def __len__(self) -> int:
        return len(self.calls)

    def __iter__(self) -> Iterator[str]:
        return iter(self.calls)

    def __repr__(self) -> str:
        return f"ChunkLog({self.calls!r})"

    @property
    def text(self) -> str:
        return "".join(self.calls)

    def called_with(self, pattern: str | re.Pattern[str]) -> bool:
        """True when a single recorded chunk matches `pattern`."""
        regex = re.compile(pattern)
        return any(regex.search(chunk) for chunk in self.calls)

    def contains(self, pattern: str | re.Pattern[str]) -> bool:
        """True when the joined stream matches `pattern`, regardless of chunking."""
        return re.search(pattern, self.text) is not None


@dataclass(frozen=True)
class ExecutionResult:
    exit_code: int
    command: str
    output: ChunkLog = field(default_factory=ChunkLog)
    error: ChunkLog = field(default_factory=ChunkLog)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output_events(self) -> tuple[str, ...]:
        return tuple(self.output.calls)

    @property
    def error_events(self) -> tuple[str, ...]:
        return tuple(self.error.calls)


def console_sink(stream: TextIO) -> OnData:
    def echo(chunk: str) -> None:
        try:
            stream.write(chunk)
            stream.flush()
        except (OSError, ValueError) as exc:
            logger.debug("debug echo failed: %s", exc)

    return echo


def decode_chunks() -> Callable[[bytes, bool], str]:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    return decoder.decode


async def collect_stream(reader: asyncio.StreamReader, sinks: Iterable[OnData | None]) -> None:
    """Feed every decoded chunk from `reader` to each sink until EOF."""
    targets = [sink for sink in sinks if sink is not None]
    decode = decode_chunks()
    while True:
        data = await reader.read(READ_CHUNK_SIZE)
        text = decode(data, not data)
        if text:
            for sink in targets:
                sink(text)
        if not data:
            return


def normalize_exit_code(returncode: int) -> int:
    if returncode < 0:
        return 128 - returncode
    return returncode


def signal_name(exit_code: int) -> str | None:
    if exit_code <= 128:
        return None
    try:
        return signal.Signals(exit_code - 128).name
    except ValueError:
        return None


def finalize(
    command: str,
    returncode: int,
    output: ChunkLog,
    error: ChunkLog,
    *,
    check: bool = True,
) -> ExecutionResult:
    exit_code = normalize_exit_code(returncode)
    result = ExecutionResult(exit_code=exit_code, command=command, output=output, error=error)
    if exit_code == 0 or not check:
        return result
    name = signal_name(exit_code) if returncode < 0 else None
    logger.info("%r exited with %d%s", command, exit_code, f" ({name})" if name else "")
    raise ExecutionFailure(command, exit_code, output, error)
