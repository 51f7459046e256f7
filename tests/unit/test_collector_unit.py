from __future__ import annotations

import asyncio
import io

import pytest

from clidrive.collector import (
    ChunkLog,
    ExecutionResult,
    collect_stream,
    console_sink,
    finalize,
    normalize_exit_code,
)
from clidrive.errors import ExecutionFailure


pytestmark = pytest.mark.unit


def test_chunk_log_records_calls_in_order() -> None:
    log = ChunkLog()
    log("first ")
    log("second")
    assert log.calls == ["first ", "second"]
    assert len(log) == 2
    assert list(log) == ["first ", "second"]
    assert log.text == "first second"


def test_chunk_log_called_with_matches_single_chunks_only() -> None:
    log = ChunkLog(["Your name is ", '"Ada"'])
    assert log.called_with(r"Your name")
    assert not log.called_with(r'is "Ada"')
    assert log.contains(r'is "Ada"')


def test_finalize_returns_result_for_zero_exit() -> None:
    output = ChunkLog(["A"])
    result = finalize("echo A", 0, output, ChunkLog())
    assert isinstance(result, ExecutionResult)
    assert result.ok
    assert result.output_events == ("A",)
    assert result.error_events == ()


def test_finalize_raises_failure_with_exit_code_in_message() -> None:
    error = ChunkLog(["boom"])
    with pytest.raises(ExecutionFailure) as excinfo:
        finalize("false", 1, ChunkLog(), error)
    failure = excinfo.value
    assert failure.exit_code == 1
    assert failure.message == 'Failed executing "false" with exit code: 1'
    assert failure.error is error
    assert failure.result.exit_code == 1


def test_finalize_without_check_returns_failed_result() -> None:
    result = finalize("false", 3, ChunkLog(), ChunkLog(), check=False)
    assert result.exit_code == 3
    assert not result.ok


def test_signal_exit_codes_follow_shell_convention() -> None:
    assert normalize_exit_code(-9) == 137
    assert normalize_exit_code(0) == 0
    assert normalize_exit_code(2) == 2


def test_console_sink_never_raises() -> None:
    class BrokenStream(io.StringIO):
        def write(self, text: str) -> int:
            raise OSError("terminal gone")

    console_sink(BrokenStream())("chunk")


@pytest.mark.asyncio
async def test_collect_stream_decodes_split_multibyte_characters() -> None:
    reader = asyncio.StreamReader()
    encoded = "héllo".encode("utf-8")
    reader.feed_data(encoded[:2])
    reader.feed_data(encoded[2:])
    reader.feed_eof()

    log = ChunkLog()
    await collect_stream(reader, [log, None])
    assert log.text == "héllo"


@pytest.mark.asyncio
async def test_collect_stream_feeds_every_sink() -> None:
    reader = asyncio.StreamReader()
    reader.feed_data(b"line\n")
    reader.feed_eof()

    first, second = ChunkLog(), ChunkLog()
    await collect_stream(reader, [first, second])
    assert first.calls == second.calls == ["line\n"]
