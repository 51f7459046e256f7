from __future__ import annotations

import json
from pathlib import Path

import pytest

from clidrive.recording import SessionRecorder, cast_event, cast_header


pytestmark = pytest.mark.unit


def test_cast_header_describes_the_recorded_terminal() -> None:
    header = cast_header("python3 tool.py", 120, 40, 1700000000.75)

    assert header == {
        "version": 2,
        "width": 120,
        "height": 40,
        "timestamp": 1700000000,
        "command": "python3 tool.py",
    }


def test_cast_event_rounds_offset() -> None:
    data = json.loads(cast_event(0.12345678, "o", "hello"))
    assert data == [0.123457, "o", "hello"]


def test_recorder_writes_logs_cast_and_meta(tmp_path: Path) -> None:
    with SessionRecorder(str(tmp_path), "tool --flag", "/work") as recorder:
        recorder.output("out\n")
        recorder.error("err\n")
        recorder.input("y")
        recorder.finish(0)

    session_dir = Path(recorder.path)
    assert session_dir.parent == tmp_path
    assert session_dir.name.startswith("session_")
    assert (session_dir / "stdout.log").read_text(encoding="utf-8") == "out\n"
    assert (session_dir / "stderr.log").read_text(encoding="utf-8") == "err\n"
    assert (session_dir / "stdin.log").read_text(encoding="utf-8") == "y"

    lines = (session_dir / "session.cast").read_text(encoding="utf-8").splitlines()
    header = json.loads(lines[0])
    events = [json.loads(line) for line in lines[1:]]
    assert header["command"] == "tool --flag"
    assert [(code, data) for _offset, code, data in events] == [("o", "out\n"), ("o", "err\n"), ("i", "y")]

    meta = json.loads((session_dir / "meta.json").read_text(encoding="utf-8"))
    assert meta["exit_code"] == 0
    assert meta["cwd"] == "/work"
    assert meta["ended_at"] is not None
    assert "error" not in meta


def test_recorder_marks_meta_when_run_raises(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        with SessionRecorder(str(tmp_path), "tool", None) as recorder:
            raise RuntimeError("spawn exploded")

    meta = json.loads((Path(recorder.path) / "meta.json").read_text(encoding="utf-8"))
    assert meta["exit_code"] is None
    assert meta["error"] == "spawn exploded"
