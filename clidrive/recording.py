from __future__ import annotations

"""
Session recording.

A recorded run gets its own directory under the record root:

    session_<utc yyyymmdd_HHMMSS>_<4 hex>/
        meta.json      command, cwd, timestamps, exit code, file paths
        stdout.log     raw stdout chunks
        stderr.log     raw stderr chunks
        stdin.log      every injected input
        session.cast   asciinema v2 cast (header line, then one event per line)

In the cast, stdout and stderr chunks are "o" events and injected inputs are
"i" events, so `asciinema play session.cast` replays what a terminal would
have shown.
"""

import datetime as dt
import json
import os
import shutil
import time
import uuid
from contextlib import ExitStack
from typing import Any, TextIO

CAST_VERSION = 2


def now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def new_session_id() -> str:
    stamp = dt.datetime.now(dt.timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"session_{stamp}_{uuid.uuid4().hex[:4]}"


def write_json(path: str, payload: dict) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, sort_keys=True)


def cast_header(command: str, columns: int, lines: int, started: float) -> dict[str, Any]:
    """asciinema v2 header for a run of `command` on a `columns` x `lines` terminal."""
    return {
        "version": CAST_VERSION,
        "width": columns,
        "height": lines,
        "timestamp": int(started),
        "command": command,
    }


def cast_event(offset_seconds: float, code: str, data: str) -> str:
    return json.dumps([round(float(offset_seconds), 6), code, data], ensure_ascii=False)


def write_line(handle: TextIO, line: str) -> None:
    handle.write(line)
    handle.write("\n")
    handle.flush()


class SessionRecorder:
    """Writes the artifacts of one harness run while it happens.

    Use as a context manager; `finish()` records the exit code before the
    context closes. A run that raises before `finish()` is recorded with
    `exit_code: null` and the error message.
    """

    def __init__(self, record_dir: str, command: str, cwd: str | None) -> None:
        self.session_id = new_session_id()
        self.path = os.path.join(record_dir, self.session_id)
        self.command = command
        self.cwd = cwd
        self.meta_path = os.path.join(self.path, "meta.json")
        self.stdout_path = os.path.join(self.path, "stdout.log")
        self.stderr_path = os.path.join(self.path, "stderr.log")
        self.stdin_path = os.path.join(self.path, "stdin.log")
        self.cast_path = os.path.join(self.path, "session.cast")
        self.meta: dict[str, Any] = {}
        self._files: dict[str, TextIO] = {}
        self._stack = ExitStack()
        self._started = 0.0

    def __enter__(self) -> SessionRecorder:
        os.makedirs(self.path, exist_ok=True)
        for name, path in (
            ("stdout", self.stdout_path),
            ("stderr", self.stderr_path),
            ("stdin", self.stdin_path),
            ("cast", self.cast_path),
        ):
            self._files[name] = self._stack.enter_context(open(path, "a", encoding="utf-8", newline=""))
        self._started = time.monotonic()
        self.meta = {
            "session_id": self.session_id,
            "command": self.command,
            "cwd": self.cwd,
            "started_at": now_iso(),
            "ended_at": None,
            "exit_code": None,
        }
        write_json(self.meta_path, self.meta)
        size = shutil.get_terminal_size()
        write_line(
            self._files["cast"],
            json.dumps(
                cast_header(self.command, size.columns, size.lines, time.time()),
                ensure_ascii=False,
            ),
        )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is not None and self.meta.get("exit_code") is None:
            self.meta["error"] = str(exc)
        self.meta.update(
            {
                "ended_at": now_iso(),
                "stdout_path": self.stdout_path,
                "stderr_path": self.stderr_path,
                "stdin_path": self.stdin_path,
                "cast_path": self.cast_path,
            }
        )
        self._stack.close()
        write_json(self.meta_path, self.meta)

    def _record(self, stream: str, code: str, data: str) -> None:
        handle = self._files[stream]
        handle.write(data)
        handle.flush()
        write_line(self._files["cast"], cast_event(time.monotonic() - self._started, code, data))

    def output(self, chunk: str) -> None:
        self._record("stdout", "o", chunk)

    def error(self, chunk: str) -> None:
        self._record("stderr", "o", chunk)

    def input(self, payload: str) -> None:
        self._record("stdin", "i", payload)

    def finish(self, exit_code: int) -> None:
        self.meta["exit_code"] = exit_code
