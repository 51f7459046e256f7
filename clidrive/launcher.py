from __future__ import annotations

import asyncio
import logging
import os
import shlex
import shutil
import signal
import uuid
from typing import Mapping

from clidrive.errors import SpawnFailure

logger = logging.getLogger(__name__)

STREAM_LIMIT = 2**16


def script_path(tmp_dir: str, extension: str) -> str:
    return os.path.join(tmp_dir, f"{uuid.uuid4().hex}.{extension.lstrip('.')}")


def write_script(body: str, tmp_dir: str, extension: str) -> str:
    os.makedirs(tmp_dir, exist_ok=True)
    path = script_path(tmp_dir, extension)
    # "x": never overwrite an existing script.
    with open(path, "x", encoding="utf-8") as handle:
        handle.write(body)
    return path


def script_command(interpreter: str, path: str) -> str:
    return f"{interpreter} {shlex.quote(path)}"


def check_interpreter(interpreter: str) -> None:
    try:
        parts = shlex.split(interpreter)
    except ValueError as exc:
        raise SpawnFailure(interpreter, None, f"cannot parse interpreter: {exc}") from exc
    if not parts:
        raise SpawnFailure(interpreter, None, "interpreter command is empty")
    if shutil.which(parts[0]) is None:
        raise SpawnFailure(interpreter, None, f"interpreter {parts[0]!r} not found")


def merged_env(env: Mapping[str, str] | None) -> dict[str, str] | None:
    if not env:
        return None
    merged = dict(os.environ)
    merged.update({str(key): str(value) for key, value in env.items()})
    return merged


class ExitWatcher(asyncio.subprocess.SubprocessStreamProtocol):
    """Stream protocol that settles `exited` as soon as the child exits.

    `Process.wait()` also waits for every pipe to close, which never happens
    while a backgrounded descendant still holds stdout or stderr.
    """

    def __init__(self, limit: int, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(limit=limit, loop=loop)
        self.exited: asyncio.Future[int] = loop.create_future()
        self.transport: asyncio.SubprocessTransport | None = None

    def connection_made(self, transport) -> None:
        super().connection_made(transport)
        self.transport = transport

    def process_exited(self) -> None:
        super().process_exited()
        if not self.exited.done() and self.transport is not None:
            self.exited.set_result(self.transport.get_returncode())


class ChildProcess:
    """One spawned shell command and its piped standard streams.

    The shell leads its own process group, so `kill()` reaches the program it
    runs as well as the shell itself.
    """

    def __init__(self, transport: asyncio.SubprocessTransport, protocol: ExitWatcher) -> None:
        self.transport = transport
        self.protocol = protocol

    @property
    def pid(self) -> int:
        return self.transport.get_pid()

    @property
    def returncode(self) -> int | None:
        return self.transport.get_returncode()

    @property
    def exited(self) -> asyncio.Future[int]:
        return self.protocol.exited

    @property
    def stdin(self) -> asyncio.StreamWriter:
        return self.protocol.stdin

    @property
    def stdout(self) -> asyncio.StreamReader:
        return self.protocol.stdout

    @property
    def stderr(self) -> asyncio.StreamReader:
        return self.protocol.stderr

    def kill(self) -> None:
        try:
            os.killpg(self.pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.debug("process group %d already gone", self.pid)

    def close(self) -> None:
        self.transport.close()


async def spawn(
    command: str,
    cwd: str | None,
    env: Mapping[str, str] | None = None,
) -> ChildProcess:
    logger.debug("launching %r in %s", command, cwd or os.getcwd())
    loop = asyncio.get_running_loop()
    try:
        transport, protocol = await loop.subprocess_shell(
            lambda: ExitWatcher(limit=STREAM_LIMIT, loop=loop),
            command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=merged_env(env),
            start_new_session=True,
        )
    except OSError as exc:
        raise SpawnFailure(command, cwd, exc.strerror or str(exc)) from exc
    return ChildProcess(transport, protocol)
