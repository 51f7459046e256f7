from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clidrive.collector import ChunkLog, ExecutionResult


class HarnessError(RuntimeError):
    """Base class for every error raised by clidrive."""


class ConfigError(HarnessError):
    """Raised when settings cannot be loaded or hold invalid values."""


class SpawnFailure(HarnessError):
    """Raised when the child process could not be created at all."""

    def __init__(self, command: str, cwd: str | None, reason: str) -> None:
        super().__init__(f"Failed to start \"{command}\" in {cwd or '.'}: {reason}")
        self.command = command
        self.cwd = cwd
        self.reason = reason


class ExecutionFailure(HarnessError):
    """Raised when the driven process exits with a non-zero code.

    Carries everything captured before the process exited so assertions can
    still inspect the output of a failing run.
    """

    def __init__(self, command: str, exit_code: int, output: ChunkLog, error: ChunkLog) -> None:
        self.message = f"Failed executing \"{command}\" with exit code: {exit_code}"
        super().__init__(self.message)
        self.command = command
        self.exit_code = exit_code
        self.output = output
        self.error = error

    @property
    def result(self) -> ExecutionResult:
        from clidrive.collector import ExecutionResult

        return ExecutionResult(
            exit_code=self.exit_code,
            command=self.command,
            output=self.output,
            error=self.error,
        )
