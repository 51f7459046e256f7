"""Drive interactive command-line programs from tests.

    >>> from clidrive import ENTER, drive_cli
    >>> result = drive_cli("my-tool init", inputs=["my-project", ENTER])
    >>> result.output.contains(r"Created my-project")
"""
from clidrive.collector import ChunkLog, ExecutionResult, OnData
from clidrive.config import Settings, load_settings
from clidrive.errors import ConfigError, ExecutionFailure, HarnessError, SpawnFailure
from clidrive.execute import exec_command
from clidrive.harness import RunSpec, drive_cli, run_cli, run_spec
from clidrive.inputs import InputEvent, send_inputs
from clidrive.keys import BACKSPACE, CTRL_C, CTRL_D, DOWN, ENTER, ESCAPE, LEFT, RIGHT, SPACE, TAB, UP

__all__ = [
    "BACKSPACE",
    "CTRL_C",
    "CTRL_D",
    "ChunkLog",
    "ConfigError",
    "DOWN",
    "ENTER",
    "ESCAPE",
    "ExecutionFailure",
    "ExecutionResult",
    "HarnessError",
    "InputEvent",
    "LEFT",
    "OnData",
    "RIGHT",
    "RunSpec",
    "SPACE",
    "Settings",
    "SpawnFailure",
    "TAB",
    "UP",
    "drive_cli",
    "exec_command",
    "load_settings",
    "run_cli",
    "run_spec",
    "send_inputs",
]
