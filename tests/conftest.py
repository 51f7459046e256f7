from __future__ import annotations

"""
Shared pytest fixtures for the full test suite.

This module:
- exposes the mock CLI command builder from `tests.support.clis`, and
- provides isolated harness settings whose scratch directory lives in the
  test's own `tmp_path`, so parallel tests never share temporary scripts.
"""

from pathlib import Path
from typing import Callable

import pytest

from clidrive.config import Settings
from tests.support.clis import mock_cli_command


@pytest.fixture
def mock_cli() -> Callable[[str], str]:
    """Returns a function mapping a mock CLI name to the shell command that runs it."""
    return mock_cli_command


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def settings(scratch_dir: Path) -> Settings:
    return Settings(tmp_dir=str(scratch_dir))
