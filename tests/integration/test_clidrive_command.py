from __future__ import annotations

import json
from pathlib import Path

import pytest

from clidrive.cli import main
from tests.support.clis import mock_cli_path


pytestmark = pytest.mark.integration


def test_run_command_streams_output_and_returns_exit_code(mock_cli, capsys, tmp_path: Path) -> None:
    code = main(["run", "--command", mock_cli("confirm"), "--cwd", str(tmp_path), "--input", "y", "--key", "enter"])
    captured = capsys.readouterr()
    assert code == 0
    assert "Continue? (y/n)" in captured.out
    assert "You said: y" in captured.out


def test_run_command_reports_failures(mock_cli, capsys, tmp_path: Path) -> None:
    code = main(["run", "--command", mock_cli("different_exit_code"), "--cwd", str(tmp_path)])
    captured = capsys.readouterr()
    assert code == 1
    assert "with exit code: 1" in captured.err
    assert "Something bad happened" in captured.err


def test_run_script_file_with_config(capsys, tmp_path: Path) -> None:
    scratch = tmp_path / "scratch"
    config = tmp_path / "clidrive.yaml"
    config.write_text(f"tmp_dir: {scratch}\ninput_delay: 0.05\n", encoding="utf-8")
    script = tmp_path / "answer.py"
    script.write_text(
        "import sys\n"
        f"sys.path.insert(0, {str(mock_cli_path('confirm').parent)!r})\n"
        "from _terminal import KeyReader\n"
        "print('got', KeyReader().read_line(), flush=True)\n",
        encoding="utf-8",
    )

    code = main(["run", "--script", str(script), "--config", str(config), "--input", "42", "--key", "ENTER"])
    assert code == 0
    assert "got 42" in capsys.readouterr().out
    assert list(scratch.iterdir()) == []


def test_run_records_sessions(mock_cli, tmp_path: Path) -> None:
    record_root = tmp_path / "sessions"
    code = main(
        [
            "run",
            "--command",
            mock_cli("confirm"),
            "--cwd",
            str(tmp_path),
            "--pause",
            "0.2",
            "--input",
            "n",
            "--key",
            "ENTER",
            "--record-dir",
            str(record_root),
        ]
    )
    assert code == 0
    (session_dir,) = list(record_root.iterdir())
    meta = json.loads((session_dir / "meta.json").read_text(encoding="utf-8"))
    assert meta["exit_code"] == 0


def test_bad_cwd_exits_with_usage_status(mock_cli, capsys, tmp_path: Path) -> None:
    code = main(["run", "--command", mock_cli("confirm"), "--cwd", str(tmp_path / "missing")])
    assert code == 2
    assert "clidrive:" in capsys.readouterr().err
