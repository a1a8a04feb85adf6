from __future__ import annotations

import importlib
import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

from accterm.core.session import TerminalSession

cli_app_module = importlib.import_module("accterm.cli.app")

BASH = shutil.which("bash")
requires_bash = pytest.mark.skipif(BASH is None, reason="needs bash on PATH")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ACCTERM_UNIX_BIN_DIR", str(tmp_path / "bin"))
    monkeypatch.setenv("ACCTERM_LOG_LEVEL", "WARNING")
    if BASH is not None:
        monkeypatch.setenv("ACCTERM_POSIX_SHELL", BASH)


def test_default_invocation_starts_interactive_terminal(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: list[TerminalSession] = []

    def _fake_run_terminal(session: TerminalSession, _renderer: object) -> None:
        captured.append(session)

    monkeypatch.setattr(cli_app_module, "run_terminal", _fake_run_terminal)

    result = CliRunner().invoke(cli_app_module.app, [])

    assert result.exit_code == 0
    assert len(captured) == 1


def test_run_uses_workspace_and_shell(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: list[TerminalSession] = []
    monkeypatch.setattr(cli_app_module, "run_terminal", lambda session, _renderer: captured.append(session))

    result = CliRunner().invoke(cli_app_module.app, ["run", "--shell", "cmd", "--workspace", str(tmp_path)])

    assert result.exit_code == 0
    (session,) = captured
    assert session.cwd == str(tmp_path.resolve())
    assert session.interpreter.value == "cmd"


def test_unknown_shell_is_rejected(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["exec", "ls", "--shell", "zsh", "--workspace", str(tmp_path)])

    assert result.exit_code == 2
    assert "unknown shell: zsh" in result.output


@requires_bash
def test_exec_prints_output(tmp_path: Path) -> None:
    result = CliRunner().invoke(
        cli_app_module.app, ["exec", "echo hi", "--shell", "bash", "--workspace", str(tmp_path)]
    )

    assert result.exit_code == 0
    assert result.output.strip() == "hi"


@requires_bash
def test_exec_failure_sets_exit_code(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["exec", "exit 3", "--shell", "bash", "--workspace", str(tmp_path)])

    assert result.exit_code == 1
    assert "Command failed with exit code 3" in result.output


def test_exec_builtin_needs_no_shell(tmp_path: Path) -> None:
    result = CliRunner().invoke(cli_app_module.app, ["exec", "monitor list", "--workspace", str(tmp_path)])

    assert result.exit_code == 0
    assert result.output.startswith("Monitored keywords (8):")
