from __future__ import annotations

import importlib
import os
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any

import pytest

from accterm.config import Settings
from accterm.errors import DispatcherDisposedError
from accterm.shell.dispatcher import (
    ExecutionResult,
    SessionState,
    ShellDispatcher,
    normalize_output,
    parse_directory_change,
)
from accterm.shell.interpreters import Interpreter

dispatcher_module = importlib.import_module("accterm.shell.dispatcher")

BASH = shutil.which("bash")
requires_bash = pytest.mark.skipif(BASH is None or os.name == "nt", reason="needs a POSIX bash")


class FakePopen:
    instances: list[FakePopen] = []
    stdout = "out"
    stderr = ""
    returncode = 0
    hang = False

    def __init__(self, argv: list[str], **kwargs: Any) -> None:
        self.argv = argv
        self.kwargs = kwargs
        self.killed = False
        self.pid = 4242
        type(self).instances.append(self)

    def communicate(self, timeout: float | None = None) -> tuple[str, str]:
        if self.hang and not self.killed:
            raise subprocess.TimeoutExpired(self.argv, timeout)
        return self.stdout, self.stderr

    def kill(self) -> None:
        self.killed = True


@pytest.fixture
def fake_popen(monkeypatch: pytest.MonkeyPatch) -> type[FakePopen]:
    class _Popen(FakePopen):
        instances: list[FakePopen] = []
        killed_trees: list[int] = []

    monkeypatch.setattr(dispatcher_module.subprocess, "Popen", _Popen)
    monkeypatch.setattr(dispatcher_module, "_kill_process_tree", _Popen.killed_trees.append)
    return _Popen


def _dispatcher(settings: Settings, cwd: str = "C:\\Users\\me\\proj", **kwargs: Any) -> ShellDispatcher:
    return ShellDispatcher(settings, state=SessionState(cwd=cwd, **kwargs))


def test_parse_directory_change() -> None:
    assert parse_directory_change("cd ..", Interpreter.NATIVE) == ".."
    assert parse_directory_change("cd..", Interpreter.LEGACY) == ".."
    assert parse_directory_change("CD src", Interpreter.POSIX) == "src"
    assert parse_directory_change("cd /d D:\\work", Interpreter.LEGACY) == "D:\\work"
    assert parse_directory_change("cd", Interpreter.NATIVE) == ""
    assert parse_directory_change("echo cd", Interpreter.NATIVE) is None
    assert parse_directory_change("cdrom", Interpreter.NATIVE) is None


def test_stdout_wins_over_stderr() -> None:
    result = normalize_output("out\n", "warn", 0, Interpreter.NATIVE)
    assert result.output == "out"
    assert result.success


def test_stderr_reported_only_on_failure() -> None:
    failed = normalize_output("", "boom\n", 1, Interpreter.NATIVE)
    assert failed.output == "ERROR: boom"
    assert failed.is_error

    noisy = normalize_output("", "noise", 0, Interpreter.LEGACY)
    assert noisy.output == ""
    assert noisy.success


def test_silent_failure_message_depends_on_interpreter() -> None:
    posix = normalize_output("", "", 2, Interpreter.POSIX)
    assert posix.output == "Command failed with exit code 2"
    assert posix.exit_code == 2

    native = normalize_output("", "", 2, Interpreter.NATIVE)
    assert native.output == ""
    assert not native.success


def test_execute_runs_native_command_in_session_directory(settings: Settings, fake_popen: type[FakePopen]) -> None:
    dispatcher = _dispatcher(settings)

    result = dispatcher.execute("Get-ChildItem")

    assert result == ExecutionResult("out", exit_code=0, interpreter=Interpreter.NATIVE)
    (process,) = fake_popen.instances
    assert process.argv[0] == "powershell.exe"
    assert process.kwargs["cwd"] == "C:\\Users\\me\\proj"
    assert process.kwargs["stdin"] is subprocess.DEVNULL
    if os.name != "nt":
        assert process.kwargs["start_new_session"] is True


def test_execute_blank_line_spawns_nothing(settings: Settings, fake_popen: type[FakePopen]) -> None:
    assert _dispatcher(settings).execute("   ").output == ""
    assert fake_popen.instances == []


def test_timeout_kills_process(settings: Settings, fake_popen: type[FakePopen]) -> None:
    fake_popen.hang = True
    dispatcher = ShellDispatcher(
        settings.model_copy(update={"command_timeout_seconds": 0.5}),
        state=SessionState(cwd="C:\\", interpreter=Interpreter.LEGACY),
    )

    result = dispatcher.execute("ping -t localhost")

    assert result.timed_out
    assert result.is_error
    assert result.output == "Command timed out after 0.5 seconds."
    assert fake_popen.instances[0].killed
    assert fake_popen.killed_trees == [4242]


def test_spawn_failure_is_reported_in_band(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    def _missing(*_args: Any, **_kwargs: Any) -> None:
        raise FileNotFoundError("powershell.exe")

    monkeypatch.setattr(dispatcher_module.subprocess, "Popen", _missing)

    result = _dispatcher(settings).execute("Get-Date")

    assert result.is_error
    assert result.output.startswith("Error executing command: ")


def test_closed_dispatcher_raises(settings: Settings) -> None:
    dispatcher = _dispatcher(settings)
    dispatcher.close()
    dispatcher.close()

    assert dispatcher.closed
    with pytest.raises(DispatcherDisposedError, match="shut down"):
        dispatcher.execute("dir")


def test_context_manager_closes(settings: Settings) -> None:
    with _dispatcher(settings) as dispatcher:
        assert not dispatcher.closed
    assert dispatcher.closed


def test_switch_interpreter_messages(settings: Settings) -> None:
    dispatcher = _dispatcher(settings)

    assert dispatcher.switch_interpreter(Interpreter.NATIVE).output == "Already in PowerShell mode."

    unavailable = dispatcher.switch_interpreter(Interpreter.POSIX)
    assert unavailable.is_error
    assert unavailable.output == "ERROR: Bash is not available.\nBash binaries not found in application directory."
    assert dispatcher.interpreter is Interpreter.NATIVE

    assert dispatcher.switch_interpreter(Interpreter.LEGACY).output == "Switched to CMD mode."
    assert dispatcher.interpreter is Interpreter.LEGACY


def test_cd_parent_updates_session_directory(
    settings: Settings, fake_popen: type[FakePopen], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(dispatcher_module, "_directory_exists", lambda _path: True)
    dispatcher = _dispatcher(settings)

    result = dispatcher.execute("cd ..")

    assert result.output == "C:\\Users\\me"
    assert result.success
    assert dispatcher.current_directory == "C:\\Users\\me"
    assert fake_popen.instances == []


def test_cd_to_missing_directory_keeps_cwd(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(dispatcher_module, "_directory_exists", lambda _path: False)
    dispatcher = _dispatcher(settings)

    result = dispatcher.execute("cd nope")

    assert result.is_error
    assert result.output == "cd: C:\\Users\\me\\proj\\nope: No such file or directory"
    assert dispatcher.current_directory == "C:\\Users\\me\\proj"


def test_bare_cd_reports_directory_outside_bash(settings: Settings) -> None:
    assert _dispatcher(settings).execute("cd").output == "C:\\Users\\me\\proj"


def test_posix_without_shell_reports_missing_binaries(settings: Settings) -> None:
    dispatcher = _dispatcher(settings, cwd="/srv", interpreter=Interpreter.POSIX)

    result = dispatcher.execute("ls")

    assert result.is_error
    assert result.output == "Error: Bash binaries not found. Application may be corrupted."


@pytest.fixture
def bash_settings(tmp_path: Path) -> Settings:
    assert BASH is not None
    return Settings(
        _env_file=None,
        unix_bin_dir=tmp_path / "bin",
        posix_shell=Path(BASH),
        command_timeout_seconds=5,
    )


@requires_bash
def test_bash_echo(bash_settings: Settings, tmp_path: Path) -> None:
    dispatcher = _dispatcher(bash_settings, cwd=str(tmp_path), interpreter=Interpreter.POSIX)

    result = dispatcher.execute("echo hello")

    assert result.output == "hello"
    assert result.success


@requires_bash
def test_bash_failure_reports_stderr(bash_settings: Settings, tmp_path: Path) -> None:
    dispatcher = _dispatcher(bash_settings, cwd=str(tmp_path), interpreter=Interpreter.POSIX)

    result = dispatcher.execute("ls definitely-missing-file")

    assert result.is_error
    assert result.output.startswith("ERROR: ")
    assert "definitely-missing-file" in result.output


@requires_bash
def test_bash_silent_failure(bash_settings: Settings, tmp_path: Path) -> None:
    dispatcher = _dispatcher(bash_settings, cwd=str(tmp_path), interpreter=Interpreter.POSIX)
    assert dispatcher.execute("exit 3").output == "Command failed with exit code 3"


@requires_bash
def test_bash_cd_then_pwd(bash_settings: Settings, tmp_path: Path) -> None:
    (tmp_path / "sub").mkdir()
    dispatcher = _dispatcher(bash_settings, cwd=str(tmp_path), interpreter=Interpreter.POSIX)

    assert dispatcher.execute("cd sub").output == str(tmp_path / "sub")
    assert dispatcher.execute("pwd").output == str(tmp_path / "sub")


@requires_bash
def test_bash_bare_cd_goes_home(bash_settings: Settings, tmp_path: Path) -> None:
    dispatcher = _dispatcher(bash_settings, cwd="/", interpreter=Interpreter.POSIX, home=str(tmp_path))
    assert dispatcher.execute("cd").output == str(tmp_path)
    assert dispatcher.current_directory == str(tmp_path)


@requires_bash
def test_bash_timeout(bash_settings: Settings, tmp_path: Path) -> None:
    dispatcher = ShellDispatcher(
        bash_settings.model_copy(update={"command_timeout_seconds": 0.3}),
        state=SessionState(cwd=str(tmp_path), interpreter=Interpreter.POSIX),
    )

    result = dispatcher.execute("sleep 2")

    assert result.timed_out
    assert result.output == "Command timed out after 0.3 seconds."


def _running_commands(marker: bytes) -> list[str]:
    found = []
    for cmdline in Path("/proc").glob("[0-9]*/cmdline"):
        try:
            if marker in cmdline.read_bytes():
                found.append(cmdline.parent.name)
        except OSError:
            continue
    return found


@requires_bash
@pytest.mark.skipif(not Path("/proc").is_dir(), reason="needs /proc to list processes")
def test_bash_timeout_kills_forked_commands(bash_settings: Settings, tmp_path: Path) -> None:
    marker = b"sleep\x0037.25"
    dispatcher = ShellDispatcher(
        bash_settings.model_copy(update={"command_timeout_seconds": 0.5}),
        state=SessionState(cwd=str(tmp_path), interpreter=Interpreter.POSIX),
    )

    started = time.monotonic()
    result = dispatcher.execute("sleep 37.25; echo done")
    elapsed = time.monotonic() - started

    assert result.timed_out
    assert elapsed < 0.5 + 3
    deadline = time.monotonic() + 2
    while _running_commands(marker) and time.monotonic() < deadline:
        time.sleep(0.05)
    assert _running_commands(marker) == []
