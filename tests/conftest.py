from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from accterm.config import Settings
from accterm.errors import DispatcherDisposedError
from accterm.shell.dispatcher import ExecutionResult, SessionState
from accterm.shell.interpreters import Interpreter


@dataclass
class FakeDispatcher:
    cwd: str = "/work"
    responses: dict[str, ExecutionResult] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    switches: list[Interpreter] = field(default_factory=list)
    closed: bool = False
    state: SessionState = field(init=False)

    def __post_init__(self) -> None:
        self.state = SessionState(cwd=self.cwd, interpreter=Interpreter.POSIX, home="/home/me")

    @property
    def current_directory(self) -> str:
        return self.state.cwd

    @property
    def interpreter(self) -> Interpreter:
        return self.state.interpreter

    def execute(self, command_line: str) -> ExecutionResult:
        if self.closed:
            raise DispatcherDisposedError()
        self.calls.append(command_line)
        return self.responses.get(command_line, ExecutionResult(f"ran {command_line}"))

    def switch_interpreter(self, interpreter: Interpreter) -> ExecutionResult:
        self.switches.append(interpreter)
        self.state.interpreter = interpreter
        return ExecutionResult(f"Switched to {interpreter.label} mode.", interpreter=interpreter)

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, unix_bin_dir=tmp_path / "bin", posix_shell=tmp_path / "no-bash")


@pytest.fixture
def fake_dispatcher() -> FakeDispatcher:
    return FakeDispatcher()
