"""Shell dispatcher: runs one command line against the selected interpreter."""

from __future__ import annotations

import os
import re
import signal
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Any

from loguru import logger

from accterm.config import Settings
from accterm.errors import DispatcherDisposedError
from accterm.logging_utils import reset_current_shell, set_current_shell

from .interpreters import (
    Interpreter,
    find_posix_shell,
    is_posix_command,
    legacy_argv,
    native_argv,
    posix_argv,
)
from .output_filter import filter_progress, filter_shell_warnings
from .paths import build_environment, posix_temp_dir, resolve_directory, rewrite_mount_paths, to_posix_path

IS_WINDOWS = os.name == "nt"
ERROR_PREFIX = "ERROR: "
KILL_GRACE_SECONDS = 5
CD_RE = re.compile(r"^cd(?:\s+(?P<target>.*)|(?P<parent>\.\.))?$", re.IGNORECASE | re.DOTALL)
LEGACY_DRIVE_FLAG_RE = re.compile(r"^/d\s+", re.IGNORECASE)


@dataclass
class SessionState:
    """Mutable per-session shell state.

    Single writer: only the dispatcher changes it, one command at a time.
    """

    cwd: str
    interpreter: Interpreter = Interpreter.NATIVE
    home: str = field(default_factory=lambda: str(Path.home()))
    env_overrides: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutionResult:
    """Normalized outcome of one dispatched command."""

    output: str
    success: bool = True
    timed_out: bool = False
    exit_code: int | None = None
    interpreter: Interpreter | None = None

    @property
    def is_error(self) -> bool:
        return not self.success

    @classmethod
    def failure(
        cls, message: str, interpreter: Interpreter | None = None, *, exit_code: int | None = None
    ) -> ExecutionResult:
        return cls(output=message, success=False, exit_code=exit_code, interpreter=interpreter)


@dataclass(frozen=True)
class _Completed:
    stdout: str
    stderr: str
    returncode: int


def _directory_exists(path: str) -> bool:
    return os.path.isdir(path)


def _kill_process_tree(pid: int) -> None:
    """Kill the process group led by pid, including commands the interpreter forked."""
    if IS_WINDOWS:
        subprocess.run(  # noqa: S603
            ["taskkill", "/T", "/F", "/PID", str(pid)],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
        return
    os.killpg(pid, signal.SIGKILL)


def _spawn_options() -> dict[str, Any]:
    # Own process group so a timeout also reaches commands the interpreter forked.
    if IS_WINDOWS:
        flags = getattr(subprocess, "CREATE_NO_WINDOW", 0) | getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
        return {"creationflags": flags}
    return {"start_new_session": True}


def parse_directory_change(command: str, interpreter: Interpreter) -> str | None:
    """Return the ``cd`` target (``""`` for a bare ``cd``), or None for other commands."""
    match = CD_RE.match(command.strip())
    if match is None:
        return None
    if match.group("parent"):
        return ".."
    target = (match.group("target") or "").strip()
    if interpreter is Interpreter.LEGACY:
        target = LEGACY_DRIVE_FLAG_RE.sub("", target)
    return target


def normalize_output(
    stdout: str,
    stderr: str,
    exit_code: int,
    interpreter: Interpreter,
) -> ExecutionResult:
    """Apply the stdout/stderr selection policy to raw captured output.

    Non-empty stdout wins. Otherwise stderr is reported only when the exit code
    is non-zero; stderr from a successful process is treated as noise.
    """
    success = exit_code == 0
    output = filter_progress(stdout)
    if output:
        return ExecutionResult(output, success=success, exit_code=exit_code, interpreter=interpreter)
    error = filter_progress(stderr)
    if error and not success:
        return ExecutionResult(ERROR_PREFIX + error, success=False, exit_code=exit_code, interpreter=interpreter)
    if not success and interpreter is Interpreter.POSIX:
        return ExecutionResult.failure(f"Command failed with exit code {exit_code}", interpreter, exit_code=exit_code)
    return ExecutionResult("", success=success, exit_code=exit_code, interpreter=interpreter)


class ShellDispatcher:
    """Execute command lines for one session.

    Owns the session working directory. Failures are reported in-band as
    ``ExecutionResult`` values; only dispatching after :meth:`close` raises.
    """

    def __init__(self, settings: Settings, *, state: SessionState | None = None) -> None:
        self._settings = settings
        self.state = state or SessionState(cwd=os.getcwd(), interpreter=Interpreter.parse(settings.default_shell))
        self._bin_dir = settings.unix_bin_dir
        self._posix_shell = find_posix_shell(self._bin_dir, explicit=settings.posix_shell)
        self._process: subprocess.Popen[str] | None = None
        self._lock = threading.Lock()
        self._closed = False
        if self._posix_shell is None:
            logger.info("posix shell not found, bash mode unavailable")

    @property
    def timeout(self) -> float:
        return self._settings.command_timeout_seconds

    @property
    def current_directory(self) -> str:
        return self.state.cwd

    @property
    def interpreter(self) -> Interpreter:
        return self.state.interpreter

    @property
    def closed(self) -> bool:
        return self._closed

    def is_available(self, interpreter: Interpreter) -> bool:
        if interpreter is Interpreter.POSIX:
            return self._posix_shell is not None
        return True

    def switch_interpreter(self, interpreter: Interpreter) -> ExecutionResult:
        if self._closed:
            raise DispatcherDisposedError()
        label = interpreter.label
        if interpreter is self.state.interpreter:
            return ExecutionResult(f"Already in {label} mode.", interpreter=interpreter)
        if not self.is_available(interpreter):
            return ExecutionResult.failure(
                f"{ERROR_PREFIX}{label} is not available.\n{label} binaries not found in application directory.",
                interpreter,
            )
        self.state.interpreter = interpreter
        logger.debug("switched shell to {}", interpreter.value)
        return ExecutionResult(f"Switched to {label} mode.", interpreter=interpreter)

    def execute(self, command_line: str, interpreter: Interpreter | None = None) -> ExecutionResult:
        if self._closed:
            raise DispatcherDisposedError()
        interpreter = interpreter or self.state.interpreter
        command = command_line.strip()
        if not command:
            return ExecutionResult("", interpreter=interpreter)

        token = set_current_shell(interpreter.value)
        try:
            return self._dispatch(command, interpreter)
        except DispatcherDisposedError:
            raise
        except Exception as exc:
            logger.exception("dispatch failed: {}", command)
            return ExecutionResult.failure(f"Error executing command: {exc}", interpreter)
        finally:
            reset_current_shell(token)

    def change_directory(self, target: str, interpreter: Interpreter | None = None) -> ExecutionResult:
        interpreter = interpreter or self.state.interpreter
        if not target:
            if interpreter is not Interpreter.POSIX:
                return ExecutionResult(self.state.cwd, interpreter=interpreter)
            target = "~"
        resolved = resolve_directory(self.state.cwd, target, home=self.state.home)
        if not _directory_exists(resolved):
            return ExecutionResult.failure(f"cd: {resolved}: No such file or directory", interpreter)
        self.state.cwd = resolved
        logger.debug("cwd -> {}", resolved)
        return ExecutionResult(resolved, interpreter=interpreter)

    def close(self) -> None:
        """Release session resources once; later dispatches raise."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            process = self._process
        if process is not None:
            self._kill(process, reap=False)
        logger.debug("dispatcher closed")

    def __enter__(self) -> ShellDispatcher:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _dispatch(self, command: str, interpreter: Interpreter) -> ExecutionResult:
        target = parse_directory_change(command, interpreter)
        if target is not None:
            return self.change_directory(target, interpreter)
        if interpreter is Interpreter.POSIX:
            return self._run_posix(command)
        if interpreter is Interpreter.LEGACY:
            return self._run(legacy_argv(command), interpreter)
        return self._run(native_argv(command, self.state.cwd), interpreter)

    def _run(self, argv: list[str], interpreter: Interpreter) -> ExecutionResult:
        env = self._environment(interpreter)
        completed = self._spawn(argv, env)
        if completed is None:
            return self._timed_out(interpreter)
        return normalize_output(completed.stdout, completed.stderr, completed.returncode, interpreter)

    def _run_posix(self, command: str) -> ExecutionResult:
        if self._posix_shell is None:
            return ExecutionResult.failure(
                "Error: Bash binaries not found. Application may be corrupted.", Interpreter.POSIX
            )
        if IS_WINDOWS and not is_posix_command(command, self._bin_dir):
            # Platform executables go through cmd.exe to avoid bash quoting rules.
            logger.debug("routing {!r} through cmd", command)
            return self._run(legacy_argv(command), Interpreter.LEGACY)

        self._ensure_temp_dir()
        argv = posix_argv(
            self._posix_shell,
            command,
            cwd=to_posix_path(self.state.cwd),
            bin_dir=to_posix_path(str(self._bin_dir)),
        )
        completed = self._spawn(argv, self._environment(Interpreter.POSIX))
        if completed is None:
            return self._timed_out(Interpreter.POSIX)
        stdout = rewrite_mount_paths(completed.stdout)
        stderr = rewrite_mount_paths(filter_shell_warnings(completed.stderr))
        return normalize_output(stdout, stderr, completed.returncode, Interpreter.POSIX)

    def _environment(self, interpreter: Interpreter) -> dict[str, str]:
        return build_environment(
            interpreter,
            base=os.environ,
            bin_dir=self._bin_dir,
            home=self.state.home,
            overrides=self.state.env_overrides,
        )

    def _ensure_temp_dir(self) -> None:
        temp_dir = posix_temp_dir(self._bin_dir)
        if temp_dir.is_dir():
            return
        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.debug("cannot create {}: {}", temp_dir, exc)

    def _spawn(self, argv: list[str], env: dict[str, str]) -> _Completed | None:
        """Run argv to completion; None means the timeout fired."""
        logger.debug("spawn {} in {}", argv[0], self.state.cwd)
        process = subprocess.Popen(  # noqa: S603
            argv,
            cwd=self.state.cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            env=env,
            **_spawn_options(),
        )
        with self._lock:
            self._process = process
        try:
            stdout, stderr = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.warning("command timed out after {}s: {}", self.timeout, argv[0])
            self._kill(process)
            return None
        finally:
            with self._lock:
                self._process = None
        logger.debug("{} exited with {}", argv[0], process.returncode)
        return _Completed(stdout or "", stderr or "", process.returncode)

    def _timed_out(self, interpreter: Interpreter) -> ExecutionResult:
        return ExecutionResult(
            f"Command timed out after {self.timeout:g} seconds.",
            success=False,
            timed_out=True,
            interpreter=interpreter,
        )

    @staticmethod
    def _kill(process: subprocess.Popen[str], *, reap: bool = True) -> None:
        """Best-effort termination of the process tree; failures are logged and dropped."""
        try:
            _kill_process_tree(process.pid)
        except (OSError, subprocess.SubprocessError) as exc:
            logger.debug("process group kill failed for pid {}: {}", process.pid, exc)
        try:
            process.kill()
            if reap:
                process.communicate(timeout=KILL_GRACE_SECONDS)
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            logger.warning("failed to kill pid {}: {}", process.pid, exc)
