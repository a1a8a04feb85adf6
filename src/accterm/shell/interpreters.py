"""The three interpreters a session can drive."""

from __future__ import annotations

import os
import shlex
import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from accterm.errors import UnknownInterpreterError

NATIVE_EXECUTABLE = "powershell.exe"
LEGACY_EXECUTABLE = "cmd.exe"

# Commands that always run inside the POSIX shell even when no bundled binary exists.
POSIX_COMMANDS = frozenset({
    "ls", "grep", "awk", "sed", "find", "cat", "head", "tail",
    "curl", "wget", "git", "ssh", "scp", "tar", "gzip", "gunzip", "zip", "unzip",
    "chmod", "chown", "ps", "kill", "touch", "mkdir", "rm", "cp", "mv", "echo", "pwd",
})  # fmt: skip

_GIT_BASH_LOCATIONS = (
    r"C:\Program Files\Git\bin\bash.exe",
    r"C:\Program Files (x86)\Git\bin\bash.exe",
    r"C:\Program Files\Git\usr\bin\bash.exe",
)


class Interpreter(StrEnum):
    NATIVE = "powershell"
    LEGACY = "cmd"
    POSIX = "bash"

    @property
    def label(self) -> str:
        return INTERPRETER_SPECS[self].label

    @property
    def separator(self) -> str:
        return INTERPRETER_SPECS[self].separator

    @classmethod
    def parse(cls, name: str) -> Interpreter:
        key = name.strip().lower()
        try:
            return _ALIASES[key]
        except KeyError:
            raise UnknownInterpreterError(f"unknown shell: {name}") from None


@dataclass(frozen=True)
class InterpreterSpec:
    """Static per-interpreter data."""

    label: str
    executable: str
    separator: str
    aliases: tuple[str, ...]


INTERPRETER_SPECS: dict[Interpreter, InterpreterSpec] = {
    Interpreter.NATIVE: InterpreterSpec("PowerShell", NATIVE_EXECUTABLE, "\\", ("powershell", "pwsh", "ps")),
    Interpreter.LEGACY: InterpreterSpec("CMD", LEGACY_EXECUTABLE, "\\", ("cmd", "cmd.exe")),
    Interpreter.POSIX: InterpreterSpec("Bash", "bash", "/", ("bash", "sh", "posix")),
}

_ALIASES: dict[str, Interpreter] = {
    alias: interpreter for interpreter, spec in INTERPRETER_SPECS.items() for alias in spec.aliases
}


def native_argv(command: str, cwd: str) -> list[str]:
    """Build the PowerShell invocation for one command line."""
    if command.lstrip().lower().startswith("curl "):
        # `curl` is an alias for Invoke-WebRequest in Windows PowerShell.
        stripped = command.lstrip()
        command = "curl.exe" + stripped[4:]
    location = cwd.replace("'", "''")
    script = f"Set-Location -LiteralPath '{location}'; $ProgressPreference='SilentlyContinue'; {command}"
    return [NATIVE_EXECUTABLE, "-NoProfile", "-NonInteractive", "-Command", script]


def legacy_argv(command: str) -> list[str]:
    return [LEGACY_EXECUTABLE, "/c", command]


def posix_argv(executable: str, command: str, *, cwd: str, bin_dir: str) -> list[str]:
    script = f"export PATH={shlex.quote(bin_dir)}:$PATH && cd {shlex.quote(cwd)} && {command}"
    return [executable, "-c", script]


def command_name(command: str) -> str:
    parts = command.strip().split(maxsplit=1)
    return parts[0].lower() if parts else ""


def is_posix_command(command: str, bin_dir: Path) -> bool:
    """Whether the command should run natively inside the POSIX shell."""
    name = command_name(command)
    if not name:
        return False
    if name in POSIX_COMMANDS:
        return True
    return (bin_dir / name).is_file() or (bin_dir / f"{name}.exe").is_file()


def find_posix_shell(bin_dir: Path, *, explicit: Path | None = None, extra: Iterable[str] = ()) -> str | None:
    """Locate the POSIX shell: explicit, bundled, well-known installs, then PATH."""
    if explicit is not None:
        return str(explicit) if explicit.is_file() else None
    for candidate in (bin_dir / "bash.exe", bin_dir / "bash"):
        if candidate.is_file():
            return str(candidate)
    local_app_data = os.environ.get("LOCALAPPDATA")
    locations = list(_GIT_BASH_LOCATIONS)
    if local_app_data:
        locations.append(os.path.join(local_app_data, "Programs", "Git", "bin", "bash.exe"))
    locations.extend(extra)
    for location in locations:
        if os.path.isfile(location):
            return location
    return shutil.which("bash")
