"""Translation between Windows paths and the POSIX mount convention.

The bundled POSIX shell sees drive ``C:`` as ``/cygdrive/c``. Everything here is
pure: no function touches the file system, so Windows paths can be handled on
any host.
"""

from __future__ import annotations

import ntpath
import os
import posixpath
import re
from collections.abc import Mapping
from pathlib import Path

from .interpreters import Interpreter

MOUNT_PREFIX = "/cygdrive/"
DRIVE_PATH_RE = re.compile(r"^([A-Za-z]):(.*)$", re.DOTALL)
MOUNT_PATH_RE = re.compile(r"^/cygdrive/([A-Za-z])(/.*)?$", re.DOTALL)
MOUNT_IN_TEXT_RE = re.compile(r"/cygdrive/([a-z])((?:/[^\s]+)*)")
_QUOTES = "\"'"


def is_drive_path(path: str) -> bool:
    return DRIVE_PATH_RE.match(path) is not None


def to_posix_path(path: str) -> str:
    """``C:\\Users\\me`` -> ``/cygdrive/c/Users/me``; other paths only get forward slashes."""
    converted = path.replace("\\", "/")
    match = DRIVE_PATH_RE.match(converted)
    if match is None:
        return converted
    drive, rest = match.groups()
    return f"{MOUNT_PREFIX}{drive.lower()}{rest}"


def from_posix_path(path: str) -> str:
    """Inverse of :func:`to_posix_path` for mount-convention paths.

    The drive letter comes back upper-case and separators become backslashes,
    so ``to_posix_path`` followed by this function returns the input exactly
    only when its drive letter is upper-case; ``c:\\x`` comes back as ``C:\\x``.
    Paths outside the mount prefix are returned unchanged.
    """
    match = MOUNT_PATH_RE.match(path)
    if match is None:
        return path
    drive, rest = match.groups()
    rest = (rest or "\\").replace("/", "\\")
    return f"{drive.upper()}:{rest}"


def rewrite_mount_paths(text: str) -> str:
    """Replace mount-convention paths inside free text with drive paths.

    Forward slashes are kept so the output reads like the shell printed it.
    """
    return MOUNT_IN_TEXT_RE.sub(lambda m: f"{m.group(1).upper()}:{m.group(2)}", text)


def unquote(raw: str) -> str:
    return raw.strip().strip(_QUOTES)


def resolve_directory(current: str, target: str, *, home: str) -> str:
    """Resolve a ``cd`` target against the current directory.

    Handles relative, parent-relative (``..``), home-relative (``~``) and
    mount-convention targets. Drive-letter directories use Windows path rules
    regardless of the host.
    """
    target = unquote(target)
    if not target:
        return current
    if target == "~" or target.startswith(("~/", "~\\")):
        target = home + target[1:]
    target = from_posix_path(target)

    flavour = ntpath if (is_drive_path(current) or is_drive_path(target)) else os.path
    if flavour is ntpath:
        target = target.replace("/", "\\")
    return flavour.normpath(flavour.join(current, target))


def posix_temp_dir(bin_dir: Path) -> Path:
    return bin_dir / "tmp"


def build_environment(
    interpreter: Interpreter,
    *,
    base: Mapping[str, str],
    bin_dir: Path,
    home: str,
    overrides: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Assemble the child-process environment for one interpreter."""
    env = dict(base)
    if interpreter is Interpreter.LEGACY:
        env["PYTHONIOENCODING"] = "utf-8"
    elif interpreter is Interpreter.POSIX:
        temp_dir = str(posix_temp_dir(bin_dir))
        # Windows-style entries stay so platform executables remain reachable.
        env["PATH"] = str(bin_dir) + os.pathsep + env.get("PATH", "")
        env["HOME"] = home
        env["TMPDIR"] = temp_dir
        env["TEMP"] = temp_dir
        env["TMP"] = temp_dir
        env["LC_ALL"] = "C"
        env["LANG"] = "C"
    if overrides:
        env.update(overrides)
    return env
