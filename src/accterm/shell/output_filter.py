"""Cleanup of captured process output."""

from __future__ import annotations

import re

LINE_SPLIT_RE = re.compile(r"[\r\n]+")
NUMERIC_RUN_RE = re.compile(r"^\d+\s+\d+\s+\d+\s+\d+")
PROGRESS_HEADER_MARKERS = ("% Total", "Dload  Upload")
SHELL_WARNING_MARKERS = ("could not find /tmp", "warning: setlocale", "bash.exe: warning")


def split_lines(text: str) -> list[str]:
    """Split on any newline convention, dropping empty entries."""
    return [line for line in LINE_SPLIT_RE.split(text) if line]


def is_progress_line(line: str) -> bool:
    trimmed = line.strip()
    if trimmed.startswith("%"):
        return True
    if any(marker in trimmed for marker in PROGRESS_HEADER_MARKERS):
        return True
    return NUMERIC_RUN_RE.match(trimmed) is not None


def filter_progress(text: str) -> str:
    """Drop transfer-progress meter lines, keeping everything else in order.

    If every line looks like progress the trimmed input is returned as-is.
    """
    trimmed = text.strip()
    if not trimmed:
        return ""
    kept = [line for line in split_lines(trimmed) if not is_progress_line(line)]
    if not kept:
        return trimmed
    return "\n".join(kept)


def filter_shell_warnings(text: str) -> str:
    """Remove start-up warnings the bundled POSIX shell prints on stderr."""
    kept = [line for line in split_lines(text) if not any(marker in line for marker in SHELL_WARNING_MARKERS)]
    return "\n".join(kept)
