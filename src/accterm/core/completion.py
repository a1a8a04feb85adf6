"""Tab completion for built-in names and filesystem entries."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from loguru import logger

from accterm.core.command_detector import BUILTIN_NAMES
from accterm.shell.interpreters import Interpreter
from accterm.shell.paths import resolve_directory

MAX_CANDIDATES = 200


@dataclass(frozen=True)
class CompletionResult:
    """Candidates that may replace ``word``, the last token of the line."""

    word: str
    candidates: list[str] = field(default_factory=list)

    @property
    def unique(self) -> str | None:
        return self.candidates[0] if len(self.candidates) == 1 else None


def _current_word(line: str) -> tuple[str, bool]:
    """Return the word under completion and whether it is the command position."""
    if not line or line[-1].isspace():
        return "", not line.strip()
    words = line.split()
    return words[-1], len(words) == 1


def _list_directory(path: str) -> list[os.DirEntry[str]]:
    try:
        with os.scandir(path) as entries:
            return list(entries)
    except OSError as exc:
        logger.debug("cannot list {}: {}", path, exc)
        return []


def _filesystem_candidates(word: str, *, cwd: str, home: str, separator: str) -> list[str]:
    cut = max(word.rfind("/"), word.rfind("\\"))
    prefix, partial = (word[: cut + 1], word[cut + 1 :]) if cut >= 0 else ("", word)
    search_dir = resolve_directory(cwd, prefix, home=home) if prefix else cwd
    lowered = partial.lower()
    candidates: list[str] = []
    for entry in _list_directory(search_dir):
        if not entry.name.lower().startswith(lowered):
            continue
        suffix = separator if entry.is_dir() else ""
        candidates.append(f"{prefix}{entry.name}{suffix}")
    return candidates


def complete(line: str, *, cwd: str, interpreter: Interpreter, home: str | None = None) -> CompletionResult:
    """Complete the last word of ``line``.

    The command position also offers built-in names. Directories get the
    interpreter's path separator appended.
    """
    word, command_position = _current_word(line)
    candidates: list[str] = []
    if command_position:
        lowered = word.lower()
        candidates.extend(name for name in BUILTIN_NAMES if name.startswith(lowered))
    candidates.extend(
        _filesystem_candidates(word, cwd=cwd, home=home or os.path.expanduser("~"), separator=interpreter.separator)
    )
    unique = sorted(dict.fromkeys(candidates), key=str.lower)
    return CompletionResult(word=word, candidates=unique[:MAX_CANDIDATES])
