"""Input command detection."""

from __future__ import annotations

from accterm.core.commands import INTERNAL_PREFIX, parse_command_words, parse_internal_command, strip_quotes
from accterm.core.types import DetectedCommand

# Recognised only when they are the whole line, so `help foo` still reaches the shell.
STANDALONE_BUILTINS = frozenset({"clear", "cls", "help", "exit", "quit", "history", "bash", "powershell", "pwsh", "cmd"})
MONITOR_COMMAND = "monitor"
BUILTIN_NAMES = tuple(sorted(STANDALONE_BUILTINS | {MONITOR_COMMAND}))


def detect_line_command(line: str) -> DetectedCommand | None:
    """Classify one input line as internal, built-in or shell command."""

    stripped = line.strip()
    if not stripped:
        return None

    if stripped.startswith(INTERNAL_PREFIX):
        name, args_tokens = parse_internal_command(stripped)
        if not name:
            return None
        return DetectedCommand(kind="internal", raw=stripped, name=name, args_tokens=args_tokens)

    lowered = stripped.lower()
    if lowered in STANDALONE_BUILTINS:
        return DetectedCommand(kind="builtin", raw=stripped, name=lowered)

    words = parse_command_words(stripped)
    if words and words[0].lower() == MONITOR_COMMAND:
        args = [strip_quotes(word) for word in words[1:]]
        return DetectedCommand(kind="builtin", raw=stripped, name=MONITOR_COMMAND, args_tokens=args)

    name = words[0] if words else stripped
    return DetectedCommand(kind="shell", raw=stripped, name=name, args_tokens=words[1:])
