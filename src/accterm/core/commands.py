"""Command parsing helpers."""

from __future__ import annotations

import shlex

INTERNAL_PREFIX = ","


def parse_command_words(text: str) -> list[str]:
    """Split command text into words, falling back to whitespace on bad quoting."""

    try:
        return shlex.split(text, posix=False)
    except ValueError:
        return text.split()


def strip_quotes(word: str) -> str:
    if len(word) >= 2 and word[0] == word[-1] and word[0] in "\"'":
        return word[1:-1]
    return word


def parse_internal_command(line: str) -> tuple[str, list[str]]:
    """Parse ',name ...' command line into name and args tokens."""

    body = line.strip()[len(INTERNAL_PREFIX) :].strip()
    words = [strip_quotes(word) for word in parse_command_words(body)]
    if not words:
        return "", []

    return words[0].lower(), words[1:]
