"""Bounded command history."""

from __future__ import annotations

from collections import deque

DEFAULT_MAX_HISTORY = 1000


class CommandHistory:
    """Most-recent-last command list; up/down recall goes through the prompt's history adapter."""

    def __init__(self, limit: int = DEFAULT_MAX_HISTORY) -> None:
        self._entries: deque[str] = deque(maxlen=limit)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    def add(self, command: str) -> None:
        command = command.strip()
        if command and (not self._entries or self._entries[-1] != command):
            self._entries.append(command)
