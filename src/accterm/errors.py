"""Application-level exception types for accterm."""

from __future__ import annotations


class AccTermError(Exception):
    """Base exception for accterm."""


class ConfigurationError(AccTermError):
    """Raised when settings cannot be turned into a usable session."""


class UnknownInterpreterError(ConfigurationError):
    """Raised when an interpreter name does not match any known alias."""


class DispatcherDisposedError(AccTermError):
    """Raised when a command is dispatched after the dispatcher was closed."""

    def __init__(self) -> None:
        super().__init__("Dispatcher has been shut down")


class StalePositionError(AccTermError):
    """Raised when a recorded offset no longer fits the transcript text."""

    def __init__(self, offset: int, length: int) -> None:
        super().__init__(f"offset {offset} is beyond transcript length {length}")
        self.offset = offset
        self.length = length
