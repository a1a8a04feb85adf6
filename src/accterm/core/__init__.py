from accterm.core.command_detector import detect_line_command
from accterm.core.completion import CompletionResult, complete
from accterm.core.history import CommandHistory
from accterm.core.session import SessionOutcome, TerminalSession
from accterm.core.types import DetectedCommand

__all__ = [
    "CommandHistory",
    "CompletionResult",
    "DetectedCommand",
    "SessionOutcome",
    "TerminalSession",
    "complete",
    "detect_line_command",
]
