"""accterm - one transcript, three shells."""

from .shell.dispatcher import ExecutionResult, SessionState, ShellDispatcher
from .shell.interpreters import Interpreter
from .transcript.model import TranscriptModel

__version__ = "0.1.0"

__all__ = ["ExecutionResult", "Interpreter", "SessionState", "ShellDispatcher", "TranscriptModel"]
