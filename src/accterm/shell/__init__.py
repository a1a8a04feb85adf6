"""Shell dispatch and Windows/POSIX path translation."""

from .dispatcher import ExecutionResult, SessionState, ShellDispatcher
from .interpreters import Interpreter

__all__ = ["ExecutionResult", "Interpreter", "SessionState", "ShellDispatcher"]
