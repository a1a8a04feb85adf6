"""Terminal session: routes input lines to the shell, the transcript and the navigator."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from types import TracebackType

from loguru import logger

from accterm.announce import AnnouncementChannel
from accterm.config import Settings
from accterm.core.command_detector import detect_line_command
from accterm.core.completion import CompletionResult, complete
from accterm.core.history import CommandHistory
from accterm.core.types import DetectedCommand
from accterm.shell.dispatcher import ExecutionResult, SessionState, ShellDispatcher
from accterm.shell.interpreters import Interpreter
from accterm.transcript.keywords import KeywordMonitor
from accterm.transcript.model import TranscriptModel
from accterm.transcript.models import Category
from accterm.transcript.navigation import NavigationResult, Navigator

NO_OUTPUT = "(Command produced no output)"
BUSY_MESSAGE = "A command is already running."
PANEL_PREVIEW_ITEMS = 5
HISTORY_PREVIEW_ITEMS = 20

HELP_TEXT = """\
Built-in commands:
  help                 Show this help
  clear, cls           Clear the transcript
  history              Show recent commands
  bash, powershell, cmd  Switch interpreter
  monitor add|remove|clear|list [keyword]
  exit, quit           Leave the terminal

Navigation commands:
  ,next  ,prev         Move between output blocks
  ,error               Jump to the next error block
  ,goto <n>            Jump to block n
  ,fold                Fold or expand the selected block
  ,unfold-all          Expand every folded block
  ,bookmark [label]    Bookmark the reading position
  ,bookmarks           List bookmarks
  ,next-bookmark  ,prev-bookmark
  ,panels              Summarize errors, warnings and status messages
"""


@dataclass(frozen=True)
class SessionOutcome:
    """What one input line did."""

    command: str
    start: int
    exit_requested: bool = False
    rejected: bool = False
    result: ExecutionResult | None = None
    navigation: NavigationResult | None = None


class TerminalSession:
    """One interactive terminal session.

    Accepts a single command at a time; a line submitted while another is
    running is rejected with an announcement.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cwd: str | None = None,
        interpreter: Interpreter | None = None,
        dispatcher: ShellDispatcher | None = None,
    ) -> None:
        self.settings = settings
        self.channel = AnnouncementChannel()
        self.keywords = KeywordMonitor()
        self.transcript = TranscriptModel(settings, keywords=self.keywords, announcer=self.channel)
        self.navigator = Navigator(self.transcript)
        self.history = CommandHistory(settings.max_history)
        if dispatcher is None:
            state = SessionState(
                cwd=cwd or os.getcwd(),
                interpreter=interpreter or Interpreter.parse(settings.default_shell),
            )
            dispatcher = ShellDispatcher(settings, state=state)
        elif interpreter is not None:
            dispatcher.state.interpreter = interpreter
        self.dispatcher = dispatcher
        self._busy = threading.Lock()
        self.transcript.show_prompt()

    @property
    def cwd(self) -> str:
        return self.dispatcher.current_directory

    @property
    def interpreter(self) -> Interpreter:
        return self.dispatcher.interpreter

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def prompt_text(self) -> str:
        return f"{self.interpreter.value} {self.cwd}> "

    def complete(self, line: str) -> CompletionResult:
        return complete(line, cwd=self.cwd, interpreter=self.interpreter, home=self.dispatcher.state.home)

    def handle_input(self, raw: str) -> SessionOutcome:
        if not self._busy.acquire(blocking=False):
            self.channel.announce(BUSY_MESSAGE, kind="error")
            return SessionOutcome(command=raw.strip(), start=len(self.transcript), rejected=True)
        try:
            return self._handle(raw)
        finally:
            self._busy.release()

    def _handle(self, raw: str) -> SessionOutcome:
        model = self.transcript
        model.set_pending_input(raw.strip())
        command = model.commit_input()
        start = len(model)
        detected = detect_line_command(command)
        if detected is None:
            model.show_prompt()
            return SessionOutcome(command="", start=start)

        self.history.add(command)
        logger.debug("input kind={} name={}", detected.kind, detected.name)
        if detected.kind == "internal":
            outcome = self._run_internal(detected, start)
        elif detected.kind == "builtin":
            outcome = self._run_builtin(detected, start)
        else:
            outcome = self._run_shell(detected, start)
        if not outcome.exit_requested:
            model.show_prompt()
        return outcome

    def _run_shell(self, command: DetectedCommand, start: int) -> SessionOutcome:
        result = self.dispatcher.execute(command.raw)
        self.transcript.append_block(result.output or NO_OUTPUT, command=command.raw, is_error=result.is_error)
        if result.timed_out:
            self.channel.announce(result.output, kind="error")
        return SessionOutcome(command=command.raw, start=start, result=result)

    def _run_builtin(self, command: DetectedCommand, start: int) -> SessionOutcome:
        model = self.transcript
        name = command.name
        if name in {"exit", "quit"}:
            return SessionOutcome(command=command.raw, start=start, exit_requested=True)
        if name in {"clear", "cls"}:
            model.clear()
            return SessionOutcome(command=command.raw, start=0)
        if name == "help":
            model.write(HELP_TEXT)
        elif name == "history":
            model.write(self._history_text())
        elif name == "monitor":
            message = self.keywords.handle_command(command.args_tokens)
            model.write(message)
            self.channel.announce(message, kind="info")
        else:
            result = self.dispatcher.switch_interpreter(Interpreter.parse(name))
            model.write(result.output)
            self.channel.announce(result.output, kind="error" if result.is_error else "info")
            return SessionOutcome(command=command.raw, start=start, result=result)
        return SessionOutcome(command=command.raw, start=start)

    def _run_internal(self, command: DetectedCommand, start: int) -> SessionOutcome:
        navigator = self.navigator
        name = command.name
        navigation: NavigationResult | None = None
        if name in {"next", "next-block"}:
            navigation = navigator.next_block()
        elif name in {"prev", "previous", "prev-block"}:
            navigation = navigator.previous_block()
        elif name in {"error", "next-error"}:
            navigation = navigator.next_error()
        elif name == "goto":
            navigation = self._goto(command.args_tokens)
        elif name == "fold":
            navigation = navigator.toggle_current_fold()
        elif name == "unfold-all":
            self.transcript.unfold_all()
        elif name == "bookmark":
            self.transcript.add_bookmark(" ".join(command.args_tokens) or None)
        elif name == "bookmarks":
            self.transcript.write(self._bookmarks_text())
        elif name == "next-bookmark":
            navigation = navigator.next_bookmark()
        elif name in {"prev-bookmark", "previous-bookmark"}:
            navigation = navigator.previous_bookmark()
        elif name == "panels":
            self.transcript.write(self._panels_text())
        else:
            message = f"unknown internal command: ,{name}"
            self.transcript.write(message)
            self.channel.announce(message, kind="error")
        return SessionOutcome(command=command.raw, start=start, navigation=navigation)

    def _goto(self, args: list[str]) -> NavigationResult:
        try:
            number = int(args[0])
        except (IndexError, ValueError):
            self.channel.announce("Usage: ,goto <block number>", kind="navigation")
            return NavigationResult(moved=False, messages=("Usage: ,goto <block number>",))
        return self.navigator.jump_to_block(number - 1)

    def _history_text(self) -> str:
        entries = self.history.entries[-HISTORY_PREVIEW_ITEMS:]
        offset = len(self.history) - len(entries)
        return "\n".join(f"{offset + number:>4}  {entry}" for number, entry in enumerate(entries, start=1))

    def _bookmarks_text(self) -> str:
        bookmarks = self.transcript.bookmarks
        if not bookmarks:
            return "No bookmarks set."
        lines = [f"Bookmarks ({len(bookmarks)}):"]
        lines.extend(
            f"  {number}. {bookmark.label} @ {bookmark.position}: {bookmark.context}"
            for number, bookmark in enumerate(bookmarks, start=1)
        )
        return "\n".join(lines)

    def _panels_text(self) -> str:
        lines: list[str] = []
        for category, title in ((Category.ERROR, "Errors"), (Category.WARNING, "Warnings"), (Category.STATUS, "Status")):
            items = self.transcript.items(category)
            lines.append(f"{title} ({len(items)}):")
            for item in items[-PANEL_PREVIEW_ITEMS:]:
                first_line = item.content.splitlines()[0] if item.content else ""
                lines.append(f"  [{item.timestamp:%H:%M:%S}] {item.command or '-'}: {first_line[:80]}")
        return "\n".join(lines)

    def close(self) -> None:
        self.dispatcher.close()

    def __enter__(self) -> TerminalSession:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
