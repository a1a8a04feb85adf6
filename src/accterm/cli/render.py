"""CLI renderer for accterm."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import CompleteEvent, Completer, Completion
from prompt_toolkit.document import Document
from prompt_toolkit.history import History
from prompt_toolkit.patch_stdout import patch_stdout
from rich.console import Console
from rich.text import Text

from accterm.announce import Announcement
from accterm.core.completion import CompletionResult
from accterm.core.history import CommandHistory

# Output announcements repeat text already printed from the transcript.
SILENT_KINDS = frozenset({"output"})


class SessionCompleter(Completer):
    """prompt_toolkit adapter over the session completion function."""

    def __init__(self, complete: Callable[[str], CompletionResult]) -> None:
        self._complete = complete

    def get_completions(self, document: Document, complete_event: CompleteEvent) -> Iterator[Completion]:
        result = self._complete(document.text_before_cursor)
        for candidate in result.candidates:
            yield Completion(candidate, start_position=-len(result.word))


class SessionHistory(History):
    """Read-only prompt history backed by the session's command history."""

    def __init__(self, history: CommandHistory) -> None:
        super().__init__()
        self._history = history

    def load_history_strings(self) -> Iterable[str]:
        return list(reversed(self._history.entries))

    def store_string(self, string: str) -> None:
        # The session records commands itself.
        return None


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console: Console = console or Console(highlight=False)
        self._prompt_session: PromptSession[str] | None = None
        self._print_lock = threading.Lock()

    def welcome(self, shell: str, cwd: str) -> None:
        self._print(Text.assemble(("accterm", "bold blue"), f" - {shell} in {cwd}. Type help for commands."))

    def transcript(self, text: str) -> None:
        """Print transcript text verbatim."""
        if text:
            self._print(Text(text.rstrip("\n")))

    def clear(self) -> None:
        with self._print_lock:
            self.console.clear()

    def announcement(self, item: Announcement) -> None:
        if item.kind in SILENT_KINDS:
            return
        style = "red" if item.kind == "error" else "dim"
        self._print(Text(item.message, style=style))

    def info(self, message: str) -> None:
        self._print(Text(message))

    def get_user_input(
        self,
        prompt: str,
        *,
        completer: Completer | None = None,
        history: History | None = None,
    ) -> str:
        """Prompt user for input."""
        if self._prompt_session is None:
            self._prompt_session = PromptSession(history=history, completer=completer, complete_while_typing=False)
        with patch_stdout(raw=True):
            return self._prompt_session.prompt(prompt)

    def _print(self, message: Text) -> None:
        with self._print_lock:
            self.console.print(message)


def create_cli_renderer() -> Renderer:
    """Create and return a Renderer instance."""
    return Renderer()
