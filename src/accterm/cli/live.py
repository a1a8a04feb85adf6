"""CLI live runner for accterm."""

from __future__ import annotations

from accterm.core.session import SessionOutcome, TerminalSession

from .render import Renderer, SessionCompleter, SessionHistory


class TranscriptFollower:
    """Print whatever each input line added to the transcript."""

    def __init__(self, session: TerminalSession, renderer: Renderer) -> None:
        self._session = session
        self._renderer = renderer

    def show(self, outcome: SessionOutcome, revision_before: int) -> None:
        model = self._session.transcript
        with model.lock:
            text = model.text
            body_end = model.body_end
            revision = model.revision
            blocks = model.blocks
        if outcome.rejected:
            return
        if revision != revision_before:
            # Offsets moved: show the rebuilt transcript from the top.
            self._renderer.clear()
            self._renderer.transcript(text[:body_end])
        else:
            self._renderer.transcript(text[outcome.start : body_end])

        navigation = outcome.navigation
        if navigation is not None and navigation.moved and navigation.index is not None:
            if 0 <= navigation.index < len(blocks):
                self._renderer.transcript(model.render_block(blocks[navigation.index]))


def run_terminal(session: TerminalSession, renderer: Renderer) -> None:
    unsubscribe = session.channel.subscribe(renderer.announcement)
    follower = TranscriptFollower(session, renderer)
    completer = SessionCompleter(session.complete)
    history = SessionHistory(session.history)
    renderer.welcome(session.interpreter.label, session.cwd)
    try:
        _run_input_loop(session, renderer, follower, completer, history)
    finally:
        unsubscribe()
        session.close()


def _run_input_loop(
    session: TerminalSession,
    renderer: Renderer,
    follower: TranscriptFollower,
    completer: SessionCompleter,
    history: SessionHistory,
) -> None:
    while True:
        try:
            user_input = renderer.get_user_input(session.prompt_text(), completer=completer, history=history)
        except (KeyboardInterrupt, EOFError):
            renderer.info("Goodbye!")
            break
        if not user_input.strip():
            continue
        revision_before = session.transcript.revision
        outcome = session.handle_input(user_input)
        if outcome.exit_requested:
            renderer.info("Goodbye!")
            break
        follower.show(outcome, revision_before)
