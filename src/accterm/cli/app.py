"""accterm command line entry points."""

from __future__ import annotations

import os
from pathlib import Path

import typer

from accterm.config import Settings, load_settings
from accterm.core.session import TerminalSession
from accterm.errors import ConfigurationError
from accterm.logging_utils import configure_logging
from accterm.shell.interpreters import Interpreter

from .live import run_terminal
from .render import create_cli_renderer

app = typer.Typer(
    name="accterm",
    help="Screen-reader friendly terminal for PowerShell, cmd and bash",
    add_completion=False,
)


def _build_session(settings: Settings, shell: str | None, workspace: Path | None) -> TerminalSession:
    interpreter = Interpreter.parse(shell or settings.default_shell)
    cwd = str(workspace.resolve()) if workspace is not None else os.getcwd()
    return TerminalSession(settings, cwd=cwd, interpreter=interpreter)


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        run(shell=None, workspace=None)


@app.command()
def run(
    shell: str | None = typer.Option(None, "--shell", "-s", help="powershell, cmd or bash"),
    workspace: Path | None = typer.Option(None, "--workspace", "-w", help="Starting directory"),  # noqa: B008
) -> None:
    """Start the interactive terminal."""

    settings = load_settings(workspace)
    configure_logging(profile="chat", level=settings.log_level)
    try:
        session = _build_session(settings, shell, workspace)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(2) from exc
    run_terminal(session, create_cli_renderer())


@app.command("exec")
def exec_command(
    command: str = typer.Argument(..., help="Command line to run"),
    shell: str | None = typer.Option(None, "--shell", "-s", help="powershell, cmd or bash"),
    workspace: Path | None = typer.Option(None, "--workspace", "-w", help="Starting directory"),  # noqa: B008
) -> None:
    """Run one command line and print its transcript output."""

    settings = load_settings(workspace)
    configure_logging(level=settings.log_level)
    try:
        session = _build_session(settings, shell, workspace)
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(2) from exc

    with session:
        outcome = session.handle_input(command)
        model = session.transcript
        output = model.text[outcome.start : model.body_end].rstrip("\n")
    if output:
        typer.echo(output)
    if outcome.result is not None and outcome.result.is_error:
        raise typer.Exit(1)
