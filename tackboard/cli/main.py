"""
FILE: tackboard/cli/main.py
PURPOSE: Typer-based CLI for one-shot board commands
EXPORTS:
  - app (Typer application)
  - main() (entry point)
  - console, error_console (rich consoles shared by command modules)
  - get_settings() -> Settings
  - board_session(board_id) -> context manager yielding BoardSession
  - fail(error) -> NoReturn
DEPENDENCIES:
  - typer (CLI framework)
  - rich (formatted output)
  - tackboard.config (settings and backend selection)
  - tackboard.core.session (BoardSession)
  - tackboard.repl (interactive mode)
NOTES:
  - Board commands accept --board/-b; default comes from TACKBOARD_BOARD
  - Most commands support --json and --raw flags
  - Error messages go to stderr
  - Exit codes: 0=success, 1=error
  - Each invocation saves before exiting
"""

import sys
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

# Fix Windows console encoding for Unicode characters
if sys.platform == "win32":
    import io
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

import typer
from rich.console import Console
from rich.markup import escape

from ..config import (
    Settings,
    build_event_sink,
    build_repository,
    configure_logging,
    load_settings,
)
from ..core.exceptions import TackboardError
from ..core.session import BoardSession

# Typer app setup
app = typer.Typer(
    name="tackboard",
    help="Terminal task board with a small HTTP API for automation",
    add_completion=False,
)

# Rich console for formatted output
console = Console()
error_console = Console(stderr=True)

# Version
__version__ = "0.4.0"

_state: Dict[str, Optional[Settings]] = {"settings": None}


def fail(error) -> None:
    """Print an error to stderr and exit with code 1."""
    error_console.print(f"[red]Error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def get_settings() -> Settings:
    """Settings for this invocation, loaded from the environment once."""
    if _state["settings"] is None:
        try:
            _state["settings"] = load_settings()
        except TackboardError as e:
            fail(e)
    return _state["settings"]


BOARD_OPTION = typer.Option(None, "--board", "-b", help="Board id (default: TACKBOARD_BOARD)")


def apply_or_exit(session: BoardSession, command):
    """Apply a command through the session; print the error and exit if rejected."""
    result = session.apply(command)
    if not result.ok:
        fail(result.error)
    return result


@contextmanager
def board_session(board_id: Optional[str] = None) -> Iterator[BoardSession]:
    """
    Open a BoardSession for a one-shot command and save on the way out.

    Exits with code 1 if the board cannot be loaded or the final save fails.
    """
    settings = get_settings()
    try:
        session = BoardSession(
            build_repository(settings),
            board_id or settings.board_id,
            save_delay=settings.save_delay,
            events=build_event_sink(settings),
        )
    except TackboardError as e:
        fail(e)

    try:
        yield session
    finally:
        saved = session.close()
    if not saved:
        fail(session.last_error)


@app.callback(invoke_without_command=True)
def default_command(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Default callback - configures logging, launches REPL when no command is given.
    """
    _state["settings"] = None
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    if ctx.invoked_subcommand is None:
        from ..repl import main as repl_main
        try:
            repl_main(settings)
        except TackboardError as e:
            error_console.print(f"[red]Error starting REPL:[/red] {e}")
            raise typer.Exit(1)


# Import command modules to register commands with app
# Commands are decorated with @app.command() in their modules
from .commands import (  # noqa: E402
    # System commands
    version,
    boards,
    board_rm,
    check,
    migrate_hashes,
    serve,
    repl,
    # Card commands
    show,
    add,
    mv,
    edit,
    rm,
    note,
    # Column commands
    columns,
    column_add,
    column_rename,
    column_rm,
)


def main():
    """Main entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
