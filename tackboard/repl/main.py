"""
FILE: tackboard/repl/main.py
PURPOSE: Interactive REPL for board management with prompt-toolkit
EXPORTS:
  - main(settings) - Entry point for REPL mode
  - run_repl(ctx) - Main REPL loop
  - execute_command(ctx, result) -> bool
  - get_bottom_toolbar(ctx) -> HTML
DEPENDENCIES:
  - prompt_toolkit (REPL interface, history, completion)
  - rich (formatted output)
  - tackboard.config (backend selection)
  - tackboard.core.session (BoardSession)
  - tackboard.repl.parser, completer, commands
NOTES:
  - Changes are saved on a debounce timer and flushed on exit
  - Bottom toolbar shows card counts and save status
  - Ctrl+D or "exit"/"quit" to exit
  - Falls back to plain input() when stdin/stdout are not a TTY
"""

import html
import logging
import sys
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import InMemoryHistory
from rich.console import Console
from rich.markup import escape

from ..config import Settings, build_event_sink, build_repository, load_settings
from ..core.exceptions import TackboardError
from ..core.session import BoardSession
from .commands import (
    # Card handlers
    handle_show_command,
    handle_add_command,
    handle_mv_command,
    handle_edit_command,
    handle_rm_command,
    handle_note_command,
    # Column handlers
    handle_columns_command,
    handle_column_add_command,
    handle_column_rename_command,
    handle_column_rm_command,
    # System handlers
    handle_undo_command,
    handle_save_command,
    handle_check_command,
    handle_help_command,
    handle_clear_command,
)
from .completer import create_completer
from .context import REPLContext
from .parser import ParseResult, parse_command

logger = logging.getLogger(__name__)

# Rich console for formatted output
console = Console()

HANDLERS = {
    "show": handle_show_command,
    "view": handle_show_command,
    "columns": handle_columns_command,
    "add": handle_add_command,
    "mv": handle_mv_command,
    "edit": handle_edit_command,
    "rm": handle_rm_command,
    "note": handle_note_command,
    "column-add": handle_column_add_command,
    "column-rename": handle_column_rename_command,
    "column-rm": handle_column_rm_command,
    "undo": handle_undo_command,
    "save": handle_save_command,
    "check": handle_check_command,
    "help": handle_help_command,
    "clear": handle_clear_command,
}


def format_prompt(ctx: REPLContext) -> HTML:
    """Prompt with the board id in cyan."""
    return HTML(f"<b>tackboard:[<cyan>{ctx.board.id}</cyan>]&gt; </b>")


def get_bottom_toolbar(ctx: REPLContext) -> HTML:
    """
    Create bottom toolbar showing card counts and save status.

    Returns:
        HTML formatted toolbar; turns red while the last save has failed
    """
    board = ctx.board
    stats = f"{len(board.cards)} card(s) in {len(board.columns)} column(s)"
    if ctx.session.save_failed:
        return HTML(
            f"<style bg='#aa0000' fg='#ffffff'> {stats} | Save failed: "
            f"{html.escape(str(ctx.session.last_error))} </style>"
        )
    status = "unsaved changes" if ctx.session.dirty else "saved"
    return HTML(f"<style bg='#444444' fg='#ffffff'> {stats} | {status} | Type 'help' for commands </style>")


def execute_command(ctx: REPLContext, result: ParseResult) -> bool:
    """
    Execute a parsed command.

    Args:
        ctx: REPL session state
        result: Parsed command from parser

    Returns:
        True to continue REPL loop, False to exit
    """
    command = result.command.lower()

    if command in ("exit", "quit"):
        ctx.console.print("[dim]Goodbye![/dim]")
        return False

    # Empty command (just Enter pressed)
    if not command:
        return True

    handler = HANDLERS.get(command)
    if handler is None:
        ctx.console.print(f"[red]Unknown command:[/red] {escape(command)}")
        ctx.console.print("[dim]Type 'help' for available commands[/dim]")
        ctx.console.print()
        return True

    try:
        handler(ctx, result)
    except TackboardError as e:
        ctx.console.print(f"[red]Error:[/red] {escape(str(e))}")
    ctx.console.print()
    return True


def run_repl(ctx: REPLContext) -> None:
    """
    Main REPL loop.

    Exits on:
    - Ctrl+D (EOFError)
    - "exit" or "quit" commands
    """
    # In piped/test environments, skip prompt_toolkit entirely
    has_tty = sys.stdin.isatty() and sys.stdout.isatty()
    prompt_session = None
    if has_tty:
        prompt_session = PromptSession(
            history=InMemoryHistory(),
            completer=create_completer(lambda: ctx.board),
            complete_while_typing=True,
            bottom_toolbar=lambda: get_bottom_toolbar(ctx),
        )

    console.print("[bold cyan]Tackboard REPL[/bold cyan] - Type 'help' for commands, 'exit' to quit")
    if prompt_session is None:
        console.print("[dim](Running in simple mode - no autocomplete)[/dim]")
    console.print()

    while True:
        try:
            if prompt_session is None:
                user_input = input(ctx.get_prompt())
            else:
                user_input = prompt_session.prompt(format_prompt(ctx))

            if not execute_command(ctx, parse_command(user_input)):
                break

            if ctx.session.save_failed:
                console.print(f"[yellow]Warning:[/yellow] last save failed: {ctx.session.last_error}")

        except KeyboardInterrupt:
            console.print("[dim]^C (Press Ctrl+D or type 'exit' to quit)[/dim]")
            continue
        except EOFError:
            console.print()
            console.print("[dim]Goodbye![/dim]")
            break


def main(settings: Optional[Settings] = None) -> None:
    """
    Entry point for REPL mode.

    Called when user runs: tackboard repl (or plain tackboard)

    Raises:
        TackboardError: If the board cannot be loaded
    """
    settings = settings or load_settings()
    session = BoardSession(
        build_repository(settings),
        settings.board_id,
        save_delay=settings.save_delay,
        events=build_event_sink(settings),
    )
    ctx = REPLContext(session=session, console=console)
    try:
        run_repl(ctx)
    finally:
        if not session.close():
            console.print(f"[red]Error:[/red] could not save board: {session.last_error}")
            logger.error("Final save of board %s failed", session.board.id)
