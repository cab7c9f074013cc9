"""
FILE: tackboard/repl/commands/system.py
PURPOSE: System command handlers for REPL
"""

from rich.panel import Panel

from ..context import REPLContext
from ..parser import ParseResult
from ...core.invariants import check_invariants


def handle_undo_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'undo' command - undo last operation.

    Hashes issued by the undone operation are not handed out again.
    """
    success, message = ctx.history.undo(ctx.session)
    if success:
        ctx.console.print(f"[green]✓ {message}[/green]")
    else:
        ctx.console.print(f"[yellow]{message}[/yellow]")


def handle_save_command(ctx: REPLContext, result: ParseResult) -> None:
    """Handle 'save' command - write pending changes now."""
    if ctx.session.flush():
        ctx.console.print("[green]✓ Saved[/green]")
    else:
        ctx.console.print(f"[red]Error:[/red] {ctx.session.last_error}")


def handle_check_command(ctx: REPLContext, result: ParseResult) -> None:
    """Handle 'check' command - verify board invariants."""
    violations = check_invariants(ctx.board)
    if not violations:
        ctx.console.print("[green]✓ Board is consistent[/green]")
        return
    for violation in violations:
        ctx.console.print(f"[red]✗[/red] {violation}")


def handle_help_command(ctx: REPLContext, result: ParseResult) -> None:
    """Handle 'help' command - show available commands."""
    help_text = """
[bold cyan]Available Commands:[/bold cyan]

  [cyan]show [<card>] [--json|--raw][/cyan]          Show the board, or one card
  [cyan]columns [--json][/cyan]                     List columns
  [cyan]add <title> [--column C] [--desc D][/cyan]  Create a card (first column by default)
  [cyan]mv <card> <column> [--index N][/cyan]       Move a card (end of column by default)
  [cyan]edit <card> <title>[/cyan]                  Update card title
  [cyan]edit <card> --desc <text>[/cyan]            Update card description ("" clears it)
  [cyan]rm <card>[,<card>...][/cyan]                Delete cards
  [cyan]note <card> <text>[/cyan]                   Add a note to a card
  [cyan]column-add <title> [--after C][/cyan]       Create a column
  [cyan]column-rename <column> <title>[/cyan]       Rename a column
  [cyan]column-rm <column> [--move-to C | --delete-cards][/cyan]  Delete a column
  [cyan]check[/cyan]                                Verify board invariants
  [cyan]save[/cyan]                                 Save now (saves also happen automatically)
  [cyan]undo[/cyan]                                 Undo last operation
  [cyan]help[/cyan]                                 Show this help
  [cyan]clear[/cyan]                                Clear the screen
  [cyan]exit[/cyan] or [cyan]quit[/cyan]                       Exit REPL

[bold cyan]References:[/bold cyan]

  [dim]Cards are referenced by their 4-character hash (shown in 'show').
  Columns accept their hash or their name: "In Progress" -> in-progress.[/dim]

[bold cyan]Examples:[/bold cyan]

  [dim]add "Write release notes" --column todo
  mv a1b2 in-progress
  mv a1b2 todo --index 0
  edit a1b2 Release notes for v2
  column-add Review --after in-progress
  column-rm review --move-to done
  undo[/dim]
"""
    ctx.console.print(Panel(help_text, title="Tackboard REPL Help", border_style="cyan"))


def handle_clear_command(ctx: REPLContext, result: ParseResult) -> None:
    """Clear the screen."""
    ctx.console.clear()
    ctx.console.print("[dim]Screen cleared[/dim]")
