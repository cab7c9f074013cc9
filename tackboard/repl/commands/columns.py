"""
FILE: tackboard/repl/commands/columns.py
PURPOSE: Column command handlers for REPL
"""

from rich.markup import escape

from ..context import REPLContext
from ..parser import ParseResult
from ...core import service
from ...core.exceptions import ValidationError
from ...core.identity import resolve_column_reference
from ...formatting import BoardFormatter, column_view


def handle_columns_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'columns' command - list columns in display order.

    Usage:
        columns
        columns --json
    """
    if result.flag("json"):
        ctx.console.print_json(
            data={"columns": [column_view(c) for c in service.columns_in_order(ctx.board)]}
        )
    else:
        ctx.console.print(BoardFormatter.create_columns_table(ctx.board))


def handle_column_add_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'column-add' command.

    Usage:
        column-add Review
        column-add "Code Review" --after in-progress
    """
    if not result.args:
        ctx.console.print("[red]Error:[/red] Column title required")
        ctx.console.print("[dim]Usage: column-add <title> [--after <column>][/dim]")
        return

    after = result.flag("after")
    after_id = resolve_column_reference(ctx.board, after) if isinstance(after, str) else None
    outcome = ctx.run(service.AddColumn(" ".join(result.args), after_id), "Created column")
    if outcome:
        column = outcome.board.columns[outcome.entity_id]
        ctx.console.print(
            f"[green]✓ Created column [bold]{column.external_hash}[/bold]:[/green] {escape(column.title)}"
        )


def handle_column_rename_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'column-rename' command.

    Usage:
        column-rename todo Backlog
    """
    if len(result.args) < 2:
        raise ValidationError("Usage: column-rename <column> <new title>")
    column_id = resolve_column_reference(ctx.board, result.args[0])
    old_title = ctx.board.columns[column_id].title
    outcome = ctx.run(
        service.UpdateColumn(column_id, " ".join(result.args[1:])),
        f"Renamed column {old_title}",
    )
    if outcome:
        ctx.console.print(
            f"[green]✓ Renamed [bold]{escape(old_title)}[/bold] to[/green] {escape(outcome.board.columns[column_id].title)}"
        )


def handle_column_rm_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'column-rm' command.

    Usage:
        column-rm review                   (only if empty)
        column-rm review --move-to done
        column-rm review --delete-cards
    """
    if not result.args:
        raise ValidationError("Usage: column-rm <column> [--move-to <column> | --delete-cards]")
    column_id = resolve_column_reference(ctx.board, result.args[0])

    move_to = result.flag("move-to")
    if isinstance(move_to, str) and result.flag("delete-cards"):
        raise ValidationError("Use either --move-to or --delete-cards, not both")
    if isinstance(move_to, str):
        strategy = service.MoveCardsTo(resolve_column_reference(ctx.board, move_to))
    elif result.flag("delete-cards"):
        strategy = service.DeleteCardsToo()
    else:
        strategy = service.REJECT_IF_NON_EMPTY

    column = ctx.board.columns[column_id]
    if ctx.run(service.DeleteColumn(column_id, strategy), f"Deleted column {column.title}"):
        ctx.console.print(f"[green]✓ Deleted column [bold]{column.external_hash}[/bold]:[/green] {escape(column.title)}")
