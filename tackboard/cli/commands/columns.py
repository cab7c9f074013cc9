"""
FILE: tackboard/cli/commands/columns.py
PURPOSE: Column commands (columns, column-add, column-rename, column-rm)
"""

from typing import Optional

import typer
from rich.markup import escape

from ..main import BOARD_OPTION, app, apply_or_exit, board_session, console, fail
from ...core import service
from ...core.exceptions import TackboardError
from ...core.identity import resolve_column_reference
from ...formatting import BoardFormatter, column_view


@app.command()
def columns(
    board_id: Optional[str] = BOARD_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List columns in display order.

    Example:
        tackboard columns
        tackboard columns --json
    """
    with board_session(board_id) as session:
        ordered = service.columns_in_order(session.board)
        if json_output:
            console.print_json(data={"columns": [column_view(c) for c in ordered]})
        elif raw:
            for column in ordered:
                console.print(f"{column.external_hash}: {column.title}", markup=False, soft_wrap=True)
        else:
            console.print(BoardFormatter.create_columns_table(session.board))


@app.command("column-add")
def column_add(
    title: str = typer.Argument(..., help="Column title"),
    after: Optional[str] = typer.Option(None, "--after", "-a", help="Insert after this column (hash or name)"),
    board_id: Optional[str] = BOARD_OPTION,
):
    """
    Create a column, at the end or after another column.

    Example:
        tackboard column-add Review --after in-progress
    """
    with board_session(board_id) as session:
        after_id = None
        if after:
            try:
                after_id = resolve_column_reference(session.board, after)
            except TackboardError as e:
                fail(e)
        result = apply_or_exit(session, service.AddColumn(title, after_id))
        column = result.board.columns[result.entity_id]
        console.print(
            f"[green]✓ Created column [bold]{column.external_hash}[/bold]:[/green] {escape(column.title)}"
        )


@app.command("column-rename")
def column_rename(
    column: str = typer.Argument(..., help="Column hash or name"),
    title: str = typer.Argument(..., help="New title"),
    board_id: Optional[str] = BOARD_OPTION,
):
    """
    Rename a column. Its hash and position stay the same.

    Example:
        tackboard column-rename todo Backlog
    """
    with board_session(board_id) as session:
        try:
            column_id = resolve_column_reference(session.board, column)
        except TackboardError as e:
            fail(e)
        apply_or_exit(session, service.UpdateColumn(column_id, title))
        renamed = session.board.columns[column_id]
        console.print(
            f"[green]✓ Renamed column [bold]{renamed.external_hash}[/bold]:[/green] {escape(renamed.title)}"
        )


@app.command("column-rm")
def column_rm(
    column: str = typer.Argument(..., help="Column hash or name"),
    move_to: Optional[str] = typer.Option(None, "--move-to", "-m", help="Move its cards to this column first"),
    delete_cards: bool = typer.Option(False, "--delete-cards", help="Delete its cards too"),
    board_id: Optional[str] = BOARD_OPTION,
):
    """
    Delete a column.

    By default a column that still has cards is not deleted.

    Example:
        tackboard column-rm review
        tackboard column-rm review --move-to done
        tackboard column-rm review --delete-cards
    """
    if move_to and delete_cards:
        fail("Use either --move-to or --delete-cards, not both")

    with board_session(board_id) as session:
        try:
            column_id = resolve_column_reference(session.board, column)
            if move_to:
                strategy = service.MoveCardsTo(resolve_column_reference(session.board, move_to))
            elif delete_cards:
                strategy = service.DeleteCardsToo()
            else:
                strategy = service.REJECT_IF_NON_EMPTY
        except TackboardError as e:
            fail(e)

        removed = session.board.columns[column_id]
        moved = service.card_count(session.board, column_id)
        apply_or_exit(session, service.DeleteColumn(column_id, strategy))
        console.print(f"[green]✓ Deleted column [bold]{removed.external_hash}[/bold]:[/green] {escape(removed.title)}")
        if moved and move_to:
            console.print(f"[dim]Moved {moved} card(s)[/dim]")
        elif moved:
            console.print(f"[dim]Deleted {moved} card(s)[/dim]")
