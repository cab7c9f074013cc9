"""
FILE: tackboard/cli/commands/cards.py
PURPOSE: Card commands (show, add, mv, edit, rm, note)
"""

from typing import Optional

import typer
from rich.markup import escape

from ..main import BOARD_OPTION, app, apply_or_exit, board_session, console, fail
from ...core import service
from ...core.exceptions import TackboardError
from ...core.identity import require_card, resolve_column_reference
from ...formatting import BoardFormatter, card_view, parse_card_hashes


@app.command()
def show(
    card_hash: Optional[str] = typer.Argument(None, help="Card hash (omit to show the whole board)"),
    board_id: Optional[str] = BOARD_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Show the board, or one card in detail.

    Example:
        tackboard show
        tackboard show a1b2
        tackboard show --json
    """
    with board_session(board_id) as session:
        board = session.board
        try:
            if card_hash:
                card = board.cards[require_card(board, card_hash.lower())]
                if json_output:
                    console.print_json(data=card_view(board, card))
                elif raw:
                    console.print(f"{card.external_hash}: {card.title}", markup=False, soft_wrap=True)
                else:
                    console.print(BoardFormatter.create_card_panel(board, card))
                return

            if json_output:
                console.print_json(BoardFormatter.to_json(board))
            elif raw:
                for line in BoardFormatter.to_raw_lines(board):
                    console.print(line, markup=False, highlight=False, soft_wrap=True)
            else:
                console.print(BoardFormatter.create_board_table(board))
                console.print(f"\n[dim]Total: {len(board.cards)} card(s)[/dim]")
        except TackboardError as e:
            fail(e)


@app.command()
def add(
    title: str = typer.Argument(..., help="Card title"),
    column: Optional[str] = typer.Option(None, "--column", "-c", help="Column hash or name (default: first column)"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="Card description"),
    board_id: Optional[str] = BOARD_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    Create a new card.

    Example:
        tackboard add "Write documentation"
        tackboard add "Fix bug" --column in-progress
    """
    with board_session(board_id) as session:
        try:
            if column:
                column_id = resolve_column_reference(session.board, column)
            elif session.board.column_order:
                column_id = session.board.column_order[0]
            else:
                fail("Board has no columns")
        except TackboardError as e:
            fail(e)

        result = apply_or_exit(session, service.AddCard(column_id, title, description))
        card = result.board.cards[result.entity_id]

        if json_output:
            console.print_json(data=card_view(result.board, card))
        elif raw:
            console.print(f"{card.external_hash}: {card.title}", markup=False, soft_wrap=True)
        else:
            console.print(f"[green]✓ Created card [bold]{card.external_hash}[/bold]:[/green] {escape(card.title)}")


@app.command()
def mv(
    card_hash: str = typer.Argument(..., help="Card hash"),
    column: str = typer.Argument(..., help="Destination column hash or name"),
    index: Optional[int] = typer.Option(None, "--index", "-i", help="Position in the column (default: end)"),
    board_id: Optional[str] = BOARD_OPTION,
):
    """
    Move a card to a column (and position).

    Example:
        tackboard mv a1b2 done
        tackboard mv a1b2 todo --index 0
    """
    with board_session(board_id) as session:
        board = session.board
        try:
            card_id = require_card(board, card_hash.lower())
            column_id = resolve_column_reference(board, column)
        except TackboardError as e:
            fail(e)

        if index is None:
            index = service.card_count(board, column_id)
        apply_or_exit(session, service.MoveCard(card_id, column_id, index))
        moved = session.board.cards[card_id]
        target = session.board.columns[column_id]
        console.print(
            f"[green]✓ Moved card [bold]{moved.external_hash}[/bold] to "
            f"{escape(target.title)} (position {moved.order})[/green]"
        )


@app.command()
def edit(
    card_hash: str = typer.Argument(..., help="Card hash"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="New title"),
    description: Optional[str] = typer.Option(None, "--desc", "-d", help="New description (empty string clears it)"),
    board_id: Optional[str] = BOARD_OPTION,
):
    """
    Update a card's title and/or description.

    Example:
        tackboard edit a1b2 --title "Updated title"
        tackboard edit a1b2 --desc ""
    """
    if title is None and description is None:
        fail("Nothing to update: pass --title and/or --desc")

    changes = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description

    with board_session(board_id) as session:
        try:
            card_id = require_card(session.board, card_hash.lower())
        except TackboardError as e:
            fail(e)
        apply_or_exit(session, service.UpdateCard(card_id, **changes))
        card = session.board.cards[card_id]
        console.print(f"[green]✓ Updated card [bold]{card.external_hash}[/bold]:[/green] {escape(card.title)}")


@app.command()
def rm(
    card_hashes: str = typer.Argument(..., help="Card hash, or several separated by commas"),
    board_id: Optional[str] = BOARD_OPTION,
):
    """
    Delete one or more cards. Their hashes are never reused.

    Example:
        tackboard rm a1b2
        tackboard rm a1b2,c3d4
    """
    tokens = parse_card_hashes(card_hashes)
    if not tokens:
        fail("No card hash given")

    with board_session(board_id) as session:
        try:
            card_ids = list(dict.fromkeys(require_card(session.board, t) for t in tokens))
        except TackboardError as e:
            fail(e)
        for card_id in card_ids:
            card = session.board.cards[card_id]
            apply_or_exit(session, service.DeleteCard(card_id))
            console.print(f"[green]✓ Deleted card [bold]{card.external_hash}[/bold]:[/green] {escape(card.title)}")


@app.command()
def note(
    card_hash: str = typer.Argument(..., help="Card hash"),
    text: str = typer.Argument(..., help="Note text"),
    board_id: Optional[str] = BOARD_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Attach a note to a card.

    Example:
        tackboard note a1b2 "Blocked on review"
    """
    with board_session(board_id) as session:
        try:
            card_id = require_card(session.board, card_hash.lower())
        except TackboardError as e:
            fail(e)
        result = apply_or_exit(session, service.AddNote(card_id, text))
        card = result.board.cards[card_id]
        added = next(n for n in card.notes if n.id == result.entity_id)
        if json_output:
            console.print_json(data=added.to_dict())
        else:
            console.print(f"[green]✓ Added note to [bold]{card.external_hash}[/bold][/green] ({len(card.notes)} total)")
