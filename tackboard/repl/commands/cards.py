"""
FILE: tackboard/repl/commands/cards.py
PURPOSE: Card command handlers for REPL
"""

from rich.markup import escape

from ..context import REPLContext
from ..parser import ParseResult
from ...core import service
from ...core.exceptions import ValidationError
from ...core.identity import require_card, resolve_column_reference
from ...formatting import BoardFormatter, card_view, parse_card_hashes


def _card_id(ctx: REPLContext, result: ParseResult, usage: str):
    if not result.args:
        raise ValidationError(f"Card hash required. Usage: {usage}")
    return require_card(ctx.board, result.args[0].lower())


def handle_show_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'show' command - board table, or one card in detail.

    Usage:
        show
        show a1b2
        show --json
    """
    board = ctx.board
    if result.args:
        card = board.cards[require_card(board, result.args[0].lower())]
        if result.flag("json"):
            ctx.console.print_json(data=card_view(board, card))
        else:
            ctx.console.print(BoardFormatter.create_card_panel(board, card))
        return

    if result.flag("json"):
        ctx.console.print_json(BoardFormatter.to_json(board))
    elif result.flag("raw"):
        for line in BoardFormatter.to_raw_lines(board):
            ctx.console.print(line, markup=False, highlight=False, soft_wrap=True)
    elif not board.cards:
        ctx.console.print(BoardFormatter.create_board_table(board))
        ctx.console.print("[dim]No cards yet. Try: add \"My first card\"[/dim]")
    else:
        ctx.console.print(BoardFormatter.create_board_table(board))


def handle_add_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'add' command - create new card.

    Usage:
        add Buy groceries
        add "Card with spaces" --column in-progress
        add "Fix login" --desc "Fails on Safari"
    """
    if not result.args:
        ctx.console.print("[red]Error:[/red] Card title required")
        ctx.console.print("[dim]Usage: add <title> [--column <column>] [--desc <text>][/dim]")
        return

    # Join all args as the title (in case they didn't use quotes)
    title = " ".join(result.args)
    column = result.flag("column")
    if isinstance(column, str):
        column_id = resolve_column_reference(ctx.board, column)
    elif ctx.board.column_order:
        column_id = ctx.board.column_order[0]
    else:
        raise ValidationError("Board has no columns")

    description = result.flag("desc")
    outcome = ctx.run(
        service.AddCard(column_id, title, description if isinstance(description, str) else None),
        "Created card",
    )
    if outcome:
        card = outcome.board.cards[outcome.entity_id]
        column_title = outcome.board.columns[column_id].title
        ctx.console.print(
            f"[green]✓ Created card [bold]{card.external_hash}[/bold] in "
            f"[cyan]{escape(column_title)}[/cyan]:[/green] {escape(card.title)}"
        )


def handle_mv_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'mv' command - move card to column and position.

    Usage:
        mv a1b2 done
        mv a1b2 todo --index 0
    """
    usage = "mv <card> <column> [--index N]"
    card_id = _card_id(ctx, result, usage)
    if len(result.args) < 2:
        raise ValidationError(f"Column required. Usage: {usage}")
    column_id = resolve_column_reference(ctx.board, " ".join(result.args[1:]))

    raw_index = result.flag("index")
    if raw_index is None:
        index = service.card_count(ctx.board, column_id)
    else:
        try:
            index = int(raw_index)
        except (TypeError, ValueError):
            raise ValidationError(f"Index must be a number, got {raw_index!r}")

    before = ctx.board
    token = before.cards[card_id].external_hash
    outcome = ctx.run(service.MoveCard(card_id, column_id, index), f"Moved card {token}")
    if outcome is None:
        return
    if outcome.board is before:
        ctx.console.print("[dim]Card is already there[/dim]")
        return
    moved = outcome.board.cards[card_id]
    ctx.console.print(
        f"[green]✓ Moved [bold]{moved.external_hash}[/bold] to "
        f"{escape(outcome.board.columns[column_id].title)} (position {moved.order})[/green]"
    )


def handle_edit_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'edit' command - update card title and/or description.

    Usage:
        edit a1b2 New title
        edit a1b2 --title "New title"
        edit a1b2 --desc "More detail"
        edit a1b2 --desc ""          (clears the description)
    """
    usage = "edit <card> <title> | edit <card> [--title T] [--desc D]"
    card_id = _card_id(ctx, result, usage)

    changes = {}
    title = result.flag("title")
    if isinstance(title, str):
        changes["title"] = title
    elif len(result.args) > 1:
        changes["title"] = " ".join(result.args[1:])
    if "desc" in result.flags:
        desc = result.flags["desc"]
        changes["description"] = desc if isinstance(desc, str) else None
    if not changes:
        raise ValidationError(f"Nothing to update. Usage: {usage}")

    token = ctx.board.cards[card_id].external_hash
    outcome = ctx.run(service.UpdateCard(card_id, **changes), f"Edited card {token}")
    if outcome:
        ctx.console.print(f"[green]✓ Updated [bold]{token}[/bold]:[/green] {escape(outcome.board.cards[card_id].title)}")


def handle_rm_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'rm' command - delete one or more cards.

    Usage:
        rm a1b2
        rm a1b2,c3d4
    """
    if not result.args:
        raise ValidationError("Card hash required. Usage: rm <card>[,<card>...]")
    tokens = parse_card_hashes(",".join(result.args))
    # Resolve everything first so a typo deletes nothing
    card_ids = list(dict.fromkeys(require_card(ctx.board, token) for token in tokens))

    before = ctx.board
    deleted = []
    for card_id in card_ids:
        card = ctx.board.cards[card_id]
        outcome = ctx.session.apply(service.DeleteCard(card_id))
        if not outcome.ok:
            ctx.console.print(f"[red]Error:[/red] {escape(str(outcome.error))}")
            break
        deleted.append(card)

    if not deleted:
        return
    if len(deleted) == 1:
        label = f"Deleted card {deleted[0].external_hash}"
    else:
        label = f"Deleted {len(deleted)} cards"
    ctx.history.record(label, before)
    for card in deleted:
        ctx.console.print(f"[green]✓ Deleted [bold]{card.external_hash}[/bold]:[/green] {escape(card.title)}")


def handle_note_command(ctx: REPLContext, result: ParseResult) -> None:
    """
    Handle 'note' command - attach a note to a card.

    Usage:
        note a1b2 Waiting on review
    """
    usage = "note <card> <text>"
    card_id = _card_id(ctx, result, usage)
    if len(result.args) < 2:
        raise ValidationError(f"Note text required. Usage: {usage}")
    token = ctx.board.cards[card_id].external_hash
    outcome = ctx.run(service.AddNote(card_id, " ".join(result.args[1:])), f"Added note to {token}")
    if outcome:
        count = len(outcome.board.cards[card_id].notes)
        ctx.console.print(f"[green]✓ Added note to [bold]{token}[/bold][/green] ({count} total)")
