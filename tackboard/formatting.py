"""
FILE: tackboard/formatting.py
PURPOSE: Shared formatting utilities for CLI, REPL and HTTP output
EXPORTS:
  - card_view(board, card) -> dict
  - column_view(column) -> dict
  - BoardFormatter: Class for rich tables and plain/JSON output
  - parse_card_hashes: Parse comma-separated card hashes
DEPENDENCIES:
  - rich (for table formatting)
  - json (for JSON serialization)
  - tackboard.core.models (Board, Card, Column)
  - tackboard.core.identity (column_slug)
NOTES:
  - card_view/column_view are the external shapes; internal ids never
    appear in them
  - Used by the CLI, the REPL and the HTTP surface
"""

import json
from typing import Any, Dict, List

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .core import service
from .core.identity import column_slug
from .core.models import Board, Card, Column


def _ts(value) -> str:
    return value.isoformat() if value else None


def card_view(board: Board, card: Card) -> Dict[str, Any]:
    """External representation of a card."""
    column = board.columns.get(card.column_id)
    return {
        "cardHash": card.external_hash,
        "title": card.title,
        "description": card.description,
        "columnHash": column.external_hash if column else None,
        "columnName": column_slug(column.title) if column else None,
        "createdAt": _ts(card.created_at),
        "updatedAt": _ts(card.updated_at),
    }


def column_view(column: Column) -> Dict[str, Any]:
    """External representation of a column."""
    return {
        "columnHash": column.external_hash,
        "name": column_slug(column.title),
        "title": column.title,
        "order": column.order,
    }


class BoardFormatter:
    """Centralized board display formatting."""

    @staticmethod
    def create_board_table(board: Board) -> Table:
        """
        Create a Rich table with one table column per board column.

        Args:
            board: Board to display

        Returns:
            Rich Table object ready for display
        """
        columns = service.columns_in_order(board)
        title = board.metadata.title or board.id
        table = Table(title=escape(title), show_header=True, header_style="bold cyan")
        stacks = []
        for column in columns:
            cards = service.column_cards(board, column.id)
            table.add_column(
                f"{escape(column.title)} [dim]({column.external_hash or '-'}, {len(cards)})[/dim]",
                style="white",
            )
            stacks.append(cards)

        depth = max((len(stack) for stack in stacks), default=0)
        for row in range(depth):
            cells = []
            for stack in stacks:
                if row < len(stack):
                    card = stack[row]
                    cells.append(f"[cyan]{card.external_hash or '----'}[/cyan] {escape(card.title)}")
                else:
                    cells.append("")
            table.add_row(*cells)
        return table

    @staticmethod
    def create_columns_table(board: Board) -> Table:
        """Create a Rich table listing columns in display order."""
        table = Table(title="Columns", show_header=True, header_style="bold cyan")
        table.add_column("Hash", style="cyan", width=6, no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Name", style="magenta")
        table.add_column("Cards", style="yellow", justify="right")

        for column in service.columns_in_order(board):
            table.add_row(
                column.external_hash or "-",
                escape(column.title),
                escape(column_slug(column.title)),
                str(service.card_count(board, column.id)),
            )
        return table

    @staticmethod
    def create_card_panel(board: Board, card: Card) -> Panel:
        """Detail view of one card with its notes."""
        column = board.columns.get(card.column_id)
        lines = [
            f"[bold]{escape(card.title)}[/bold]",
            f"[dim]Column:[/dim] {escape(column.title) if column else '?'}",
            f"[dim]Updated:[/dim] {card.updated_at:%Y-%m-%d %H:%M}",
        ]
        if card.description:
            lines += ["", escape(card.description)]
        if card.notes:
            lines += ["", "[bold]Notes[/bold]"]
            for note in card.notes:
                lines.append(f"[dim]{note.created_at:%Y-%m-%d %H:%M}[/dim] {escape(note.text)}")
        return Panel("\n".join(lines), title=f"[cyan]{card.external_hash}[/cyan]", expand=False)

    @staticmethod
    def to_json(board: Board) -> str:
        """
        Convert a board to its external JSON shape.

        Args:
            board: Board to serialize

        Returns:
            JSON string with columns and cards
        """
        data = {
            "boardId": board.id,
            "columns": [column_view(c) for c in service.columns_in_order(board)],
            "cards": [
                card_view(board, card)
                for column in service.columns_in_order(board)
                for card in service.column_cards(board, column.id)
            ],
        }
        return json.dumps(data, indent=2)

    @staticmethod
    def to_raw_lines(board: Board) -> List[str]:
        """
        Convert a board to plain text lines, one per card.

        Returns:
            List of "hash: [column] title" strings
        """
        lines = []
        for column in service.columns_in_order(board):
            for card in service.column_cards(board, column.id):
                lines.append(f"{card.external_hash}: [{column_slug(column.title)}] {card.title}")
        return lines


def parse_card_hashes(hash_string: str) -> List[str]:
    """
    Parse comma-separated card hashes.

    Args:
        hash_string: e.g. "a1b2,c3d4"

    Returns:
        List of lowercase hashes with blanks removed
    """
    return [h.strip().lower() for h in hash_string.split(",") if h.strip()]
