"""
FILE: tackboard/core/invariants.py
PURPOSE: Verify the structural invariants of a board snapshot
EXPORTS:
  - check_invariants(board) -> List[str]
  - assert_invariants(board) -> None
DEPENDENCIES:
  - collections (stdlib)
  - tackboard.core.models, exceptions
NOTES:
  - Returns human-readable violation strings; an empty list means valid
  - Used by tests after every mutation and by the `check` CLI command
    to audit boards loaded from storage
"""

from collections import Counter, defaultdict
from typing import Dict, List

from .exceptions import InvariantError
from .models import Board


def _check_card_orders(board: Board) -> List[str]:
    problems = []
    orders: Dict[str, List[int]] = defaultdict(list)
    for card in board.cards.values():
        orders[card.column_id].append(card.order)

    for column_id, values in orders.items():
        if sorted(values) != list(range(len(values))):
            problems.append(
                f"column {column_id} card orders {sorted(values)} "
                f"are not 0..{len(values) - 1}"
            )
    return problems


def _check_column_order(board: Board) -> List[str]:
    problems = []
    counts = Counter(board.column_order)
    duplicates = sorted(cid for cid, n in counts.items() if n > 1)
    if duplicates:
        problems.append(f"columnOrder has duplicates: {duplicates}")

    listed = set(board.column_order)
    missing = sorted(set(board.columns) - listed)
    foreign = sorted(listed - set(board.columns))
    if missing:
        problems.append(f"columnOrder is missing columns: {missing}")
    if foreign:
        problems.append(f"columnOrder references unknown columns: {foreign}")

    for index, column_id in enumerate(board.column_order):
        column = board.columns.get(column_id)
        if column is not None and column.order != index:
            problems.append(
                f"column {column_id} has order {column.order} "
                f"but sits at position {index}"
            )
    return problems


def _check_references(board: Board) -> List[str]:
    return [
        f"card {card.id} references missing column {card.column_id}"
        for card in board.cards.values()
        if card.column_id not in board.columns
    ]


def _check_hashes(board: Board) -> List[str]:
    problems = []
    for label, entities, retired in (
        ("card", board.cards, board.retired_card_hashes),
        ("column", board.columns, board.retired_column_hashes),
    ):
        counts = Counter(e.external_hash for e in entities.values() if e.external_hash)
        for token, n in sorted(counts.items()):
            if n > 1:
                problems.append(f"{n} live {label}s share hash {token}")
            if token in retired:
                problems.append(f"retired {label} hash {token} is held by a live {label}")
    return problems


def check_invariants(board: Board) -> List[str]:
    """
    Check every board invariant.

    Args:
        board: Snapshot to inspect

    Returns:
        List of violation descriptions (empty when the board is valid)
    """
    return (
        _check_card_orders(board)
        + _check_column_order(board)
        + _check_references(board)
        + _check_hashes(board)
    )


def assert_invariants(board: Board) -> None:
    """Raise InvariantError if the board violates any invariant."""
    problems = check_invariants(board)
    if problems:
        raise InvariantError(problems)
