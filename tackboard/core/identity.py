"""
FILE: tackboard/core/identity.py
PURPOSE: Issue and resolve external hashes for cards and columns
EXPORTS:
  - Namespace (enum: CARD, COLUMN)
  - generate_id(kind) -> str
  - live_hashes(board, namespace) -> Set[str]
  - taken_hashes(board, namespace) -> Set[str]
  - issue_hash(board, namespace, rng) -> str
  - resolve_hash(board, namespace, token) -> str | None
  - require_card(board, token) -> str
  - require_column(board, token) -> str
  - column_slug(title) -> str
  - resolve_column_slug(board, name) -> str | None
  - resolve_column_reference(board, ref) -> str
  - backfill_hashes(board, rng) -> (Board, int, int)
  - retire_hashes_from(restored, current) -> Board
DEPENDENCIES:
  - random, re, time (stdlib)
  - tackboard.core.models, constants, exceptions
NOTES:
  - Pure functions over a board value, no state of their own
  - Hashes are write-once: assigned at creation, never regenerated
  - A deleted entity's hash moves to the board's retired set and is never
    issued again, so an external reference points at its original entity
    or at nothing
  - Resolution is a linear scan; boards are human-scale
"""

import random
import re
import time
from dataclasses import replace
from enum import Enum
from typing import Optional, Set, Tuple

from .constants import HASH_ALPHABET, HASH_LENGTH, HASH_SPACE
from .exceptions import ConflictError, HashNotFoundError
from .models import Board


class Namespace(Enum):
    """Independent hash namespaces."""
    CARD = "card"
    COLUMN = "column"


_default_rng = random.SystemRandom()

_ID_SUFFIX_LENGTH = 7


def generate_id(kind: str, rng: Optional[random.Random] = None) -> str:
    """
    Generate an internal id like 'card-1730867234567-a3b4c5d'.

    The timestamp prefix gives rough chronological sorting; the random
    suffix prevents collisions within the same millisecond.
    """
    rng = rng or _default_rng
    suffix = "".join(rng.choice(HASH_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{kind}-{int(time.time() * 1000)}-{suffix}"


def live_hashes(board: Board, namespace: Namespace) -> Set[str]:
    """Hashes currently held by live entities of the namespace."""
    entities = board.cards if namespace is Namespace.CARD else board.columns
    return {e.external_hash for e in entities.values() if e.external_hash}


def retired_hashes(board: Board, namespace: Namespace) -> Set[str]:
    if namespace is Namespace.CARD:
        return set(board.retired_card_hashes)
    return set(board.retired_column_hashes)


def taken_hashes(board: Board, namespace: Namespace) -> Set[str]:
    """Every hash that may never be issued again in this namespace."""
    return live_hashes(board, namespace) | retired_hashes(board, namespace)


def _draw(taken: Set[str], rng: random.Random) -> str:
    if len(taken) >= HASH_SPACE:
        raise ConflictError("External hash space exhausted for this board")
    while True:
        token = "".join(rng.choice(HASH_ALPHABET) for _ in range(HASH_LENGTH))
        if token not in taken:
            return token


def issue_hash(
    board: Board,
    namespace: Namespace,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Draw a fresh 4-symbol base36 token for a new entity.

    Args:
        board: Board the entity is being added to
        namespace: CARD or COLUMN
        rng: Random source (tests pass a seeded one)

    Returns:
        Token not held by any live entity and never retired in the namespace

    Notes:
        - Redraws on collision; per-draw collision odds are n / 1.68M
    """
    return _draw(taken_hashes(board, namespace), rng or _default_rng)


def resolve_hash(board: Board, namespace: Namespace, token: str) -> Optional[str]:
    """Map an external hash back to the internal id, or None."""
    if not token:
        return None
    entities = board.cards if namespace is Namespace.CARD else board.columns
    for entity_id, entity in entities.items():
        if entity.external_hash == token:
            return entity_id
    return None


def require_card(board: Board, token: str) -> str:
    """Resolve a card hash or raise HashNotFoundError."""
    card_id = resolve_hash(board, Namespace.CARD, token)
    if card_id is None:
        raise HashNotFoundError("card", token)
    return card_id


def require_column(board: Board, token: str) -> str:
    """Resolve a column hash or raise HashNotFoundError."""
    column_id = resolve_hash(board, Namespace.COLUMN, token)
    if column_id is None:
        raise HashNotFoundError("column", token)
    return column_id


def column_slug(title: str) -> str:
    """'In Progress' -> 'in-progress'."""
    return re.sub(r"\s+", "-", title.lower())


def resolve_column_slug(board: Board, name: str) -> Optional[str]:
    """
    Find a column by slug.

    Two differently-titled columns can share a slug ('In Progress' and
    'in   progress'); the first one in display order wins.
    """
    if not name:
        return None
    wanted = name.lower()
    for column_id in board.column_order:
        column = board.columns.get(column_id)
        if column and column_slug(column.title) == wanted:
            return column_id
    return None


def resolve_column_reference(board: Board, ref: str) -> str:
    """
    Resolve a user-typed column reference: hash first, then slug.

    Raises:
        HashNotFoundError: If neither matches
    """
    column_id = resolve_hash(board, Namespace.COLUMN, ref)
    if column_id is None:
        column_id = resolve_column_slug(board, ref)
    if column_id is None:
        raise HashNotFoundError("column", ref)
    return column_id


def backfill_hashes(
    board: Board, rng: Optional[random.Random] = None
) -> Tuple[Board, int, int]:
    """
    Assign hashes to cards and columns that don't have one yet.

    Idempotent: entities that already hold a hash are left alone.

    Returns:
        (new board, columns changed, cards changed)
    """
    rng = rng or _default_rng

    columns = dict(board.columns)
    taken = taken_hashes(board, Namespace.COLUMN)
    columns_changed = 0
    for column_id, column in board.columns.items():
        if not column.external_hash:
            token = _draw(taken, rng)
            taken.add(token)
            columns[column_id] = replace(column, external_hash=token)
            columns_changed += 1

    cards = dict(board.cards)
    taken = taken_hashes(board, Namespace.CARD)
    cards_changed = 0
    for card_id, card in board.cards.items():
        if not card.external_hash:
            token = _draw(taken, rng)
            taken.add(token)
            cards[card_id] = replace(card, external_hash=token)
            cards_changed += 1

    if not columns_changed and not cards_changed:
        return board, 0, 0
    return replace(board, cards=cards, columns=columns), columns_changed, cards_changed


def retire_hashes_from(restored: Board, current: Board) -> Board:
    """
    Carry every hash known to `current` into `restored`'s retired sets.

    Used when an older snapshot replaces a newer one (undo) so that hashes
    issued in between stay burned instead of becoming available again.
    """
    card_seen = taken_hashes(current, Namespace.CARD)
    column_seen = taken_hashes(current, Namespace.COLUMN)
    card_retired = (
        card_seen | set(restored.retired_card_hashes)
    ) - live_hashes(restored, Namespace.CARD)
    column_retired = (
        column_seen | set(restored.retired_column_hashes)
    ) - live_hashes(restored, Namespace.COLUMN)
    return replace(
        restored,
        retired_card_hashes=frozenset(card_retired),
        retired_column_hashes=frozenset(column_retired),
    )
