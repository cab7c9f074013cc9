"""
FILE: tackboard/core/service.py
PURPOSE: Board mutation engine - applies one command to an immutable board
EXPORTS:
  - get_card(board, card_id) -> Card
  - get_column(board, column_id) -> Column
  - column_cards(board, column_id) -> List[Card]
  - columns_in_order(board) -> List[Column]
  - card_count(board, column_id) -> int
  - add_card(board, column_id, title, description) -> (Board, Card)
  - move_card(board, card_id, dest_column_id, dest_index) -> Board
  - update_card(board, card_id, title, description) -> Board
  - delete_card(board, card_id) -> Board
  - add_column(board, title, insert_after_column_id) -> (Board, Column)
  - update_column(board, column_id, title) -> Board
  - delete_column(board, column_id, strategy) -> Board
  - add_note(board, card_id, text) -> (Board, Note)
  - delete_note(board, card_id, note_id) -> Board
  - RejectIfNonEmpty, MoveCardsTo, DeleteCardsToo (delete strategies)
  - AddCard, MoveCard, UpdateCard, DeleteCard, AddColumn, UpdateColumn,
    DeleteColumn, AddNote, DeleteNote (command dataclasses)
  - Result (dataclass)
  - apply(board, command, rng, now, events) -> Result
DEPENDENCIES:
  - tackboard.core.models (Board, Card, Column, Note)
  - tackboard.core.identity (hash issuance, internal ids)
  - tackboard.core.exceptions (ValidationError, NotFoundError, ConflictError)
  - tackboard.core.events (BoardEvent, EventSink)
NOTES:
  - No I/O: every operation maps one board value to another
  - Inputs are never modified; a rejected operation leaves no trace
  - Card orders inside each column are always the dense sequence 0..n-1;
    every move/delete renumbers the affected columns
  - MoveCard is the only path that changes a card's order or column
  - Operation functions raise typed errors; apply() returns them in a Result
"""

import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, Union

from .constants import (
    CARD_DESCRIPTION_MAX_LENGTH,
    CARD_TITLE_MAX_LENGTH,
    COLUMN_TITLE_MAX_LENGTH,
    NOTE_MAX_LENGTH,
)
from .events import BoardEvent, EventSink
from .exceptions import (
    CardNotFoundError,
    ColumnNotEmptyError,
    ColumnNotFoundError,
    ConflictError,
    NoteNotFoundError,
    NotFoundError,
    TackboardError,
    ValidationError,
)
from .identity import Namespace, generate_id, issue_hash
from .models import Board, Card, Column, Note, utcnow

logger = logging.getLogger(__name__)


class _Unset:
    """Marker for 'field not provided' in partial updates."""

    def __repr__(self):
        return "UNSET"


UNSET: Any = _Unset()


# --- Delete strategies ---


@dataclass(frozen=True)
class RejectIfNonEmpty:
    """Refuse to delete a column that still holds cards."""


@dataclass(frozen=True)
class MoveCardsTo:
    """Append the column's cards to another column, then delete it."""
    target_column_id: str


@dataclass(frozen=True)
class DeleteCardsToo:
    """Delete the column's cards along with it."""


DeleteStrategy = Union[RejectIfNonEmpty, MoveCardsTo, DeleteCardsToo]

REJECT_IF_NON_EMPTY = RejectIfNonEmpty()


# --- Validation helpers ---


def _clean_title(title: Any, max_length: int, label: str) -> str:
    if title is None or not isinstance(title, str):
        raise ValidationError(f"{label} title is required")
    cleaned = title.strip()
    if not cleaned:
        raise ValidationError(f"{label} title cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationError(f"{label} title exceeds {max_length} characters")
    return cleaned


def _clean_description(description: Any) -> Optional[str]:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationError("Card description must be text")
    cleaned = description.strip()
    if len(cleaned) > CARD_DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f"Card description exceeds {CARD_DESCRIPTION_MAX_LENGTH} characters"
        )
    return cleaned or None


def _clean_note(text: Any) -> str:
    if text is None or not isinstance(text, str) or not text.strip():
        raise ValidationError("Note text cannot be empty")
    cleaned = text.strip()
    if len(cleaned) > NOTE_MAX_LENGTH:
        raise ValidationError(f"Note text exceeds {NOTE_MAX_LENGTH} characters")
    return cleaned


# --- Selectors ---


def get_card(board: Board, card_id: str) -> Card:
    """Fetch a card by internal id or raise CardNotFoundError."""
    card = board.cards.get(card_id)
    if card is None:
        raise CardNotFoundError(card_id)
    return card


def get_column(board: Board, column_id: str) -> Column:
    """Fetch a column by internal id or raise ColumnNotFoundError."""
    column = board.columns.get(column_id)
    if column is None:
        raise ColumnNotFoundError(column_id)
    return column


def column_cards(board: Board, column_id: str) -> List[Card]:
    """Cards of one column, sorted by order."""
    return sorted(
        (card for card in board.cards.values() if card.column_id == column_id),
        key=lambda card: (card.order, card.id),
    )


def columns_in_order(board: Board) -> List[Column]:
    """Columns in display order."""
    return [board.columns[cid] for cid in board.column_order if cid in board.columns]


def card_count(board: Board, column_id: str) -> int:
    return sum(1 for card in board.cards.values() if card.column_id == column_id)


# --- Internal helpers ---


def _touch(board: Board, now: datetime, **changes) -> Board:
    """Build the next board snapshot and bump metadata.updated_at."""
    return replace(
        board,
        metadata=replace(board.metadata, updated_at=now),
        **changes,
    )


def _renumber(cards: Dict[str, Card], column_id: str, sequence: List[str]) -> None:
    """Rewrite orders of `sequence` (card ids) in `cards` to 0..n-1."""
    for index, card_id in enumerate(sequence):
        card = cards[card_id]
        if card.order != index or card.column_id != column_id:
            cards[card_id] = replace(card, order=index, column_id=column_id)


def _renumber_columns(columns: Dict[str, Column], column_order: List[str]) -> None:
    for index, column_id in enumerate(column_order):
        column = columns[column_id]
        if column.order != index:
            columns[column_id] = replace(column, order=index)


def _new_id(kind: str, existing, rng: Optional[random.Random]) -> str:
    new_id = generate_id(kind, rng)
    while new_id in existing:
        new_id = generate_id(kind, rng)
    return new_id


# --- Card operations ---


def add_card(
    board: Board,
    column_id: str,
    title: str,
    description: Optional[str] = None,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Tuple[Board, Card]:
    """
    Create a card at the end of a column.

    Args:
        board: Current snapshot
        column_id: Internal id of the target column
        title: Card title (1-500 chars after trimming)
        description: Optional description
        rng: Random source for ids and hashes
        now: Timestamp override

    Returns:
        (new board, created card)

    Raises:
        ValidationError: Bad title or description
        ColumnNotFoundError: Unknown column
    """
    title = _clean_title(title, CARD_TITLE_MAX_LENGTH, "Card")
    description = _clean_description(description)
    get_column(board, column_id)
    now = now or utcnow()

    orders = [card.order for card in board.cards.values() if card.column_id == column_id]
    card = Card(
        id=_new_id("card", board.cards, rng),
        column_id=column_id,
        order=max(orders, default=-1) + 1,
        title=title,
        description=description,
        created_at=now,
        updated_at=now,
        external_hash=issue_hash(board, Namespace.CARD, rng),
    )

    cards = dict(board.cards)
    cards[card.id] = card
    logger.debug("Added card %s (%s) to column %s", card.id, card.external_hash, column_id)
    return _touch(board, now, cards=cards), card


def move_card(
    board: Board,
    card_id: str,
    dest_column_id: str,
    dest_index: int,
    *,
    now: Optional[datetime] = None,
) -> Board:
    """
    Move a card to a position in the same or another column.

    Args:
        board: Current snapshot
        card_id: Card to move
        dest_column_id: Destination column
        dest_index: Target rank; clamped into [0, cards in destination]

    Returns:
        New board, or the very same board object when the move is a no-op

    Raises:
        CardNotFoundError, ColumnNotFoundError

    Notes:
        - The moving card is not counted in the destination size when it
          already lives there
        - Source and destination are both renumbered to 0..n-1
    """
    card = get_card(board, card_id)
    get_column(board, dest_column_id)
    if isinstance(dest_index, bool) or not isinstance(dest_index, int):
        raise ValidationError("Destination index must be an integer")

    source_sequence = [c.id for c in column_cards(board, card.column_id)]
    same_column = dest_column_id == card.column_id
    if same_column:
        dest_sequence = [cid for cid in source_sequence if cid != card_id]
    else:
        dest_sequence = [c.id for c in column_cards(board, dest_column_id)]

    index = max(0, min(dest_index, len(dest_sequence)))
    if same_column and index == source_sequence.index(card_id):
        return board

    now = now or utcnow()
    cards = dict(board.cards)
    cards[card_id] = replace(card, column_id=dest_column_id, updated_at=now)
    dest_sequence.insert(index, card_id)
    if not same_column:
        _renumber(cards, card.column_id, [cid for cid in source_sequence if cid != card_id])
    _renumber(cards, dest_column_id, dest_sequence)

    logger.debug("Moved card %s to column %s at %d", card_id, dest_column_id, index)
    return _touch(board, now, cards=cards)


def update_card(
    board: Board,
    card_id: str,
    title: Any = UNSET,
    description: Any = UNSET,
    *,
    now: Optional[datetime] = None,
) -> Board:
    """
    Update a card's content fields.

    Only provided fields change. Passing description=None or "" clears it.
    Never touches order or column (use move_card).

    Raises:
        CardNotFoundError, ValidationError
    """
    card = get_card(board, card_id)
    changes = {}
    if title is not UNSET:
        changes["title"] = _clean_title(title, CARD_TITLE_MAX_LENGTH, "Card")
    if description is not UNSET:
        changes["description"] = _clean_description(description)
    if not changes:
        return board

    now = now or utcnow()
    cards = dict(board.cards)
    cards[card_id] = replace(card, updated_at=now, **changes)
    return _touch(board, now, cards=cards)


def delete_card(
    board: Board,
    card_id: str,
    *,
    now: Optional[datetime] = None,
) -> Board:
    """
    Delete a card and close the gap in its former column.

    Deleting an absent card is an error, not a no-op.

    Raises:
        CardNotFoundError
    """
    card = get_card(board, card_id)
    now = now or utcnow()

    cards = dict(board.cards)
    del cards[card_id]
    remaining = [c.id for c in column_cards(board, card.column_id) if c.id != card_id]
    _renumber(cards, card.column_id, remaining)

    retired = board.retired_card_hashes
    if card.external_hash:
        retired = retired | {card.external_hash}
    logger.debug("Deleted card %s (%s)", card_id, card.external_hash)
    return _touch(board, now, cards=cards, retired_card_hashes=retired)


# --- Column operations ---


def add_column(
    board: Board,
    title: str,
    insert_after_column_id: Optional[str] = None,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Tuple[Board, Column]:
    """
    Create a column, appended or placed right after another column.

    Args:
        board: Current snapshot
        title: Column title (1-100 chars)
        insert_after_column_id: Reference column; None appends at the end

    Returns:
        (new board, created column)

    Raises:
        ValidationError: Bad title
        ColumnNotFoundError: Unknown reference column
    """
    title = _clean_title(title, COLUMN_TITLE_MAX_LENGTH, "Column")
    now = now or utcnow()
    new_id = _new_id("column", board.columns, rng)

    columns = dict(board.columns)
    column_order = list(board.column_order)
    if insert_after_column_id is not None:
        after = get_column(board, insert_after_column_id)
        order = after.order + 1
        for column_id, column in board.columns.items():
            if column.order > after.order:
                columns[column_id] = replace(column, order=column.order + 1)
        column_order.insert(column_order.index(after.id) + 1, new_id)
    else:
        order = max((c.order for c in board.columns.values()), default=-1) + 1
        column_order.append(new_id)

    column = Column(
        id=new_id,
        title=title,
        order=order,
        external_hash=issue_hash(board, Namespace.COLUMN, rng),
    )
    columns[new_id] = column
    logger.debug("Added column %s (%s) at %d", new_id, column.external_hash, order)
    return _touch(board, now, columns=columns, column_order=tuple(column_order)), column


def update_column(
    board: Board,
    column_id: str,
    title: str,
    *,
    now: Optional[datetime] = None,
) -> Board:
    """Rename a column. Order and hash are untouched."""
    column = get_column(board, column_id)
    title = _clean_title(title, COLUMN_TITLE_MAX_LENGTH, "Column")
    if title == column.title:
        return board
    columns = dict(board.columns)
    columns[column_id] = replace(column, title=title)
    return _touch(board, now or utcnow(), columns=columns)


def delete_column(
    board: Board,
    column_id: str,
    strategy: DeleteStrategy = REJECT_IF_NON_EMPTY,
    *,
    now: Optional[datetime] = None,
) -> Board:
    """
    Delete a column under one of three policies.

    Args:
        board: Current snapshot
        column_id: Column to delete
        strategy: RejectIfNonEmpty (default), MoveCardsTo(target) or
            DeleteCardsToo

    Raises:
        ColumnNotFoundError: Unknown column
        ColumnNotEmptyError: Column has cards under RejectIfNonEmpty
        ValidationError: MoveCardsTo target missing or equal to column_id

    Notes:
        - The column's hash is retired, never reissued
        - Remaining columns are renumbered to 0..m-1
    """
    column = get_column(board, column_id)
    members = column_cards(board, column_id)
    now = now or utcnow()

    if isinstance(strategy, RejectIfNonEmpty):
        if members:
            raise ColumnNotEmptyError(column_id, len(members))
        working = board
    elif isinstance(strategy, MoveCardsTo):
        target = strategy.target_column_id
        if target == column_id:
            raise ValidationError("Cannot move cards into the column being deleted")
        if target not in board.columns:
            raise ValidationError(f"Target column {target} not found")
        working = board
        for card in members:
            working = move_card(
                working, card.id, target, card_count(working, target), now=now
            )
    elif isinstance(strategy, DeleteCardsToo):
        cards = dict(board.cards)
        retired = set(board.retired_card_hashes)
        for card in members:
            del cards[card.id]
            if card.external_hash:
                retired.add(card.external_hash)
        working = replace(board, cards=cards, retired_card_hashes=frozenset(retired))
    else:
        raise ValidationError(f"Unknown delete strategy: {strategy!r}")

    columns = dict(working.columns)
    del columns[column_id]
    column_order = [cid for cid in working.column_order if cid != column_id]
    _renumber_columns(columns, column_order)

    retired_columns = working.retired_column_hashes
    if column.external_hash:
        retired_columns = retired_columns | {column.external_hash}
    logger.debug("Deleted column %s (%s) with %d card(s)", column_id, column.external_hash, len(members))
    return _touch(
        working,
        now,
        columns=columns,
        column_order=tuple(column_order),
        retired_column_hashes=retired_columns,
    )


# --- Note operations ---


def add_note(
    board: Board,
    card_id: str,
    text: str,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Tuple[Board, Note]:
    """Append a note to a card."""
    card = get_card(board, card_id)
    text = _clean_note(text)
    now = now or utcnow()
    existing = {note.id for note in card.notes}
    note = Note(id=_new_id("note", existing, rng), text=text, created_at=now)

    cards = dict(board.cards)
    cards[card_id] = replace(card, notes=card.notes + (note,), updated_at=now)
    return _touch(board, now, cards=cards), note


def delete_note(
    board: Board,
    card_id: str,
    note_id: str,
    *,
    now: Optional[datetime] = None,
) -> Board:
    """Remove a note from a card."""
    card = get_card(board, card_id)
    notes = tuple(note for note in card.notes if note.id != note_id)
    if len(notes) == len(card.notes):
        raise NoteNotFoundError(card_id, note_id)
    now = now or utcnow()
    cards = dict(board.cards)
    cards[card_id] = replace(card, notes=notes, updated_at=now)
    return _touch(board, now, cards=cards)


# --- Commands ---


@dataclass(frozen=True)
class AddCard:
    column_id: str
    title: str
    description: Optional[str] = None


@dataclass(frozen=True)
class MoveCard:
    card_id: str
    dest_column_id: str
    dest_index: int


@dataclass(frozen=True)
class UpdateCard:
    card_id: str
    title: Any = UNSET
    description: Any = UNSET


@dataclass(frozen=True)
class DeleteCard:
    card_id: str


@dataclass(frozen=True)
class AddColumn:
    title: str
    insert_after_column_id: Optional[str] = None


@dataclass(frozen=True)
class UpdateColumn:
    column_id: str
    title: str


@dataclass(frozen=True)
class DeleteColumn:
    column_id: str
    strategy: DeleteStrategy = REJECT_IF_NON_EMPTY


@dataclass(frozen=True)
class AddNote:
    card_id: str
    text: str


@dataclass(frozen=True)
class DeleteNote:
    card_id: str
    note_id: str


Command = Union[
    AddCard, MoveCard, UpdateCard, DeleteCard,
    AddColumn, UpdateColumn, DeleteColumn, AddNote, DeleteNote,
]


@dataclass(frozen=True)
class Result:
    """
    Outcome of apply().

    Attributes:
        board: The new snapshot, or the untouched input on failure
        error: Typed failure (ValidationError, NotFoundError, ConflictError)
        entity_id: Internal id of the created/affected entity
    """
    board: Board
    error: Optional[TackboardError] = None
    entity_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Board:
        """Return the board or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.board


_Handler = Callable[[Board, Any, Optional[random.Random], Optional[datetime]], Tuple[Board, Optional[str]]]


def _apply_add_card(board, cmd: AddCard, rng, now):
    new_board, card = add_card(board, cmd.column_id, cmd.title, cmd.description, rng=rng, now=now)
    return new_board, card.id


def _apply_move_card(board, cmd: MoveCard, rng, now):
    return move_card(board, cmd.card_id, cmd.dest_column_id, cmd.dest_index, now=now), cmd.card_id


def _apply_update_card(board, cmd: UpdateCard, rng, now):
    return update_card(board, cmd.card_id, cmd.title, cmd.description, now=now), cmd.card_id


def _apply_delete_card(board, cmd: DeleteCard, rng, now):
    return delete_card(board, cmd.card_id, now=now), cmd.card_id


def _apply_add_column(board, cmd: AddColumn, rng, now):
    new_board, column = add_column(board, cmd.title, cmd.insert_after_column_id, rng=rng, now=now)
    return new_board, column.id


def _apply_update_column(board, cmd: UpdateColumn, rng, now):
    return update_column(board, cmd.column_id, cmd.title, now=now), cmd.column_id


def _apply_delete_column(board, cmd: DeleteColumn, rng, now):
    return delete_column(board, cmd.column_id, cmd.strategy, now=now), cmd.column_id


def _apply_add_note(board, cmd: AddNote, rng, now):
    new_board, note = add_note(board, cmd.card_id, cmd.text, rng=rng, now=now)
    return new_board, note.id


def _apply_delete_note(board, cmd: DeleteNote, rng, now):
    return delete_note(board, cmd.card_id, cmd.note_id, now=now), cmd.note_id


_HANDLERS: Dict[Type, Tuple[str, _Handler]] = {
    AddCard: ("card_added", _apply_add_card),
    MoveCard: ("card_moved", _apply_move_card),
    UpdateCard: ("card_updated", _apply_update_card),
    DeleteCard: ("card_deleted", _apply_delete_card),
    AddColumn: ("column_added", _apply_add_column),
    UpdateColumn: ("column_updated", _apply_update_column),
    DeleteColumn: ("column_deleted", _apply_delete_column),
    AddNote: ("note_added", _apply_add_note),
    DeleteNote: ("note_deleted", _apply_delete_note),
}


def _external_hash(entity_id: Optional[str], *boards: Board) -> Optional[str]:
    for board in boards:
        entity = board.cards.get(entity_id) or board.columns.get(entity_id)
        if entity is not None:
            return entity.external_hash
    return None


def apply(
    board: Board,
    command: Command,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    events: Optional[EventSink] = None,
) -> Result:
    """
    Apply one command atomically.

    Args:
        board: Current snapshot
        command: One of the command dataclasses
        rng: Random source for ids and hashes
        now: Timestamp override
        events: Optional sink notified after a successful change

    Returns:
        Result with the new board, or the input board plus a typed error

    Raises:
        TypeError: If command is not a known command type (a programming
            error, not an expected outcome)
    """
    entry = _HANDLERS.get(type(command))
    if entry is None:
        raise TypeError(f"Unknown board command: {type(command).__name__}")
    event_type, handler = entry

    try:
        new_board, entity_id = handler(board, command, rng, now)
    except (ValidationError, NotFoundError, ConflictError) as e:
        logger.debug("%s rejected: %s", type(command).__name__, e)
        return Result(board=board, error=e)

    if events is not None and new_board is not board:
        events.emit(
            BoardEvent(
                event_type=event_type,
                board_id=board.id,
                entity_id=entity_id,
                external_hash=_external_hash(entity_id, new_board, board),
            )
        )
    return Result(board=new_board, entity_id=entity_id)
