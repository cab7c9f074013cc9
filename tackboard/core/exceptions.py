"""
FILE: tackboard/core/exceptions.py
PURPOSE: Custom exception classes for error handling
EXPORTS:
  - TackboardError (base exception)
  - ValidationError
  - NotFoundError, CardNotFoundError, ColumnNotFoundError,
    NoteNotFoundError, HashNotFoundError
  - ConflictError, ColumnNotEmptyError
  - InvariantError
  - AuthError
  - PersistenceError
DEPENDENCIES:
  - None (stdlib only)
NOTES:
  - All exceptions inherit from TackboardError for easy catching
  - Exceptions include context (ids, hashes, counts) for helpful messages
  - The engine raises these, UI layers catch and display
  - Validation/NotFound/Conflict are expected outcomes, not defects
"""

from typing import List


class TackboardError(Exception):
    """Base exception for all Tackboard errors."""
    pass


class ValidationError(TackboardError):
    """Input validation failed (empty or over-length title, bad reference)."""

    def __init__(self, message: str):
        super().__init__(message)


class NotFoundError(TackboardError):
    """An id or external hash does not resolve to a live entity."""
    pass


class CardNotFoundError(NotFoundError):
    """Card with given internal id doesn't exist."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(f"Card {card_id} not found")


class ColumnNotFoundError(NotFoundError):
    """Column with given internal id doesn't exist."""

    def __init__(self, column_id: str):
        self.column_id = column_id
        super().__init__(f"Column {column_id} not found")


class NoteNotFoundError(NotFoundError):
    """Note with given id doesn't exist on the card."""

    def __init__(self, card_id: str, note_id: str):
        self.card_id = card_id
        self.note_id = note_id
        super().__init__(f"Note {note_id} not found on card {card_id}")


class HashNotFoundError(NotFoundError):
    """External hash (or column name) doesn't resolve within the board."""

    def __init__(self, namespace: str, token: str):
        self.namespace = namespace
        self.token = token
        super().__init__(f"{namespace.capitalize()} '{token}' not found")


class ConflictError(TackboardError):
    """Operation would violate a board invariant."""
    pass


class ColumnNotEmptyError(ConflictError):
    """Column still holds cards and the delete policy rejects that."""

    def __init__(self, column_id: str, card_count: int):
        self.column_id = column_id
        self.card_count = card_count
        super().__init__(
            f"Cannot delete column with cards. "
            f"Column contains {card_count} card(s)."
        )


class InvariantError(TackboardError):
    """A board snapshot failed invariant checking."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class AuthError(TackboardError):
    """Credential missing, invalid, or not scoped to the requested board."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class PersistenceError(TackboardError):
    """Backing store failed to load or save a board."""

    def __init__(self, message: str, board_id: str = None):
        self.board_id = board_id
        super().__init__(message)
