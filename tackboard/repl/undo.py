"""
FILE: tackboard/repl/undo.py
PURPOSE: Single-level undo for REPL operations
EXPORTS:
  - UndoOperation (dataclass)
  - UndoHistory (class)
DEPENDENCIES:
  - tackboard.core.identity (retire_hashes_from)
  - tackboard.core.session (BoardSession)
NOTES:
  - Records the board snapshot taken before the last successful change
  - Undo swaps that snapshot back in; hashes issued in between stay retired
  - Only supports single undo (last operation only)
  - Session-scoped (not persisted)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..core.identity import retire_hashes_from
from ..core.models import Board, utcnow
from ..core.session import BoardSession


@dataclass
class UndoOperation:
    """
    A change that can be reverted.

    Attributes:
        label: Human-readable description, e.g. "Moved card a1b2"
        before: Board snapshot prior to the change
        timestamp: When the change happened
    """
    label: str
    before: Board
    timestamp: datetime = field(default_factory=utcnow)


class UndoHistory:
    """
    Tracks the last operation of a REPL session.

    Only one level is kept; recording a new operation replaces the old one.
    """

    def __init__(self):
        self._last_operation: Optional[UndoOperation] = None

    def record(self, label: str, before: Board) -> None:
        """Remember the snapshot that preceded a change."""
        self._last_operation = UndoOperation(label=label, before=before)

    def can_undo(self) -> bool:
        """Check if there's an operation to undo."""
        return self._last_operation is not None

    def get_last_operation(self) -> Optional[UndoOperation]:
        return self._last_operation

    def clear(self) -> None:
        self._last_operation = None

    def undo(self, session: BoardSession) -> Tuple[bool, str]:
        """
        Restore the snapshot recorded before the last operation.

        Returns:
            (success, message)
        """
        op = self._last_operation
        if op is None:
            return False, "No operation to undo"

        restored = retire_hashes_from(op.before, session.board)
        session.replace(restored)
        self.clear()
        return True, f"Undid: {op.label}"
