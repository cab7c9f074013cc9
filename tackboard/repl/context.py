"""
FILE: tackboard/repl/context.py
PURPOSE: Per-session REPL state shared by command handlers
EXPORTS:
  - REPLContext (dataclass)
DEPENDENCIES:
  - rich (console)
  - tackboard.core.session (BoardSession)
  - tackboard.repl.undo (UndoHistory)
"""

from dataclasses import dataclass, field
from typing import Optional

from rich.console import Console
from rich.markup import escape

from ..core import service
from ..core.session import BoardSession
from .undo import UndoHistory


@dataclass
class REPLContext:
    """
    State for one REPL session.

    Attributes:
        session: BoardSession holding the live snapshot
        console: Rich console for output
        history: Single-level undo history
    """
    session: BoardSession
    console: Console = field(default_factory=Console)
    history: UndoHistory = field(default_factory=UndoHistory)

    @property
    def board(self):
        return self.session.board

    def run(self, command, label: str) -> Optional[service.Result]:
        """
        Apply a command, record it for undo and report failures.

        Returns:
            The Result on success, None if the command was rejected
        """
        before = self.session.board
        result = self.session.apply(command)
        if not result.ok:
            self.console.print(f"[red]Error:[/red] {escape(str(result.error))}")
            return None
        if result.board is not before:
            self.history.record(label, before)
        return result

    def get_prompt(self) -> str:
        """Plain prompt like 'tackboard:[board-default]> '."""
        return f"tackboard:[{self.session.board.id}]> "
