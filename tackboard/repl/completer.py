"""
FILE: tackboard/repl/completer.py
PURPOSE: Autocomplete logic for REPL commands and arguments
EXPORTS:
  - TackboardCompleter (Completer for command/arg completion)
  - create_completer(get_board) -> TackboardCompleter
DEPENDENCIES:
  - prompt_toolkit.completion (Completer, Completion)
  - tackboard.core.service (columns/cards of the live board)
  - tackboard.core.identity (column_slug)
NOTES:
  - Suggests command names when at start of line
  - Suggests card hashes for commands that take a card first
  - Suggests column names for mv, column commands and --column/--after/--move-to
  - Suggests flags after commands
  - Board data comes from a callable, so suggestions follow the current snapshot
  - Case-insensitive matching
"""

from typing import Callable, Iterable, Optional

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from ..core import service
from ..core.identity import column_slug
from ..core.models import Board


class TackboardCompleter(Completer):
    """
    Custom completer for the Tackboard REPL.

    Provides context-aware autocomplete:
    - Command names at start of input
    - Card hashes and column names as arguments
    - Flags after command names
    """

    COMMAND_DESCRIPTIONS = {
        "show": "Show the board or one card",
        "columns": "List columns",
        "add": "Create a new card",
        "mv": "Move card to column",
        "edit": "Update card title/description",
        "rm": "Delete card",
        "note": "Add a note to a card",
        "column-add": "Create a column",
        "column-rename": "Rename a column",
        "column-rm": "Delete a column",
        "check": "Verify board invariants",
        "save": "Save now",
        "undo": "Undo last operation",
        "help": "Show available commands",
        "clear": "Clear the screen",
        "exit": "Exit REPL",
        "quit": "Exit REPL",
    }

    COMMANDS = list(COMMAND_DESCRIPTIONS)

    # Command-specific flags
    COMMAND_FLAGS = {
        "show": ["--json", "--raw"],
        "columns": ["--json"],
        "add": ["--column", "--desc"],
        "mv": ["--index"],
        "edit": ["--title", "--desc"],
        "column-add": ["--after"],
        "column-rm": ["--move-to", "--delete-cards"],
    }

    FLAG_DESCRIPTIONS = {
        "--json": "Output as JSON",
        "--raw": "Plain text output",
        "--column": "Target column",
        "--desc": "Card description",
        "--index": "Position in column",
        "--title": "New title",
        "--after": "Insert after column",
        "--move-to": "Move cards to column",
        "--delete-cards": "Delete cards too",
    }

    CARD_FIRST_COMMANDS = {"show", "mv", "edit", "rm", "note"}
    COLUMN_FIRST_COMMANDS = {"column-rename", "column-rm"}
    COLUMN_FLAGS = {"--column", "--after", "--move-to"}

    def __init__(self, get_board: Optional[Callable[[], Board]] = None):
        self._get_board = get_board

    def _board(self) -> Optional[Board]:
        return self._get_board() if self._get_board else None

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        """
        Generate completions based on current input.

        Logic:
            1. Start of line -> commands
            2. Word after a column flag -> column names
            3. First argument of card commands -> card hashes
            4. Second argument of mv, first of column commands -> column names
            5. Word starting with '-' -> flags
        """
        text_before_cursor = document.text_before_cursor
        words = text_before_cursor.split()
        at_new_word = text_before_cursor.endswith(" ")

        if not words or (not at_new_word and len(words) == 1):
            yield from self._complete_commands(words[0] if words else "")
            return

        command = words[0].lower()
        current = "" if at_new_word else words[-1]
        previous = words[-1] if at_new_word else (words[-2] if len(words) > 1 else "")
        position = len(words) if at_new_word else len(words) - 1

        if previous in self.COLUMN_FLAGS:
            yield from self._complete_column_names(current)
            return

        if current.startswith("-"):
            yield from self._complete_flags(command, current)
            return

        if command in self.CARD_FIRST_COMMANDS and position == 1:
            yield from self._complete_card_hashes(current)
            return

        if (command == "mv" and position == 2) or (
            command in self.COLUMN_FIRST_COMMANDS and position == 1
        ):
            yield from self._complete_column_names(current)
            return

    def _complete_commands(self, word: str) -> Iterable[Completion]:
        word_lower = word.lower()
        for cmd in self.COMMANDS:
            if cmd.startswith(word_lower):
                yield Completion(
                    cmd,
                    start_position=-len(word),
                    display=cmd,
                    display_meta=self.COMMAND_DESCRIPTIONS.get(cmd, ""),
                )

    def _complete_flags(self, command: str, word: str) -> Iterable[Completion]:
        for flag in self.COMMAND_FLAGS.get(command, []):
            if flag.startswith(word):
                yield Completion(
                    flag,
                    start_position=-len(word),
                    display=flag,
                    display_meta=self.FLAG_DESCRIPTIONS.get(flag, ""),
                )

    def _complete_card_hashes(self, word: str) -> Iterable[Completion]:
        """Complete card hashes, labelled with title and column."""
        board = self._board()
        if board is None:
            return
        word_lower = word.lower()
        for column in service.columns_in_order(board):
            for card in service.column_cards(board, column.id):
                token = card.external_hash
                if token and token.startswith(word_lower):
                    title = card.title if len(card.title) <= 40 else card.title[:37] + "..."
                    yield Completion(
                        token,
                        start_position=-len(word),
                        display=token,
                        display_meta=f"{title} [{column.title}]",
                    )

    def _complete_column_names(self, word: str) -> Iterable[Completion]:
        """Complete column slugs, labelled with the column hash."""
        board = self._board()
        if board is None:
            return
        word_lower = word.lower()
        for column in service.columns_in_order(board):
            slug = column_slug(column.title)
            if slug.startswith(word_lower):
                yield Completion(
                    slug,
                    start_position=-len(word),
                    display=slug,
                    display_meta=f"{column.title} ({column.external_hash})",
                )


def create_completer(get_board: Optional[Callable[[], Board]] = None) -> TackboardCompleter:
    """
    Create and return a TackboardCompleter instance.

    Args:
        get_board: Callable returning the current board snapshot

    Usage:
        completer = create_completer(lambda: session.board)
        prompt = PromptSession(completer=completer)
    """
    return TackboardCompleter(get_board)
