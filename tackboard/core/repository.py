"""
FILE: tackboard/core/repository.py
PURPOSE: Board persistence backends (JSON files, SQLite, in-memory)
EXPORTS:
  - default_board(board_id, rng) -> Board
  - validate_board_id(board_id) -> str
  - BoardRepository (abstract base)
  - JsonFileRepository(base_dir)
  - SqliteRepository(db_path, timeout)
  - MemoryRepository()
DEPENDENCIES:
  - sqlite3, json, os, tempfile, pathlib (stdlib)
  - tackboard.core.models (Board, BoardSummary)
  - tackboard.core.service (add_column, to seed default boards)
  - tackboard.core.exceptions (PersistenceError, ValidationError)
NOTES:
  - load_board() never fails for an unknown id: it creates, saves and
    returns a default board so the issued column hashes are stable
  - Backend I/O errors surface as PersistenceError with the cause chained
  - Saves are last-writer-wins; there is no version check
  - JSON files are written to a temp file and renamed into place
"""

import json
import logging
import os
import random
import re
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from . import service
from .constants import BOARD_ID_PATTERN, DEFAULT_COLUMN_TITLES, DEFAULT_DB_TIMEOUT
from .exceptions import PersistenceError, ValidationError
from .models import Board, BoardMetadata, BoardSummary, utcnow

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"


def validate_board_id(board_id: str) -> str:
    """Reject board ids that are empty or unsafe as file names."""
    if not isinstance(board_id, str) or not re.match(BOARD_ID_PATTERN, board_id):
        raise ValidationError(f"Invalid board id: {board_id!r}")
    return board_id


def default_board(
    board_id: str,
    rng: Optional[random.Random] = None,
    column_titles=DEFAULT_COLUMN_TITLES,
) -> Board:
    """
    Build the empty board a new user starts with.

    Columns are created through the engine so they receive hashes and
    dense orders like any other column.
    """
    now = utcnow()
    board = Board(id=board_id, metadata=BoardMetadata(created_at=now, updated_at=now))
    for title in column_titles:
        board, _ = service.add_column(board, title, rng=rng, now=now)
    return board


class BoardRepository(ABC):
    """
    Base class for persistence backends.

    Subclasses implement _read/_write plus listing and deletion; the
    default-board policy lives here so every backend shares it.
    """

    data_source = "abstract"

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng

    def load_board(self, board_id: str) -> Board:
        """
        Load a board, creating a default one if none exists yet.

        Raises:
            ValidationError: Unsafe board id
            PersistenceError: Backend failure
        """
        validate_board_id(board_id)
        board = self._read(board_id)
        if board is None:
            board = default_board(board_id, rng=self.rng)
            self.save_board(board)
            logger.info("Created default board %s in %s", board_id, self.data_source)
        return board

    def save_board(self, board: Board) -> None:
        """Persist a board snapshot (last writer wins)."""
        validate_board_id(board.id)
        self._write(board)
        logger.debug("Saved board %s to %s", board.id, self.data_source)

    @abstractmethod
    def _read(self, board_id: str) -> Optional[Board]:
        """Return the stored board or None if absent."""

    @abstractmethod
    def _write(self, board: Board) -> None:
        """Store the board."""

    @abstractmethod
    def list_boards(self) -> List[BoardSummary]:
        """Summaries of stored boards, most recently updated first."""

    @abstractmethod
    def delete_board(self, board_id: str) -> None:
        """Remove a board; deleting an absent board is not an error."""


class MemoryRepository(BoardRepository):
    """Process-local store, used by tests and TACKBOARD_BACKEND=memory."""

    data_source = "memory"

    def __init__(self, rng: Optional[random.Random] = None):
        super().__init__(rng)
        self._boards: Dict[str, Board] = {}

    def _read(self, board_id: str) -> Optional[Board]:
        return self._boards.get(board_id)

    def _write(self, board: Board) -> None:
        self._boards[board.id] = board

    def list_boards(self) -> List[BoardSummary]:
        summaries = [BoardSummary.from_board(b, self.data_source) for b in self._boards.values()]
        return sorted(summaries, key=lambda s: s.updated_at, reverse=True)

    def delete_board(self, board_id: str) -> None:
        self._boards.pop(board_id, None)


class JsonFileRepository(BoardRepository):
    """
    One JSON file per board plus an index of summaries.

    Directory structure:
        <base_dir>/
        ├── index.json
        ├── board-default.json
        └── board-ci.json
    """

    data_source = "file-system"

    def __init__(self, base_dir: Path, rng: Optional[random.Random] = None):
        super().__init__(rng)
        self.base_dir = Path(base_dir)

    def _board_path(self, board_id: str) -> Path:
        return self.base_dir / f"{board_id}.json"

    def _index_path(self) -> Path:
        return self.base_dir / INDEX_FILE

    def _atomic_write(self, path: Path, payload: str) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _read(self, board_id: str) -> Optional[Board]:
        path = self._board_path(board_id)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Board.from_dict(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError) as e:
            logger.error("Error loading board %s: %s", board_id, e)
            raise PersistenceError(f"Failed to load board: {e}", board_id) from e

    def _write(self, board: Board) -> None:
        try:
            self._atomic_write(self._board_path(board.id), board.to_json())
            self._update_index(board)
        except OSError as e:
            logger.error("Error saving board %s: %s", board.id, e)
            raise PersistenceError(f"Failed to save board: {e}", board.id) from e

    def _read_index(self) -> List[BoardSummary]:
        try:
            raw = json.loads(self._index_path().read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to read boards index: {e}") from e
        return [BoardSummary.from_dict(entry) for entry in raw]

    def _write_index(self, summaries: List[BoardSummary]) -> None:
        payload = json.dumps([s.to_dict() for s in summaries], indent=2)
        self._atomic_write(self._index_path(), payload)

    def _update_index(self, board: Board) -> None:
        summaries = [s for s in self._read_index() if s.id != board.id]
        summaries.append(BoardSummary.from_board(board, self.data_source))
        self._write_index(summaries)

    def list_boards(self) -> List[BoardSummary]:
        return sorted(self._read_index(), key=lambda s: s.updated_at, reverse=True)

    def delete_board(self, board_id: str) -> None:
        validate_board_id(board_id)
        try:
            self._board_path(board_id).unlink(missing_ok=True)
            self._write_index([s for s in self._read_index() if s.id != board_id])
        except OSError as e:
            raise PersistenceError(f"Failed to delete board: {e}", board_id) from e


class SqliteRepository(BoardRepository):
    """
    Boards stored as JSON payloads in a single SQLite table.

    The connection timeout bounds how long a save waits on a locked
    database before failing with PersistenceError.
    """

    data_source = "sqlite"

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS boards (
            id TEXT PRIMARY KEY,
            title TEXT,
            payload TEXT NOT NULL,
            card_count INTEGER NOT NULL DEFAULT 0,
            column_count INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """

    def __init__(
        self,
        db_path: Path,
        timeout: float = DEFAULT_DB_TIMEOUT,
        rng: Optional[random.Random] = None,
    ):
        super().__init__(rng)
        self.db_path = Path(db_path)
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        """Open a connection with row_factory set and the schema in place."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        conn.execute(self.SCHEMA)
        return conn

    def _read(self, board_id: str) -> Optional[Board]:
        try:
            conn = self._connect()
            try:
                row = conn.execute(
                    "SELECT payload FROM boards WHERE id = ?", (board_id,)
                ).fetchone()
            finally:
                conn.close()
            return Board.from_dict(json.loads(row["payload"])) if row else None
        except (sqlite3.Error, OSError, ValueError, KeyError) as e:
            logger.error("Error loading board %s: %s", board_id, e)
            raise PersistenceError(f"Failed to load board: {e}", board_id) from e

    def _write(self, board: Board) -> None:
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        """
                        INSERT INTO boards (id, title, payload, card_count, column_count, created_at, updated_at)
                        VALUES (?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            title=excluded.title,
                            payload=excluded.payload,
                            card_count=excluded.card_count,
                            column_count=excluded.column_count,
                            updated_at=excluded.updated_at
                        """,
                        (
                            board.id,
                            board.metadata.title,
                            board.to_json(),
                            len(board.cards),
                            len(board.columns),
                            board.metadata.created_at.isoformat(),
                            board.metadata.updated_at.isoformat(),
                        ),
                    )
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.error("Error saving board %s: %s", board.id, e)
            raise PersistenceError(f"Failed to save board: {e}", board.id) from e

    def list_boards(self) -> List[BoardSummary]:
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    "SELECT id, title, card_count, column_count, created_at, updated_at "
                    "FROM boards ORDER BY updated_at DESC"
                ).fetchall()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Failed to list boards: {e}") from e
        return [
            BoardSummary.from_dict({
                "id": row["id"],
                "title": row["title"],
                "cardCount": row["card_count"],
                "columnCount": row["column_count"],
                "createdAt": row["created_at"],
                "updatedAt": row["updated_at"],
                "dataSource": self.data_source,
            })
            for row in rows
        ]

    def delete_board(self, board_id: str) -> None:
        validate_board_id(board_id)
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute("DELETE FROM boards WHERE id = ?", (board_id,))
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(f"Failed to delete board: {e}", board_id) from e
