"""Shared pytest configuration and fixtures for tests."""

import io
import random
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Fix Windows console encoding
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8')
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding='utf-8')

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tackboard.core import service  # noqa: E402
from tackboard.core.exceptions import PersistenceError  # noqa: E402
from tackboard.core.models import Board, BoardMetadata  # noqa: E402
from tackboard.core.repository import (  # noqa: E402
    JsonFileRepository,
    MemoryRepository,
    SqliteRepository,
    default_board,
)

FIXED_NOW = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)


class ScriptedRandom(random.Random):
    """random.Random whose choice() replays a fixed string of symbols."""

    def __init__(self, symbols: str):
        super().__init__(0)
        self._symbols = iter(symbols)

    def choice(self, seq):
        return next(self._symbols)


class FlakyRepository(MemoryRepository):
    """In-memory store whose writes can be switched off."""

    def __init__(self, rng=None):
        super().__init__(rng)
        self.fail_writes = False
        self.writes = 0

    def _write(self, board):
        if self.fail_writes:
            raise PersistenceError("disk full", board.id)
        self.writes += 1
        super()._write(board)


@pytest.fixture
def rng():
    """Seeded random source so ids and hashes are reproducible."""
    return random.Random(1234)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def empty_board():
    """Board with no columns and no cards."""
    return Board(id="board-test", metadata=BoardMetadata(created_at=FIXED_NOW, updated_at=FIXED_NOW))


@pytest.fixture
def board(rng):
    """Default board: TODO, In Progress, Done, no cards."""
    return default_board("board-test", rng=rng)


@pytest.fixture
def two_columns(empty_board, rng, now):
    """(board, column A id, column B id) with both columns empty."""
    b, col_a = service.add_column(empty_board, "A", rng=rng, now=now)
    b, col_b = service.add_column(b, "B", rng=rng, now=now)
    return b, col_a.id, col_b.id


def add_cards(board, column_id, titles, rng):
    """Add cards in order; returns (board, [card ids])."""
    ids = []
    for title in titles:
        board, card = service.add_card(board, column_id, title, rng=rng)
        ids.append(card.id)
    return board, ids


@pytest.fixture
def memory_repo(rng):
    return MemoryRepository(rng=rng)


@pytest.fixture
def json_repo(tmp_path, rng):
    return JsonFileRepository(tmp_path / "boards", rng=rng)


@pytest.fixture
def sqlite_repo(tmp_path, rng):
    return SqliteRepository(tmp_path / "tackboard.db", timeout=1.0, rng=rng)


@pytest.fixture
def flaky_repo(rng):
    return FlakyRepository(rng=rng)


@pytest.fixture
def cli_env(tmp_path):
    """Environment for CLI runs against a throwaway data directory."""
    return {
        "TACKBOARD_HOME": str(tmp_path / "home"),
        "TACKBOARD_BACKEND": "json",
        "TACKBOARD_BOARD": "board-default",
        "TACKBOARD_SAVE_DELAY": "30",
        "TACKBOARD_LOG_LEVEL": "WARNING",
        "TACKBOARD_API_KEYS": "",
    }
