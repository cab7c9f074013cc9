"""
FILE: tackboard/core/session.py
PURPOSE: Interactive caller - holds the current snapshot, debounces saves
EXPORTS:
  - BoardSession (class)
DEPENDENCIES:
  - threading (stdlib)
  - tackboard.core.service (apply, Result)
  - tackboard.core.repository (BoardRepository)
  - tackboard.core.exceptions (PersistenceError)
NOTES:
  - Each successful mutation cancels the pending save timer and schedules
    a new one, so bursts of edits produce a single write
  - close() cancels the timer and flushes synchronously
  - Saves are serialized by a second lock held across the write, so a
    close() that races a timer save always writes last
  - A failed save sets save_failed/last_error; the in-memory snapshot is
    kept and retried on the next flush (no rollback)
  - Only the `board` reference is mutated, and only by this session
"""

import logging
import random
import threading
from typing import Callable, Optional

from . import service
from .constants import DEFAULT_SAVE_DELAY
from .events import EventSink
from .exceptions import PersistenceError
from .models import Board
from .repository import BoardRepository

logger = logging.getLogger(__name__)


class BoardSession:
    """
    One interactive user's view of a board.

    Attributes:
        board: Current snapshot (replaced, never mutated)
        save_failed: True if the most recent save attempt failed
        last_error: The PersistenceError from that attempt
    """

    def __init__(
        self,
        repository: BoardRepository,
        board_id: str,
        save_delay: float = DEFAULT_SAVE_DELAY,
        events: Optional[EventSink] = None,
        rng: Optional[random.Random] = None,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ):
        self.repository = repository
        self.save_delay = save_delay
        self.events = events
        self.rng = rng
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._dirty = False
        self.save_failed = False
        self.last_error: Optional[PersistenceError] = None
        self.board: Board = repository.load_board(board_id)

    @property
    def dirty(self) -> bool:
        """True while a change is waiting to be written."""
        return self._dirty

    @property
    def save_pending(self) -> bool:
        return self._timer is not None

    def apply(self, command: "service.Command") -> service.Result:
        """Apply a command to the current snapshot and schedule a save."""
        result = service.apply(self.board, command, rng=self.rng, events=self.events)
        if result.ok and result.board is not self.board:
            self.board = result.board
            self._schedule_save()
        return result

    def replace(self, board: Board) -> None:
        """Swap in another snapshot (used by undo) and schedule a save."""
        if board is self.board:
            return
        self.board = board
        self._schedule_save()

    def _schedule_save(self) -> None:
        with self._lock:
            self._dirty = True
            if self._timer is not None:
                self._timer.cancel()
            timer = self._timer_factory(self.save_delay, self.flush)
            timer.daemon = True
            self._timer = timer
        timer.start()

    def flush(self) -> bool:
        """
        Write the current snapshot now if it has unsaved changes.

        Returns:
            True if the board is saved, False if the save failed
        """
        with self._save_lock:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
                if not self._dirty:
                    return True
                board = self.board

            try:
                self.repository.save_board(board)
            except PersistenceError as e:
                logger.error("Saving board %s failed: %s", board.id, e)
                self.save_failed = True
                self.last_error = e
                return False

            self.save_failed = False
            self.last_error = None
            with self._lock:
                if self.board is board:
                    self._dirty = False
            return True

    def close(self) -> bool:
        """Cancel the pending timer and flush synchronously."""
        return self.flush()

    def __enter__(self) -> "BoardSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
