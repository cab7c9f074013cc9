"""
FILE: tackboard/config.py
PURPOSE: Settings loading and the single composition point for collaborators
EXPORTS:
  - Settings (dataclass)
  - load_settings(env) -> Settings
  - parse_api_keys(value) -> Dict[str, FrozenSet[str]]
  - read_api_keys_file(path) -> Dict[str, FrozenSet[str]]
  - configure_logging(level) -> None
  - build_repository(settings) -> BoardRepository
  - build_auth_gate(settings) -> AuthGate
  - build_event_sink(settings) -> EventSink
DEPENDENCIES:
  - os, logging, pathlib (stdlib)
  - tackboard.core.repository (backends)
  - tackboard.api.auth (ApiKeyAuthGate)
  - tackboard.core.events (sinks)
NOTES:
  - Environment variables (all optional):
      TACKBOARD_HOME        data directory (default ~/.tackboard)
      TACKBOARD_BACKEND     json | sqlite | memory (default json)
      TACKBOARD_BOARD       default board id for CLI/REPL
      TACKBOARD_API_KEYS    "key=board-a,board-b;other-key=*"
      TACKBOARD_API_KEYS_FILE  file with one "key=boards" entry per line
      TACKBOARD_SAVE_DELAY  debounce seconds for interactive saves
      TACKBOARD_DB_TIMEOUT  SQLite busy timeout seconds
      TACKBOARD_LOG_LEVEL   DEBUG | INFO | WARNING | ERROR
  - Only the build_* functions know which concrete backend is active
"""

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Mapping, Optional

from .api.auth import ApiKeyAuthGate, AuthGate
from .core.constants import DEFAULT_BOARD_ID, DEFAULT_DB_TIMEOUT, DEFAULT_SAVE_DELAY
from .core.events import EventSink, NullEventSink
from .core.exceptions import ValidationError
from .core.repository import (
    BoardRepository,
    JsonFileRepository,
    MemoryRepository,
    SqliteRepository,
)

BACKENDS = ("json", "sqlite", "memory")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class Settings:
    """Runtime configuration."""

    home: Path = field(default_factory=lambda: Path.home() / ".tackboard")
    backend: str = "json"
    board_id: str = DEFAULT_BOARD_ID
    api_keys: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    save_delay: float = DEFAULT_SAVE_DELAY
    db_timeout: float = DEFAULT_DB_TIMEOUT
    log_level: str = "INFO"

    @property
    def boards_dir(self) -> Path:
        return self.home / "boards"

    @property
    def db_path(self) -> Path:
        return self.home / "tackboard.db"


def parse_api_keys(value: str) -> Dict[str, FrozenSet[str]]:
    """
    Parse "key=board-a,board-b;key2=*" into {key: {board ids}}.

    Raises:
        ValidationError: If an entry has no '=' or no boards
    """
    keys: Dict[str, FrozenSet[str]] = {}
    for entry in filter(None, (part.strip() for part in value.split(";"))):
        key, sep, boards = entry.partition("=")
        board_ids = frozenset(b.strip() for b in boards.split(",") if b.strip())
        if not sep or not key.strip() or not board_ids:
            raise ValidationError(f"Malformed API key entry: {entry!r}")
        keys[key.strip()] = board_ids
    return keys


def read_api_keys_file(path: Path) -> Dict[str, FrozenSet[str]]:
    """
    Read API keys from a file, one "key=board-a,board-b" entry per line.

    Blank lines and lines starting with '#' are ignored.

    Raises:
        ValidationError: If the file is unreadable or an entry is malformed
    """
    try:
        lines = Path(path).expanduser().read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise ValidationError(f"Cannot read API keys file {path}: {e}") from e
    entries = [line.strip() for line in lines if line.strip() and not line.lstrip().startswith("#")]
    return parse_api_keys(";".join(entries))


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables."""
    env = os.environ if env is None else env
    settings = Settings()
    if env.get("TACKBOARD_HOME"):
        settings.home = Path(env["TACKBOARD_HOME"]).expanduser()

    backend = env.get("TACKBOARD_BACKEND", settings.backend).strip().lower()
    if backend not in BACKENDS:
        raise ValidationError(
            f"Invalid TACKBOARD_BACKEND '{backend}'. Must be one of: {', '.join(BACKENDS)}"
        )
    settings.backend = backend

    settings.board_id = env.get("TACKBOARD_BOARD") or settings.board_id
    settings.api_keys = parse_api_keys(env.get("TACKBOARD_API_KEYS", ""))
    if env.get("TACKBOARD_API_KEYS_FILE"):
        settings.api_keys.update(read_api_keys_file(Path(env["TACKBOARD_API_KEYS_FILE"])))
    settings.save_delay = _float(env, "TACKBOARD_SAVE_DELAY", settings.save_delay)
    settings.db_timeout = _float(env, "TACKBOARD_DB_TIMEOUT", settings.db_timeout)
    settings.log_level = env.get("TACKBOARD_LOG_LEVEL", settings.log_level).upper()
    return settings


def configure_logging(level: str = "INFO") -> None:
    """Send tackboard logs to stderr with a timestamped format."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def build_repository(settings: Settings) -> BoardRepository:
    """Select the persistence backend."""
    if settings.backend == "sqlite":
        return SqliteRepository(settings.db_path, timeout=settings.db_timeout)
    if settings.backend == "memory":
        return MemoryRepository()
    return JsonFileRepository(settings.boards_dir)


def build_auth_gate(settings: Settings) -> AuthGate:
    """Select the authentication gate for the HTTP surface."""
    return ApiKeyAuthGate(settings.api_keys)


def build_event_sink(settings: Settings) -> EventSink:
    """Select where mutation events go."""
    return NullEventSink()
