"""
Tests for settings loading and collaborator wiring.
"""

import logging
from pathlib import Path

import pytest

from tackboard.api.auth import ApiKeyAuthGate
from tackboard.config import (
    Settings,
    build_auth_gate,
    build_event_sink,
    build_repository,
    configure_logging,
    load_settings,
    parse_api_keys,
    read_api_keys_file,
)
from tackboard.core.constants import DEFAULT_BOARD_ID, DEFAULT_SAVE_DELAY
from tackboard.core.events import NullEventSink
from tackboard.core.exceptions import ValidationError
from tackboard.core.repository import JsonFileRepository, MemoryRepository, SqliteRepository


def test_parse_api_keys():
    keys = parse_api_keys(" ci-key = board-ci, board-docs ; admin=* ;")
    assert keys == {
        "ci-key": frozenset({"board-ci", "board-docs"}),
        "admin": frozenset({"*"}),
    }
    assert parse_api_keys("") == {}


@pytest.mark.parametrize("value", ["no-equals", "=board-a", "key=", "key= , "])
def test_parse_api_keys_rejects_malformed(value):
    with pytest.raises(ValidationError):
        parse_api_keys(value)


def test_load_settings_defaults():
    settings = load_settings({})
    assert settings.backend == "json"
    assert settings.board_id == DEFAULT_BOARD_ID
    assert settings.save_delay == DEFAULT_SAVE_DELAY
    assert settings.api_keys == {}
    assert settings.log_level == "INFO"
    assert settings.home == Path.home() / ".tackboard"


def test_load_settings_from_env(tmp_path):
    settings = load_settings({
        "TACKBOARD_HOME": str(tmp_path),
        "TACKBOARD_BACKEND": "SQLite",
        "TACKBOARD_BOARD": "board-ci",
        "TACKBOARD_API_KEYS": "k=board-ci",
        "TACKBOARD_SAVE_DELAY": "0.25",
        "TACKBOARD_DB_TIMEOUT": "2",
        "TACKBOARD_LOG_LEVEL": "debug",
    })
    assert settings.home == tmp_path
    assert settings.backend == "sqlite"
    assert settings.board_id == "board-ci"
    assert settings.api_keys == {"k": frozenset({"board-ci"})}
    assert settings.save_delay == 0.25
    assert settings.db_timeout == 2.0
    assert settings.log_level == "DEBUG"
    assert settings.boards_dir == tmp_path / "boards"
    assert settings.db_path == tmp_path / "tackboard.db"


def test_load_settings_rejects_bad_values():
    with pytest.raises(ValidationError, match="TACKBOARD_BACKEND"):
        load_settings({"TACKBOARD_BACKEND": "postgres"})
    with pytest.raises(ValidationError, match="TACKBOARD_SAVE_DELAY"):
        load_settings({"TACKBOARD_SAVE_DELAY": "soon"})


@pytest.mark.parametrize("backend,expected", [
    ("json", JsonFileRepository),
    ("sqlite", SqliteRepository),
    ("memory", MemoryRepository),
])
def test_build_repository_selects_backend(tmp_path, backend, expected):
    repo = build_repository(Settings(home=tmp_path, backend=backend))
    assert isinstance(repo, expected)


def test_build_repository_paths(tmp_path):
    settings = Settings(home=tmp_path, backend="sqlite", db_timeout=3.0)
    repo = build_repository(settings)
    assert repo.db_path == tmp_path / "tackboard.db"
    assert repo.timeout == 3.0

    repo = build_repository(Settings(home=tmp_path))
    assert repo.base_dir == tmp_path / "boards"


def test_build_auth_gate_and_event_sink(tmp_path):
    settings = Settings(home=tmp_path, api_keys={"k": frozenset({"board-a"})})
    gate = build_auth_gate(settings)
    assert isinstance(gate, ApiKeyAuthGate)
    assert gate.authenticate({"Authorization": "Bearer k"}, "board-a")
    assert isinstance(build_event_sink(settings), NullEventSink)


def test_configure_logging_sets_level():
    configure_logging("warning")
    assert logging.getLogger().level == logging.WARNING
    configure_logging("nonsense")
    assert logging.getLogger().level == logging.INFO


def test_api_keys_file_merges_with_env(tmp_path):
    keys_file = tmp_path / "keys.txt"
    keys_file.write_text(
        "# automation keys\nci-key=board-ci\n\nadmin=*\n", encoding="utf-8"
    )
    settings = load_settings({
        "TACKBOARD_API_KEYS": "env-key=board-env",
        "TACKBOARD_API_KEYS_FILE": str(keys_file),
    })
    assert settings.api_keys == {
        "env-key": frozenset({"board-env"}),
        "ci-key": frozenset({"board-ci"}),
        "admin": frozenset({"*"}),
    }
    assert read_api_keys_file(keys_file)["admin"] == frozenset({"*"})


def test_api_keys_file_missing_or_malformed(tmp_path):
    with pytest.raises(ValidationError, match="Cannot read API keys file"):
        load_settings({"TACKBOARD_API_KEYS_FILE": str(tmp_path / "absent.txt")})

    bad = tmp_path / "bad.txt"
    bad.write_text("just-a-key\n", encoding="utf-8")
    with pytest.raises(ValidationError, match="Malformed"):
        read_api_keys_file(bad)
