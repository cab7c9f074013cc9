"""
Tests for the interactive REPL: parser, completer, handlers and undo.
"""

import io
import os
import subprocess
import sys
from pathlib import Path

import pytest
from prompt_toolkit.document import Document
from rich.console import Console

from tackboard.core import service
from tackboard.core.identity import Namespace, resolve_hash
from tackboard.core.session import BoardSession
from tackboard.repl.completer import create_completer
from tackboard.repl.context import REPLContext
from tackboard.repl.main import execute_command, format_prompt, get_bottom_toolbar
from tackboard.repl.parser import parse_command


class IdleTimer:
    """Timer that never fires; saves happen on flush/close."""

    def __init__(self, interval, function):
        self.daemon = False

    def start(self):
        pass

    def cancel(self):
        pass


@pytest.fixture
def session(flaky_repo, rng):
    return BoardSession(flaky_repo, "board-repl", rng=rng, timer_factory=IdleTimer)


@pytest.fixture
def ctx(session):
    return REPLContext(session=session, console=Console(file=io.StringIO(), width=120))


def run(ctx, line):
    """Execute one REPL line and return (keep_going, printed text)."""
    ctx.console.file.seek(0)
    ctx.console.file.truncate()
    keep_going = execute_command(ctx, parse_command(line))
    return keep_going, ctx.console.file.getvalue()


def titles(ctx, column_index=0):
    column_id = ctx.board.column_order[column_index]
    return [c.title for c in service.column_cards(ctx.board, column_id)]


def token_of(ctx, title):
    return next(c.external_hash for c in ctx.board.cards.values() if c.title == title)


# --- Parser ---


def test_parse_quoted_args_and_flags():
    result = parse_command('add "Write docs" --column in-progress --desc="long text"')
    assert result.command == "add"
    assert result.args == ["Write docs"]
    assert result.flags == {"column": "in-progress", "desc": "long text"}


def test_parse_boolean_flags_do_not_swallow_args():
    result = parse_command("SHOW --json a1b2")
    assert result.command == "show"
    assert result.args == ["a1b2"]
    assert result.flag("json") is True

    result = parse_command("column-rm review --delete-cards")
    assert result.flags == {"delete-cards": True}


def test_parse_edge_cases():
    assert parse_command("   ").command == ""
    unclosed = parse_command('add "half open')
    assert unclosed.command == "add"
    assert unclosed.args == ['"half', "open"]
    assert parse_command("mv a1b2 done --index").flag("index") is True


# --- Completer ---


def completions(ctx, text):
    completer = create_completer(lambda: ctx.board)
    return [c.text for c in completer.get_completions(Document(text), None)]


def test_complete_commands(ctx):
    assert "show" in completions(ctx, "")
    assert completions(ctx, "col") == ["columns", "column-add", "column-rename", "column-rm"]
    assert completions(ctx, "UND") == ["undo"]


def test_complete_card_hashes_and_columns(ctx):
    run(ctx, "add Alpha")
    token = token_of(ctx, "Alpha")

    assert completions(ctx, "mv ") == [token]
    assert completions(ctx, f"rm {token[:2]}") == [token]
    assert completions(ctx, f"mv {token} ") == ["todo", "in-progress", "done"]
    assert completions(ctx, f"mv {token} in") == ["in-progress"]
    assert completions(ctx, "add Beta --column d") == ["done"]
    assert completions(ctx, "column-rm ") == ["todo", "in-progress", "done"]


def test_complete_flags(ctx):
    assert completions(ctx, "column-rm todo --") == ["--move-to", "--delete-cards"]
    assert completions(ctx, "show -") == ["--json", "--raw"]
    assert completions(ctx, "undo -") == []


def test_completer_without_board():
    completer = create_completer()
    assert list(completer.get_completions(Document("rm "), None)) == []


# --- Handlers ---


def test_add_show_and_move(ctx):
    _, out = run(ctx, 'add "First card"')
    assert "Created card" in out
    run(ctx, "add Second card --column todo")
    assert titles(ctx) == ["First card", "Second card"]

    second = token_of(ctx, "Second card")
    run(ctx, f"mv {second} todo --index 0")
    assert titles(ctx) == ["Second card", "First card"]

    _, out = run(ctx, f"mv {second} todo --index 0")
    assert "already there" in out

    _, out = run(ctx, f"mv {second} done")
    assert "Done" in out
    assert titles(ctx, 2) == ["Second card"]

    _, out = run(ctx, "show --raw")
    assert f"{second}: [done] Second card" in out


def test_show_single_card_json(ctx):
    run(ctx, 'add "Look at me" --desc "with detail"')
    token = token_of(ctx, "Look at me")
    _, out = run(ctx, f"show {token} --json")
    assert '"description": "with detail"' in out


def test_edit_and_note(ctx):
    run(ctx, "add Rough")
    token = token_of(ctx, "Rough")

    run(ctx, f"edit {token} Polished title")
    card = ctx.board.cards[resolve_hash(ctx.board, Namespace.CARD, token)]
    assert card.title == "Polished title"

    run(ctx, f'edit {token} --desc "Now with words"')
    run(ctx, f"note {token} Waiting on review")
    card = ctx.board.cards[card.id]
    assert card.description == "Now with words"
    assert [n.text for n in card.notes] == ["Waiting on review"]

    _, out = run(ctx, f"edit {token}")
    assert "Nothing to update" in out


def test_rm_multiple_and_undo_restores_all(ctx):
    for title in ("one", "two", "three"):
        run(ctx, f"add {title}")
    one, two = token_of(ctx, "one"), token_of(ctx, "two")

    _, out = run(ctx, f"rm {one},{two}")
    assert out.count("Deleted") == 2
    assert titles(ctx) == ["three"]

    _, out = run(ctx, "undo")
    assert "Undid: Deleted 2 cards" in out
    assert titles(ctx) == ["one", "two", "three"]


def test_rm_with_unknown_hash_deletes_nothing(ctx):
    run(ctx, "add keep")
    keep = token_of(ctx, "keep")
    _, out = run(ctx, f"rm {keep},zzzz")
    assert "not found" in out
    assert titles(ctx) == ["keep"]


def test_undo_add_retires_hash(ctx):
    run(ctx, "add Temporary")
    token = token_of(ctx, "Temporary")

    _, out = run(ctx, "undo")
    assert "Undid: Created card" in out
    assert ctx.board.cards == {}
    assert token in ctx.board.retired_card_hashes

    _, out = run(ctx, "undo")
    assert "No operation to undo" in out


def test_rejected_command_is_not_recorded_for_undo(ctx):
    run(ctx, "add Real")
    run(ctx, "column-rm todo")  # has a card, rejected
    _, out = run(ctx, "undo")
    assert "Undid: Created card" in out


def test_column_commands(ctx):
    run(ctx, 'column-add "Code Review" --after in-progress')
    run(ctx, "column-rename todo Backlog")
    names = [c.title for c in service.columns_in_order(ctx.board)]
    assert names == ["Backlog", "In Progress", "Code Review", "Done"]

    run(ctx, "add Pending --column code-review")
    _, out = run(ctx, "column-rm code-review")
    assert "Column contains 1 card(s)" in out

    run(ctx, "column-rm code-review --move-to done")
    assert len(ctx.board.columns) == 3
    assert titles(ctx, 2) == ["Pending"]

    _, out = run(ctx, "columns --json")
    assert '"name": "backlog"' in out


def test_errors_and_unknown_commands_keep_running(ctx):
    keep_going, out = run(ctx, "mv zzzz done")
    assert keep_going
    assert "Error:" in out and "not found" in out

    keep_going, out = run(ctx, "frobnicate")
    assert keep_going
    assert "Unknown command" in out

    keep_going, _ = run(ctx, "")
    assert keep_going


def test_exit_and_quit_stop_loop(ctx):
    for word in ("exit", "QUIT"):
        keep_going, out = run(ctx, word)
        assert keep_going is False
        assert "Goodbye!" in out


def test_save_check_and_help(ctx, flaky_repo):
    run(ctx, "add Persist me")
    assert ctx.session.dirty

    _, out = run(ctx, "save")
    assert "Saved" in out
    stored = flaky_repo.load_board("board-repl")
    assert [c.title for c in stored.cards.values()] == ["Persist me"]

    _, out = run(ctx, "check")
    assert "consistent" in out

    _, out = run(ctx, "help")
    assert "Available Commands" in out


def test_toolbar_and_prompt_reflect_save_state(ctx, flaky_repo):
    assert "board-repl" in format_prompt(ctx).value
    assert ctx.get_prompt() == "tackboard:[board-repl]> "

    run(ctx, "add Unsaved")
    assert "unsaved changes" in get_bottom_toolbar(ctx).value

    flaky_repo.fail_writes = True
    _, out = run(ctx, "save")
    assert "disk full" in out
    assert "Save failed: disk full" in get_bottom_toolbar(ctx).value

    flaky_repo.fail_writes = False
    run(ctx, "save")
    assert "| saved |" in get_bottom_toolbar(ctx).value


# --- Process-level ---


def test_repl_runs_as_module_with_piped_input(tmp_path):
    """python -m tackboard with piped stdin falls back to plain input()."""
    env = dict(os.environ)
    env.update({
        "TACKBOARD_HOME": str(tmp_path),
        "TACKBOARD_LOG_LEVEL": "WARNING",
        "TACKBOARD_SAVE_DELAY": "30",
        "PYTHONIOENCODING": "utf-8",
    })
    result = subprocess.run(
        [sys.executable, "-m", "tackboard"],
        input="add Piped card\nexit\n",
        capture_output=True,
        text=True,
        encoding="utf-8",
        env=env,
        cwd=Path(__file__).parent.parent,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
    assert "Tackboard REPL" in result.stdout
    assert "Created card" in result.stdout
    assert "Goodbye!" in result.stdout
    assert (tmp_path / "boards" / "board-default.json").exists()


def test_bracketed_titles_print_literally(ctx):
    keep_going, out = run(ctx, 'add "[/x] odd"')
    assert keep_going
    assert "[/x] odd" in out

    _, out = run(ctx, "show")
    assert "[/x] odd" in out

    _, out = run(ctx, "mv [red] done")
    assert "[red]" in out
