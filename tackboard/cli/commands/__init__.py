"""
FILE: tackboard/cli/commands/__init__.py
PURPOSE: CLI command modules
"""

# Export all command handlers for easy importing
from .cards import (
    show,
    add,
    mv,
    edit,
    rm,
    note,
)
from .columns import (
    columns,
    column_add,
    column_rename,
    column_rm,
)
from .system import (
    version,
    boards,
    board_rm,
    check,
    migrate_hashes,
    serve,
    repl,
)

__all__ = [
    "show",
    "add",
    "mv",
    "edit",
    "rm",
    "note",
    "columns",
    "column_add",
    "column_rename",
    "column_rm",
    "version",
    "boards",
    "board_rm",
    "check",
    "migrate_hashes",
    "serve",
    "repl",
]
