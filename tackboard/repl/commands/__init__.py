"""
FILE: tackboard/repl/commands/__init__.py
PURPOSE: REPL command handler modules
"""

# Export all command handlers for easy importing
from .cards import (
    handle_show_command,
    handle_add_command,
    handle_mv_command,
    handle_edit_command,
    handle_rm_command,
    handle_note_command,
)
from .columns import (
    handle_columns_command,
    handle_column_add_command,
    handle_column_rename_command,
    handle_column_rm_command,
)
from .system import (
    handle_undo_command,
    handle_save_command,
    handle_check_command,
    handle_help_command,
    handle_clear_command,
)

__all__ = [
    "handle_show_command",
    "handle_add_command",
    "handle_mv_command",
    "handle_edit_command",
    "handle_rm_command",
    "handle_note_command",
    "handle_columns_command",
    "handle_column_add_command",
    "handle_column_rename_command",
    "handle_column_rm_command",
    "handle_undo_command",
    "handle_save_command",
    "handle_check_command",
    "handle_help_command",
    "handle_clear_command",
]
