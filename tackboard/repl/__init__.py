"""
FILE: tackboard/repl/__init__.py
PURPOSE: REPL package for interactive board management
EXPORTS:
  - main() (from repl.main)
DEPENDENCIES:
  - prompt_toolkit (REPL interface)
  - rich (formatted output)
NOTES:
  - Entry point for interactive mode
  - Provides autocomplete, command history and single-level undo
"""

from .main import main

__all__ = ["main"]
