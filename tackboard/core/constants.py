"""
FILE: tackboard/core/constants.py
PURPOSE: Constants used throughout the application
EXPORTS:
  - Title/description/note length limits
  - HASH_ALPHABET, HASH_LENGTH, HASH_SPACE: external hash token shape
  - DEFAULT_COLUMN_TITLES: columns seeded into a brand-new board
  - DEFAULT_BOARD_ID, SCHEMA_VERSION
  - DEFAULT_SAVE_DELAY: debounce window for interactive saves
DEPENDENCIES:
  - string (stdlib)
NOTES:
  - Single source of truth for limits shared by the engine, CLI and HTTP API
"""

import string

# Validation limits
CARD_TITLE_MAX_LENGTH = 500
CARD_DESCRIPTION_MAX_LENGTH = 5000
COLUMN_TITLE_MAX_LENGTH = 100
NOTE_MAX_LENGTH = 2000

# External hash tokens: 4 symbols of base36 = 1,679,616 values per namespace
HASH_ALPHABET = string.digits + string.ascii_lowercase
HASH_LENGTH = 4
HASH_SPACE = len(HASH_ALPHABET) ** HASH_LENGTH

# Board defaults
DEFAULT_BOARD_ID = "board-default"
DEFAULT_COLUMN_TITLES = ("TODO", "In Progress", "Done")
SCHEMA_VERSION = "1.0"

# Board ids double as file names, so keep them to a safe character set
BOARD_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$"

# Persistence
DEFAULT_SAVE_DELAY = 1.0
DEFAULT_DB_TIMEOUT = 5.0
