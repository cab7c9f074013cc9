"""
FILE: tackboard/repl/parser.py
PURPOSE: Parse user input into commands and arguments for REPL
EXPORTS:
  - ParseResult (dataclass for parsed commands)
  - parse_command(input_str) -> ParseResult
DEPENDENCIES:
  - shlex (for shell-like parsing with quotes)
  - dataclasses (for ParseResult)
NOTES:
  - Handles quoted strings: add "card with spaces"
  - Supports flags: --json, --column todo, --column=todo
  - Preserves argument order for positional args
  - Case-insensitive command names
"""

import shlex
from dataclasses import dataclass, field
from typing import Dict, List, Union

# Flags that never take a value, so "show --json a1b2" keeps a1b2 as an argument
BOOLEAN_FLAGS = {"json", "raw", "delete-cards"}


@dataclass
class ParseResult:
    """
    Result of parsing a REPL command.

    Attributes:
        command: The command name (e.g., "add", "mv", "show")
        args: Positional arguments (e.g., ["card title", "a1b2"])
        flags: Flag arguments as dict (e.g., {"column": "todo", "delete-cards": True})
        raw_input: Original input string
    """
    command: str
    args: List[str] = field(default_factory=list)
    flags: Dict[str, Union[str, bool]] = field(default_factory=dict)
    raw_input: str = ""

    def flag(self, name: str, default=None):
        """Value of a flag, or default if absent."""
        return self.flags.get(name, default)


def parse_command(input_str: str) -> ParseResult:
    """
    Parse REPL input into command, args, and flags.

    Examples:
        >>> parse_command('add "Write docs" --column todo')
        ParseResult(command="add", args=["Write docs"], flags={"column": "todo"})

        >>> parse_command("mv a1b2 done --index=0")
        ParseResult(command="mv", args=["a1b2", "done"], flags={"index": "0"})

        >>> parse_command("column-rm review --delete-cards")
        ParseResult(command="column-rm", args=["review"], flags={"delete-cards": True})

    Args:
        input_str: Raw user input from REPL prompt

    Returns:
        ParseResult with command, args, and flags extracted

    Notes:
        - Command is always the first token (case-insensitive)
        - Boolean flags don't need values (--json sets json=True)
        - Value flags take the next token (--column todo) or an inline
          value (--column=todo)
        - Quoted strings are treated as single args
        - Empty input returns command="" with no args/flags
    """
    input_str = input_str.strip()
    if not input_str:
        return ParseResult(command="", raw_input=input_str)

    try:
        tokens = shlex.split(input_str)
    except ValueError:
        # Unclosed quote: fall back to whitespace split
        tokens = input_str.split()

    if not tokens:
        return ParseResult(command="", raw_input=input_str)

    command = tokens[0].lower()
    args = []
    flags = {}
    i = 1

    while i < len(tokens):
        token = tokens[i]

        if token.startswith("--") and len(token) > 2:
            name, sep, value = token[2:].partition("=")
            if sep:
                flags[name] = value
                i += 1
            elif (
                name not in BOOLEAN_FLAGS
                and i + 1 < len(tokens)
                and not tokens[i + 1].startswith("--")
            ):
                flags[name] = tokens[i + 1]
                i += 2
            else:
                flags[name] = True
                i += 1
        else:
            args.append(token)
            i += 1

    return ParseResult(command=command, args=args, flags=flags, raw_input=input_str)
