"""Allow `python -m tackboard`."""

from .cli.main import main

main()
