"""
FILE: tackboard/cli/commands/system.py
PURPOSE: System commands (version, boards, board-rm, check, migrate-hashes, serve, repl)
"""

from typing import Optional

import typer
from rich.table import Table

from ..main import BOARD_OPTION, __version__, app, console, error_console, fail, get_settings
from ...config import build_auth_gate, build_event_sink, build_repository
from ...core.exceptions import TackboardError
from ...core.identity import backfill_hashes
from ...core.invariants import check_invariants


@app.command()
def version():
    """Show Tackboard version."""
    console.print(f"Tackboard v{__version__}")


@app.command()
def boards(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    raw: bool = typer.Option(False, "--raw", help="Plain text output (no colors)"),
):
    """
    List stored boards, most recently updated first.

    Example:
        tackboard boards
    """
    try:
        summaries = build_repository(get_settings()).list_boards()
    except TackboardError as e:
        fail(e)

    if json_output:
        console.print_json(data=[s.to_dict() for s in summaries])
        return
    if raw:
        for s in summaries:
            console.print(f"{s.id}: {s.card_count} card(s), {s.column_count} column(s)", markup=False, soft_wrap=True)
        return
    if not summaries:
        console.print("[dim]No boards found[/dim]")
        return

    table = Table(title="Boards", show_header=True, header_style="bold cyan")
    table.add_column("Board", style="cyan", no_wrap=True)
    table.add_column("Cards", style="yellow", justify="right")
    table.add_column("Columns", style="magenta", justify="right")
    table.add_column("Updated", style="dim")
    for s in summaries:
        table.add_row(s.id, str(s.card_count), str(s.column_count), f"{s.updated_at:%Y-%m-%d %H:%M}")
    console.print(table)


@app.command("board-rm")
def board_rm(
    board_id: str = typer.Argument(..., help="Board id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """
    Delete a whole board.

    Example:
        tackboard board-rm board-scratch --yes
    """
    if not yes and not typer.confirm(f"Delete board '{board_id}' and all its cards?"):
        console.print("[dim]Cancelled[/dim]")
        raise typer.Exit(0)
    try:
        build_repository(get_settings()).delete_board(board_id)
    except TackboardError as e:
        fail(e)
    console.print(f"[green]✓ Deleted board [bold]{board_id}[/bold][/green]")


@app.command()
def check(board_id: Optional[str] = BOARD_OPTION):
    """
    Verify ordering, reference and hash invariants of a stored board.

    Exits with code 1 if any violation is found.
    """
    settings = get_settings()
    try:
        board = build_repository(settings).load_board(board_id or settings.board_id)
    except TackboardError as e:
        fail(e)

    violations = check_invariants(board)
    if not violations:
        console.print(f"[green]✓ Board {board.id} is consistent[/green]")
        return
    for violation in violations:
        error_console.print(f"[red]✗[/red] {violation}")
    raise typer.Exit(1)


@app.command("migrate-hashes")
def migrate_hashes(
    board_id: Optional[str] = BOARD_OPTION,
    all_boards: bool = typer.Option(False, "--all", help="Migrate every stored board"),
):
    """
    Assign hashes to cards and columns created before hashes existed.

    Safe to run more than once: entities that already have a hash keep it.
    """
    settings = get_settings()
    repository = build_repository(settings)
    try:
        if all_boards:
            board_ids = [s.id for s in repository.list_boards()]
        else:
            board_ids = [board_id or settings.board_id]

        for bid in board_ids:
            board, columns_changed, cards_changed = backfill_hashes(repository.load_board(bid))
            if columns_changed or cards_changed:
                repository.save_board(board)
            console.print(
                f"[green]✓[/green] {bid}: {columns_changed} column(s), {cards_changed} card(s) updated"
            )
    except TackboardError as e:
        fail(e)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(3000, "--port", "-p", help="Port to listen on"),
):
    """
    Run the HTTP API for automation clients.

    Example:
        TACKBOARD_API_KEYS="ci-key=board-ci" tackboard serve --port 3000
    """
    # Import here to avoid loading Flask for one-shot commands
    from ...api.server import create_app

    settings = get_settings()
    if not settings.api_keys:
        error_console.print(
            "[yellow]Warning:[/yellow] TACKBOARD_API_KEYS is empty; every request will be rejected"
        )
    flask_app = create_app(
        build_repository(settings),
        build_auth_gate(settings),
        events=build_event_sink(settings),
    )
    console.print(f"[bold cyan]Tackboard API[/bold cyan] on http://{host}:{port}")
    flask_app.run(host=host, port=port)


@app.command()
def repl():
    """
    Launch interactive REPL mode.

    The REPL provides:
    - Command history (up/down arrows)
    - Autocomplete (Tab key) for commands, card hashes and columns
    - Single-level undo
    - Exit with Ctrl+D or type 'exit'
    """
    # Import here to avoid loading REPL dependencies for one-shot commands
    from ...repl import main as repl_main

    try:
        repl_main(get_settings())
    except TackboardError as e:
        error_console.print(f"[red]Error starting REPL:[/red] {e}")
        raise typer.Exit(1)
