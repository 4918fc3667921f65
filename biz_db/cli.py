from __future__ import annotations

import threading
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .db import STATS_TABLES, connect, init_db, table_counts
from .settings import load_settings

app = typer.Typer(
    add_completion=False,
    help="biz_db: customers and products database with an API and a terminal UI",
    rich_markup_mode="rich",
)
console = Console()


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context):
    """
    [bold]biz_db[/bold]: SQLite customers/products database.

    [bold]Quick Commands:[/bold]
      biz_db run          Start the API server
      biz_db run --tui    Start the API server and the terminal UI
      biz_db tui          Terminal UI only
      biz_db status       Show configuration and record counts
      biz_db db           Initialize the database
    """
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        raise typer.Exit(code=0)


@app.command("status", help="[bold cyan]S[/bold cyan]how configuration and record counts")
@app.command("stats", hidden=True)  # Alias
def status():
    """Show record counts and current configuration."""
    s = load_settings()

    console.print(Panel.fit(
        "\n".join([
            f"[bold]Database:[/bold]     {s.BIZ_DB_PATH}",
            f"[bold]API Server:[/bold]   http://{s.BIZ_API_HOST}:{s.BIZ_API_PORT}",
            f"[bold]Logs:[/bold]         {s.BIZ_LOG_DIR} ({s.BIZ_LOG_LEVEL})",
        ]),
        title="[bold]Configuration[/bold]"
    ))

    try:
        conn = connect(s.BIZ_DB_PATH)
        try:
            counts = table_counts(conn, STATS_TABLES)
        finally:
            conn.close()
    except Exception as e:
        console.print(f"[yellow]Database not ready:[/yellow] {e}")
        console.print("\n[dim]Run[/dim] [cyan]biz_db db[/cyan] [dim]to create it.[/dim]")
        raise typer.Exit(code=1)

    t = Table(title="[bold]Database Stats[/bold]", show_header=False)
    t.add_column("Table", style="bold")
    t.add_column("Records", style="cyan", justify="right")
    for table, n in counts.items():
        t.add_row(table, f"{n:,}" if n is not None else "[dim]table not found[/dim]")
    console.print(t)


@app.command("db", help="[bold cyan]D[/bold cyan]atabase initialization")
@app.command("init", hidden=True)  # Alias
def database():
    """Create the database file and its tables if missing."""
    s = load_settings()
    conn = connect(s.BIZ_DB_PATH)
    try:
        init_db(conn)
    finally:
        conn.close()
    console.print(f"[green]✓[/green] Database ready at: {s.BIZ_DB_PATH}")


@app.command("tui", help="[bold cyan]T[/bold cyan]erminal UI for customers and products")
def tui():
    """Run the terminal UI against the configured database."""
    from .logging import setup_logging
    from .tui import run_tui

    s = load_settings()
    # The terminal belongs to the UI; logs go to the file only.
    setup_logging(s, console=False)
    run_tui(s)


@app.command("run", help="[bold cyan]R[/bold cyan]un the API server")
@app.command("serve", hidden=True)  # Alias
def run(
    host: Annotated[
        Optional[str],
        typer.Option(help="Host to bind"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option(help="Port to bind"),
    ] = None,
    with_tui: Annotated[
        bool,
        typer.Option("--tui", help="Also run the terminal UI in the foreground"),
    ] = False,
):
    """Start the FastAPI server, optionally with the terminal UI."""
    import uvicorn

    from .logging import setup_logging

    s = load_settings()
    host = host or s.BIZ_API_HOST
    port = port or s.BIZ_API_PORT
    url = f"http://{host}:{port}"

    log_file = setup_logging(s, console=not with_tui)

    if not with_tui:
        console.print(Panel.fit(
            f"[bold]API Server starting...[/bold]\n\n"
            f"  URL:  [cyan]{url}[/cyan]\n"
            f"  Docs: [cyan]{url}/docs[/cyan]\n\n"
            f"  Logs: [cyan]{log_file}[/cyan]\n\n"
            f"[dim]Press CTRL+C to stop[/dim]",
            title="[bold green]biz_db API[/bold green]"
        ))
        uvicorn.run(
            "biz_db.app:app",
            host=host,
            port=port,
            reload=False,
            access_log=bool(s.BIZ_API_LOG_ACCESS),
            log_config=None,
        )
        return

    from .tui import run_tui

    config = uvicorn.Config(
        "biz_db.app:app",
        host=host,
        port=port,
        reload=False,
        access_log=bool(s.BIZ_API_LOG_ACCESS),
        log_config=None,
    )
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="biz_db-api", daemon=True)
    thread.start()
    try:
        run_tui(s, server_url=url)
    finally:
        server.should_exit = True
        thread.join(timeout=5)


def main():
    app()
