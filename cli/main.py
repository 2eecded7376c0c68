#!/usr/bin/env python3
"""
bbs-indexer CLI - Board log indexer

Main entrypoint for the bbs-indexer command-line tool.
"""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cli.commands import log, replay, search

# Initialize Typer app
app = typer.Typer(
    name="bbs-indexer",
    help="Replay board logs into a searchable index",
    add_completion=False,
)

# Console for rich output
console = Console()

# Add command groups
app.add_typer(log.app, name="log", help="Board log file operations")
app.add_typer(search.app, name="search", help="Search the index")

# Add standalone commands
app.command("replay")(replay.replay_command)
app.command("rebuild")(replay.rebuild_command)
app.command("cursor")(replay.cursor_command)
app.command("digest")(replay.digest_command)


@app.command()
def serve(
    db_url: Optional[str] = typer.Option(None, "--db", "-d", help="Index database URL"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind host (default: BBS_INDEXER_HTTP_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port (default: BBS_INDEXER_HTTP_PORT)"),
):
    """
    Serve the query API over HTTP.

    Examples:
        bbs-indexer serve
        bbs-indexer serve --host 0.0.0.0 --port 8090
    """
    import uvicorn

    from bbs_indexer.api import create_app
    from bbs_indexer.core.errors import IndexerError
    from bbs_indexer.metrics import start_metrics_server
    from bbs_indexer.query import QueryService

    from cli.context import fail, load_settings, open_store

    settings = load_settings(db_url, None)
    start_metrics_server(settings.metrics_enabled, settings.metrics_port)
    try:
        store = open_store(settings)
    except IndexerError as e:
        fail(str(e), False)

    try:
        uvicorn.run(
            create_app(QueryService(store)),
            host=host or settings.http_host,
            port=port or settings.http_port,
            log_config=None,
        )
    finally:
        store.dispose()


@app.command()
def version():
    """Show version information."""
    from cli import __version__
    from bbs_indexer import __version__ as lib_version

    table = Table(show_header=False, box=None)
    table.add_row("[bold]bbs-indexer CLI[/bold]", f"v{__version__}")
    table.add_row("Library", f"bbs_indexer v{lib_version}")

    console.print(table)


def main():
    """Main entrypoint."""
    app()


if __name__ == "__main__":
    main()
