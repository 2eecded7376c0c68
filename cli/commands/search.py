"""
Search commands: posts, threads
"""

from typing import Optional

import typer
from rich.table import Table

from bbs_indexer.core.errors import IndexerError
from bbs_indexer.query import QueryService

from cli.context import console, fail, load_settings, open_store, print_json

app = typer.Typer()

DB_OPTION = typer.Option(None, "--db", "-d", help="Index database URL (default: BBS_INDEXER_DB_URL)")


def _preview(text: str, width: int = 60) -> str:
    text = " ".join(text.split())
    return text if len(text) <= width else text[: width - 1] + "…"


@app.command()
def posts(
    query: str = typer.Argument("", help="Substring to look for in post content"),
    board_id: str = typer.Option("", "--board", "-b", help="Only posts of this board"),
    thread_id: str = typer.Option("", "--thread", "-t", help="Only posts of this thread"),
    author_id: str = typer.Option("", "--author", "-a", help="Only posts by this author"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size (default 20, max 100)"),
    offset: Optional[int] = typer.Option(None, "--offset", help="Results to skip"),
    db_url: Optional[str] = DB_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Search live posts, newest first.

    Examples:
        bbs-indexer search posts hello
        bbs-indexer search posts --board b-1 --author alice --json
    """
    settings = load_settings(db_url, None, json_output)
    try:
        store = open_store(settings)
        try:
            resp = QueryService(store).search_posts(query, board_id, thread_id, author_id, limit, offset)
        finally:
            store.dispose()
    except IndexerError as e:
        fail(str(e), json_output)

    if json_output:
        print_json(resp.to_dict())
        return

    table = Table(title=f"Posts matching {query!r}")
    table.add_column("ID", style="cyan")
    table.add_column("Thread", style="yellow")
    table.add_column("Author", style="green")
    table.add_column("Created")
    table.add_column("Content")
    for post in resp.posts:
        table.add_row(post.id, post.thread_id, post.author_id, post.created_at.isoformat(), _preview(post.content))
    console.print(table)
    console.print(
        f"\n[bold]Showing {len(resp.posts)} of {resp.total_count}[/bold] (offset {resp.offset})"
    )


@app.command()
def threads(
    query: str = typer.Argument("", help="Substring to look for in thread titles"),
    board_id: str = typer.Option("", "--board", "-b", help="Only threads of this board"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Page size (default 20, max 100)"),
    offset: Optional[int] = typer.Option(None, "--offset", help="Results to skip"),
    db_url: Optional[str] = DB_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Search threads by title, newest first.

    Examples:
        bbs-indexer search threads welcome
        bbs-indexer search threads --board b-1 --json
    """
    settings = load_settings(db_url, None, json_output)
    try:
        store = open_store(settings)
        try:
            resp = QueryService(store).search_threads(query, board_id, limit, offset)
        finally:
            store.dispose()
    except IndexerError as e:
        fail(str(e), json_output)

    if json_output:
        print_json(resp.to_dict())
        return

    table = Table(title=f"Threads matching {query!r}")
    table.add_column("ID", style="cyan")
    table.add_column("Board", style="yellow")
    table.add_column("Title", style="green")
    table.add_column("Posts", justify="right")
    table.add_column("Closed")
    for thread in resp.threads:
        table.add_row(
            thread.id,
            thread.board_id,
            _preview(thread.title),
            str(thread.post_count),
            "yes" if thread.is_closed else "no",
        )
    console.print(table)
    console.print(
        f"\n[bold]Showing {len(resp.threads)} of {resp.total_count}[/bold] (offset {resp.offset})"
    )
