"""
Replay commands: replay, rebuild, cursor, digest
"""

from typing import Optional

import typer
from rich.table import Table

from bbs_indexer.core.errors import IndexerError, TransportError
from bbs_indexer.metrics import start_metrics_server
from bbs_indexer.replay import FileLogSource, ReplayResult, rebuild, replay_from_source
from bbs_indexer.store import compute_view_hash

from cli.context import build_replayer, console, fail, load_settings, open_store, print_json

DB_OPTION = typer.Option(None, "--db", "-d", help="Index database URL (default: BBS_INDEXER_DB_URL)")
LOG_OPTION = typer.Option(None, "--log", "-l", help="Board log JSONL file (default: BBS_INDEXER_LOG_PATH)")
JSON_OPTION = typer.Option(False, "--json", help="Output as JSON")


def _print_result(title: str, result: ReplayResult, json_output: bool) -> None:
    if json_output:
        print_json(
            {
                "success": True,
                "applied": result.applied,
                "skipped": result.skipped,
                "ignored": result.ignored,
                "cursor": result.cursor,
            }
        )
        return

    console.print(f"[green]✓ {title}[/green]")
    table = Table(show_header=False, box=None)
    table.add_row("Applied", f"[cyan]{result.applied}[/cyan]")
    table.add_row("Skipped", str(result.skipped))
    table.add_row("Ignored", f"[yellow]{result.ignored}[/yellow]")
    table.add_row("Cursor", f"[bold]{result.cursor}[/bold]")
    console.print(table)


def _run(
    db_url: Optional[str],
    log_path: Optional[str],
    json_output: bool,
    from_scratch: bool,
) -> None:
    settings = load_settings(db_url, log_path, json_output)
    store = None
    start_metrics_server(settings.metrics_enabled, settings.metrics_port)
    try:
        store = open_store(settings)
        replayer = build_replayer(settings, store)
        source = FileLogSource(settings.log_path)
        if from_scratch:
            result = rebuild(replayer, source)
            _print_result("Rebuilt index", result, json_output)
        else:
            result = replay_from_source(replayer, source)
            _print_result("Replay complete", result, json_output)
    except TransportError as e:
        fail(str(e), json_output, path=settings.log_path)
    except (IndexerError, OSError, ValueError) as e:
        fail(str(e), json_output)
    finally:
        if store is not None:
            store.dispose()


def replay_command(
    db_url: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Apply log entries newer than the persisted cursor.

    Safe to run repeatedly: already applied entries are skipped.

    Examples:
        bbs-indexer replay
        bbs-indexer replay --log board.jsonl --db sqlite:///index.sqlite3
        bbs-indexer replay --json
    """
    _run(db_url, log_path, json_output, from_scratch=False)


def rebuild_command(
    db_url: Optional[str] = DB_OPTION,
    log_path: Optional[str] = LOG_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    json_output: bool = JSON_OPTION,
):
    """
    Drop the materialized view and replay the whole log.

    --json never prompts, so it must be combined with --yes.

    Examples:
        bbs-indexer rebuild --yes
        bbs-indexer rebuild --yes --json
    """
    if not yes:
        if json_output:
            fail("rebuild clears the index; pass --yes to confirm", json_output)
        typer.confirm("This clears every board, thread and post. Continue?", abort=True)
    _run(db_url, log_path, json_output, from_scratch=True)


def cursor_command(
    db_url: Optional[str] = DB_OPTION,
    json_output: bool = JSON_OPTION,
):
    """
    Show the last applied sequence number.

    Examples:
        bbs-indexer cursor
        bbs-indexer cursor --json
    """
    settings = load_settings(db_url, None, json_output)
    try:
        store = open_store(settings)
        try:
            cursor = store.get_cursor()
        finally:
            store.dispose()
    except IndexerError as e:
        fail(str(e), json_output)

    if json_output:
        print_json({"last_applied_sequence": cursor})
    else:
        console.print(f"Last applied sequence: [bold cyan]{cursor}[/bold cyan]")


def digest_command(
    db_url: Optional[str] = DB_OPTION,
    expected: Optional[str] = typer.Option(
        None, "--expect", "-e", help="Fail unless the digest equals this value"
    ),
    json_output: bool = JSON_OPTION,
):
    """
    Print the digest of the materialized view.

    Replicas that replayed the same log print the same digest.

    Examples:
        bbs-indexer digest
        bbs-indexer digest --expect 3f2a...
    """
    settings = load_settings(db_url, None, json_output)
    try:
        store = open_store(settings)
        try:
            cursor = store.get_cursor()
            view_hash = compute_view_hash(store)
        finally:
            store.dispose()
    except IndexerError as e:
        fail(str(e), json_output)

    matches = expected is None or expected == view_hash
    if json_output:
        out = {"last_applied_sequence": cursor, "view_hash": view_hash}
        if expected is not None:
            out["matches"] = matches
        print_json(out)
    else:
        console.print(f"Cursor: [cyan]{cursor}[/cyan]")
        console.print(f"View hash: [yellow]{view_hash}[/yellow]")
        if expected is not None:
            if matches:
                console.print("[green]✓ Digest matches[/green]")
            else:
                console.print(f"[red]✗ Digest mismatch, expected {expected}[/red]")

    if not matches:
        raise typer.Exit(1)
