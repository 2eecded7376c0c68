"""
Board log commands: tail, inspect
"""

import json
from typing import Any, Dict, List, Optional

import typer
from rich.syntax import Syntax
from rich.table import Table

from bbs_indexer.core.errors import TransportError
from bbs_indexer.replay import FileLogSource

from cli.context import console, fail, load_settings, print_json

app = typer.Typer()


def _load(log_path: Optional[str], json_output: bool) -> List[Dict[str, Any]]:
    settings = load_settings(None, log_path, json_output)
    try:
        return list(FileLogSource(settings.log_path).read_records())
    except TransportError as e:
        fail(str(e), json_output, path=settings.log_path)


def _payload(rec: Dict[str, Any]) -> Any:
    data = rec.get("data") or ""
    try:
        return json.loads(data)
    except ValueError:
        return data


@app.command()
def tail(
    log_path: Optional[str] = typer.Option(
        None, "--log", "-l", help="Board log JSONL file (default: BBS_INDEXER_LOG_PATH)"
    ),
    lines: Optional[int] = typer.Option(None, "--lines", "-n", help="Number of entries to show"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Show the last entries of a board log.

    Examples:
        bbs-indexer log tail
        bbs-indexer log tail --lines 10
        bbs-indexer log tail --json
    """
    records = _load(log_path, json_output)
    if lines:
        records = records[-lines:]

    if json_output:
        print_json({"entries": records, "count": len(records)})
        return

    if not records:
        console.print("[yellow]Board log is empty[/yellow]")
        return

    table = Table(title="Board Log")
    table.add_column("Seq", style="cyan", justify="right")
    table.add_column("Timestamp")
    table.add_column("Operation", style="green")
    table.add_column("Entity ID", style="yellow")
    table.add_column("Signed", style="dim")

    for rec in records:
        table.add_row(
            str(rec.get("seq_num", "N/A")),
            str(rec.get("timestamp", "N/A")),
            str(rec.get("operation", "N/A")),
            rec.get("entity_id") or "-",
            "yes" if rec.get("signature") else "no",
        )

    console.print(table)
    console.print(f"\n[bold]Total entries:[/bold] {len(records)}")


@app.command()
def inspect(
    log_path: Optional[str] = typer.Option(
        None, "--log", "-l", help="Board log JSONL file (default: BBS_INDEXER_LOG_PATH)"
    ),
    from_seq: Optional[int] = typer.Option(None, "--from", help="Start from sequence number"),
    to_seq: Optional[int] = typer.Option(None, "--to", help="End at sequence number"),
    operation: Optional[str] = typer.Option(None, "--operation", "-o", help="Filter by operation"),
    entity_id: Optional[str] = typer.Option(None, "--entity", "-e", help="Filter by entity ID"),
    show_payload: bool = typer.Option(False, "--payload", "-p", help="Show decoded payload"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Inspect board log entries with filters.

    Examples:
        bbs-indexer log inspect --from 10 --to 20
        bbs-indexer log inspect --operation create_post --payload
        bbs-indexer log inspect --entity t-1 --json
    """
    records = _load(log_path, json_output)

    if from_seq is not None:
        records = [r for r in records if r.get("seq_num", 0) >= from_seq]
    if to_seq is not None:
        records = [r for r in records if r.get("seq_num", 0) <= to_seq]
    if operation:
        records = [r for r in records if r.get("operation") == operation]
    if entity_id:
        records = [r for r in records if r.get("entity_id") == entity_id]

    if json_output:
        out = []
        for rec in records:
            rec = dict(rec)
            rec["data"] = _payload(rec) if show_payload else "<hidden>"
            out.append(rec)
        print_json({"entries": out, "count": len(out)})
        return

    if not records:
        console.print("[yellow]No entries match the filters[/yellow]")
        return

    for rec in records:
        console.print(f"\n[bold cyan]Entry {rec.get('seq_num', 'N/A')}[/bold cyan]")
        console.print(f"  Operation: [green]{rec.get('operation', 'N/A')}[/green]")
        console.print(f"  Entity: [yellow]{rec.get('entity_id') or '-'}[/yellow]")
        console.print(f"  Timestamp: {rec.get('timestamp', 'N/A')}")
        console.print(f"  Signature: {rec.get('signature') or 'N/A'}")
        if show_payload:
            console.print("  Payload:")
            console.print(
                Syntax(json.dumps(_payload(rec), indent=2), "json", theme="monokai", line_numbers=False)
            )

    console.print(f"\n[bold]Total entries:[/bold] {len(records)}")
