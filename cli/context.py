"""
Shared wiring for CLI commands: settings, store, replayer and error output.
"""

import json
from dataclasses import replace
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console

from bbs_indexer.config import IndexerSettings
from bbs_indexer.logging_config import setup_logging
from bbs_indexer.replay import LogReplayer
from bbs_indexer.store import SQLIndexStore
from bbs_indexer.verify import EntryVerifier

console = Console()


def load_settings(
    db_url: Optional[str] = None,
    log_path: Optional[str] = None,
    json_output: bool = False,
) -> IndexerSettings:
    """
    Read settings from the environment and apply CLI overrides.

    Logging goes to stdout; in --json mode only errors are logged so command
    output stays parseable.
    """
    settings = IndexerSettings.from_env()
    overrides = {}
    if db_url:
        overrides["db_url"] = db_url
    if log_path:
        overrides["log_path"] = log_path
    if overrides:
        settings = replace(settings, **overrides)
    setup_logging("ERROR" if json_output else settings.log_level, settings.log_format)
    return settings


def open_store(settings: IndexerSettings) -> SQLIndexStore:
    return SQLIndexStore(settings.db_url)


def build_replayer(settings: IndexerSettings, store: SQLIndexStore) -> LogReplayer:
    verifier = None
    if settings.verify_key_path:
        verifier = EntryVerifier.load_from_file(settings.verify_key_path)
    return LogReplayer(
        store,
        verifier=verifier,
        strict_update_board=settings.strict_update_board,
    )


def print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def fail(message: str, json_output: bool, **extra: Any) -> NoReturn:
    """Report an error and exit with code 2."""
    if json_output:
        print_json({"error": message, **extra})
    else:
        console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(2)
