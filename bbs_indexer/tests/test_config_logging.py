"""
Tests for settings, structured logging and metrics.
"""

import json
import logging

from prometheus_client import REGISTRY

from bbs_indexer import metrics
from bbs_indexer.config import IndexerSettings
from bbs_indexer.logging_config import get_logger, setup_logging
from bbs_indexer.replay import LogReplayer
from bbs_indexer.tests.helpers import board_entry, memory_store


def test_settings_defaults(monkeypatch):
    """Without environment variables every field has its default."""
    for key in ("DB_URL", "LOG_PATH", "HTTP_PORT", "VERIFY_KEY", "STRICT_UPDATE_BOARD"):
        monkeypatch.delenv("BBS_INDEXER_" + key, raising=False)

    settings = IndexerSettings.from_env()

    assert settings.db_url == "sqlite:///bbs-index.sqlite3"
    assert settings.http_port == 8090
    assert settings.verify_key_path is None
    assert settings.strict_update_board is False


def test_settings_from_env(monkeypatch):
    """Environment values override defaults; junk falls back."""
    monkeypatch.setenv("BBS_INDEXER_DB_URL", "sqlite:////var/lib/bbs/index.db")
    monkeypatch.setenv("BBS_INDEXER_LOG_LEVEL", "debug")
    monkeypatch.setenv("BBS_INDEXER_HTTP_PORT", "not-a-port")
    monkeypatch.setenv("BBS_INDEXER_METRICS_PORT", "9200")
    monkeypatch.setenv("BBS_INDEXER_METRICS_ENABLED", "yes")
    monkeypatch.setenv("BBS_INDEXER_STRICT_UPDATE_BOARD", "maybe")

    settings = IndexerSettings.from_env()

    assert settings.db_url == "sqlite:////var/lib/bbs/index.db"
    assert settings.log_level == "DEBUG"
    assert settings.http_port == 8090
    assert settings.metrics_port == 9200
    assert settings.metrics_enabled is True
    assert settings.strict_update_board is False


def test_json_logs_carry_seq_num(capsys):
    """JSON log lines use renamed fields and the entry's seq_num."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("INFO", "json")
        get_logger("bbs_indexer.test", seq_num=7).info("applied entry")
        logging.getLogger("bbs_indexer.test").info("no entry")

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line]
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    assert lines[0]["message"] == "applied entry"
    assert lines[0]["level"] == "INFO"
    assert lines[0]["logger"] == "bbs_indexer.test"
    assert lines[0]["seq_num"] == 7
    assert "timestamp" in lines[0]
    assert lines[1]["seq_num"] == "N/A"


def test_text_logs(capsys):
    """Text format keeps the seq tag at the end of the line."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging("WARNING", "text")
        get_logger("bbs_indexer.test", seq_num=3).warning("unknown operation")
        get_logger("bbs_indexer.test").info("filtered out")

        out = capsys.readouterr().out
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)

    assert "unknown operation [seq=3]" in out
    assert "filtered out" not in out


def test_metrics_count_outcomes():
    """Once initialised, the replayer records outcomes and the cursor."""
    metrics.init_metrics()
    metrics.init_metrics()  # idempotent

    labels = {"operation": "create_board", "outcome": "applied"}
    before = REGISTRY.get_sample_value("bbs_indexer_entries_total", labels) or 0.0

    store = memory_store()
    r = LogReplayer(store)
    r.apply(board_entry(11, "b1"))
    r.apply(board_entry(11, "b1"))

    assert REGISTRY.get_sample_value("bbs_indexer_entries_total", labels) == before + 1
    skipped = REGISTRY.get_sample_value(
        "bbs_indexer_entries_total", {"operation": "create_board", "outcome": "skipped"}
    )
    assert skipped >= 1
    assert REGISTRY.get_sample_value("bbs_indexer_last_applied_sequence") == 11
