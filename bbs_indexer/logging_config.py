"""
Structured logging configuration for the indexer.

Provides JSON-formatted logs with a seq_num field so every line written while
applying an entry can be correlated with that entry.

Environment Variables:
    BBS_INDEXER_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR) - default: INFO
    BBS_INDEXER_LOG_FORMAT: Log format (json, text) - default: json

Usage:
    from bbs_indexer.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__, seq_num=42)
    logger.info("Applied entry")
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class SeqNumFilter(logging.Filter):
    """
    Logging filter that guarantees a seq_num attribute on every record.

    Records that did not come through get_logger() get "N/A".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "seq_num"):
            record.seq_num = "N/A"  # type: ignore
        return True


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Configure the root logger with one stdout handler.

    Arguments win over BBS_INDEXER_LOG_LEVEL / BBS_INDEXER_LOG_FORMAT.
    Unknown levels fall back to INFO, unknown formats to text.
    """
    log_level = (level or os.getenv("BBS_INDEXER_LOG_LEVEL", "INFO")).upper()
    log_format = (fmt or os.getenv("BBS_INDEXER_LOG_FORMAT", "json")).lower()
    resolved = LEVELS.get(log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(resolved)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(resolved)
    handler.addFilter(SeqNumFilter())

    if log_format == "json":
        formatter = JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(seq_num)s",
            rename_fields={
                "asctime": "timestamp",
                "name": "logger",
                "levelname": "level",
            },
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s [seq=%(seq_num)s]",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, seq_num: Optional[int] = None) -> logging.LoggerAdapter:
    """
    Get a logger that tags every record with the entry being processed.

    Example:
        logger = get_logger(__name__, seq_num=7)
        logger.warning("unknown operation")
        # {"timestamp": "...", "level": "WARNING", "message": "unknown operation", "seq_num": 7}
    """
    logger = logging.getLogger(name)
    return logging.LoggerAdapter(logger, {"seq_num": seq_num if seq_num is not None else "N/A"})
