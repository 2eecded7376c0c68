"""
Indexer settings read from the environment.

Every value has a default; malformed numbers or booleans fall back to it.
"""

import os
from dataclasses import dataclass
from typing import Optional

ENV_PREFIX = "BBS_INDEXER_"


def _env_str(key: str, default: Optional[str]) -> Optional[str]:
    val = os.getenv(ENV_PREFIX + key)
    if val is None or not val.strip():
        return default
    return val.strip()


def _env_int(key: str, default: int) -> int:
    val = os.getenv(ENV_PREFIX + key)
    if not val:
        return default
    try:
        parsed = int(val)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _env_bool(key: str, default: bool) -> bool:
    val = os.getenv(ENV_PREFIX + key)
    if val is None:
        return default
    val = val.strip().lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


@dataclass(frozen=True)
class IndexerSettings:
    """
    Runtime configuration.

    Fields:
        db_url: SQLAlchemy URL of the index store
        log_path: JSONL file of BoardLogEntry records used by the CLI driver
        log_level: Root log level name
        log_format: "json" or "text"
        verify_key_path: Ed25519 public key PEM; enables in-core signature checks
        http_host / http_port: Bind address of the HTTP query API
        metrics_enabled / metrics_port: Prometheus exporter
        strict_update_board: Reject update_board for boards never created
    """
    db_url: str = "sqlite:///bbs-index.sqlite3"
    log_path: str = "bbs-log.jsonl"
    log_level: str = "INFO"
    log_format: str = "json"
    verify_key_path: Optional[str] = None
    http_host: str = "127.0.0.1"
    http_port: int = 8090
    metrics_enabled: bool = False
    metrics_port: int = 9108
    strict_update_board: bool = False

    @classmethod
    def from_env(cls) -> "IndexerSettings":
        defaults = cls()
        return cls(
            db_url=_env_str("DB_URL", defaults.db_url),
            log_path=_env_str("LOG_PATH", defaults.log_path),
            log_level=_env_str("LOG_LEVEL", defaults.log_level).upper(),
            log_format=_env_str("LOG_FORMAT", defaults.log_format).lower(),
            verify_key_path=_env_str("VERIFY_KEY", None),
            http_host=_env_str("HTTP_HOST", defaults.http_host),
            http_port=_env_int("HTTP_PORT", defaults.http_port),
            metrics_enabled=_env_bool("METRICS_ENABLED", defaults.metrics_enabled),
            metrics_port=_env_int("METRICS_PORT", defaults.metrics_port),
            strict_update_board=_env_bool("STRICT_UPDATE_BOARD", defaults.strict_update_board),
        )
