"""
Prometheus metrics for the indexer.

Metrics stay unset (and every record_* helper is a no-op) until
init_metrics() runs, so library users and tests pay nothing for them.

Environment Variables:
    BBS_INDEXER_METRICS_ENABLED: Enable metrics server (true/false) - default: false
    BBS_INDEXER_METRICS_PORT: HTTP port for /metrics endpoint - default: 9108

Usage:
    from bbs_indexer.metrics import start_metrics_server, track_replay_duration

    start_metrics_server(enabled=True, port=9108)

    with track_replay_duration():
        replayer.apply_many(entries)
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Generator

from prometheus_client import Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)

ENTRIES_TOTAL: Counter = None  # type: ignore
APPLY_DURATION: Histogram = None  # type: ignore
REPLAY_DURATION: Histogram = None  # type: ignore
CURSOR: Gauge = None  # type: ignore

_metrics_initialized = False
_metrics_lock = threading.Lock()


def init_metrics() -> None:
    """
    Create the metric objects (call once at startup).

    Thread-safe via module-level lock; repeated calls are no-ops.
    """
    global ENTRIES_TOTAL, APPLY_DURATION, REPLAY_DURATION, CURSOR
    global _metrics_initialized

    with _metrics_lock:
        if _metrics_initialized:
            return

        # Entry counter (labels: operation, outcome)
        ENTRIES_TOTAL = Counter(
            "bbs_indexer_entries_total",
            "Log entries processed by the replayer",
            labelnames=["operation", "outcome"],
        )

        APPLY_DURATION = Histogram(
            "bbs_indexer_apply_duration_seconds",
            "Duration of a single entry transaction in seconds",
            buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0),
        )

        REPLAY_DURATION = Histogram(
            "bbs_indexer_replay_duration_seconds",
            "Duration of batch replay runs in seconds",
            buckets=(0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0),
        )

        CURSOR = Gauge(
            "bbs_indexer_last_applied_sequence",
            "Sequence number of the most recently applied entry",
        )

        _metrics_initialized = True
        logger.info("Prometheus metrics initialized")


def start_metrics_server(enabled: bool, port: int) -> None:
    """
    Start the Prometheus HTTP exporter in a daemon thread.

    Does nothing when enabled is False.
    """
    if not enabled:
        logger.info("Metrics server disabled")
        return

    init_metrics()
    start_http_server(port, addr="0.0.0.0")
    logger.info("Metrics server started on http://0.0.0.0:%d/metrics", port)


def record_entry(operation: str, outcome: str, duration: float) -> None:
    if ENTRIES_TOTAL is None:
        return
    ENTRIES_TOTAL.labels(operation=operation, outcome=outcome).inc()
    APPLY_DURATION.observe(duration)


def record_cursor(seq: int) -> None:
    if CURSOR is None:
        return
    CURSOR.set(seq)


@contextmanager
def track_replay_duration() -> Generator[None, None, None]:
    """Time a batch replay run (no-op before init_metrics())."""
    start = time.monotonic()
    try:
        yield
    finally:
        if REPLAY_DURATION is not None:
            REPLAY_DURATION.observe(time.monotonic() - start)
