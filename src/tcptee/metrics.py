"""Prometheus metrics registry for the relay."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    start_http_server,
)

__all__ = [
    "record_accept",
    "record_accept_error",
    "record_chunk",
    "record_session_end",
    "record_session_start",
    "start_metrics_server",
]

tcptee_accepted_connections_total: Final = Counter(  # type: ignore[assignment]
    "tcptee_accepted_connections_total",
    "Total client connections accepted",
)

tcptee_accept_errors_total: Final = Counter(  # type: ignore[assignment]
    "tcptee_accept_errors_total",
    "Total failed accept attempts",
)

tcptee_active_sessions: Final = Gauge(  # type: ignore[assignment]
    "tcptee_active_sessions",
    "Sessions currently relaying",
)

tcptee_sessions_total: Final = Counter(  # type: ignore[assignment]
    "tcptee_sessions_total",
    "Total finished sessions",
    ["outcome"],
)

tcptee_chunks_total: Final = Counter(  # type: ignore[assignment]
    "tcptee_chunks_total",
    "Total chunks relayed",
    ["direction"],
)

tcptee_bytes_total: Final = Counter(  # type: ignore[assignment]
    "tcptee_bytes_total",
    "Total bytes relayed",
    ["direction"],
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_accept() -> None:
    """Record an accepted client connection."""
    tcptee_accepted_connections_total.inc()  # type: ignore[no-untyped-call]


def record_accept_error() -> None:
    """Record a failed accept."""
    tcptee_accept_errors_total.inc()  # type: ignore[no-untyped-call]


def record_session_start() -> None:
    """Record a session entering the relaying state."""
    tcptee_active_sessions.inc()  # type: ignore[no-untyped-call]


def record_session_end(outcome: str) -> None:
    """Record a finished session and its outcome."""
    tcptee_active_sessions.dec()  # type: ignore[no-untyped-call]
    tcptee_sessions_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_chunk(direction: str, size: int) -> None:
    """Record one relayed chunk."""
    tcptee_chunks_total.labels(direction=direction).inc()  # type: ignore[no-untyped-call]
    tcptee_bytes_total.labels(direction=direction).inc(size)  # type: ignore[no-untyped-call]
