"""Process-wide relay configuration."""

from __future__ import annotations

from dataclasses import dataclass

from tcptee.const import ACCEPT_ERROR_BACKOFF, BUFFER_SIZE, DISPLAY_ENCODING, LISTEN_ALL_INTERFACES


@dataclass(frozen=True, slots=True)
class RelayConfig:
    """Immutable configuration built once at startup.

    Shared read-only by the listener, every session, every relay and the
    observers, so no locking is needed.

    Attributes:
        listen_port: Local port to accept clients on (0 = OS assigns)
        connect_host: Real server host
        connect_port: Real server port
        binary_mode: Render control characters as "." in the displayed traffic
        listen_host: Local interface to bind ("" = all interfaces)
        buffer_size: Maximum bytes read per relay iteration
        display_encoding: Codec used to turn chunks into displayable text
        accept_error_backoff: Pause in seconds after a failed accept
        metrics_port: Port for the Prometheus metrics server (None = disabled)
    """

    listen_port: int
    connect_host: str
    connect_port: int
    binary_mode: bool = False
    listen_host: str = LISTEN_ALL_INTERFACES
    buffer_size: int = BUFFER_SIZE
    display_encoding: str = DISPLAY_ENCODING
    accept_error_backoff: float = ACCEPT_ERROR_BACKOFF
    metrics_port: int | None = None

    def __post_init__(self) -> None:
        if self.buffer_size < 1:
            msg = f"buffer_size must be positive, got {self.buffer_size}"
            raise ValueError(msg)

    @property
    def upstream(self) -> str:
        """Upstream target as host:port."""
        return f"{self.connect_host}:{self.connect_port}"
