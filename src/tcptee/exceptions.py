"""Custom exception types for relay errors.

Every error the relay raises on purpose derives from TCPTeeError so callers
can catch the whole family at a boundary while still handling specific
failures where it matters.
"""

from __future__ import annotations


class TCPTeeError(Exception):
    """Base exception for all tcptee errors."""


class ListenerBindError(TCPTeeError):
    """Listening socket could not be bound.

    Fatal at startup: the relay cannot exist without its listening port.

    Attributes:
        host: Host the bind was attempted on ("" means all interfaces)
        port: Port the bind was attempted on
        reason: Underlying OS error text
    """

    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(f"Cannot listen on {host or '*'}:{port}: {reason}")


class UpstreamConnectError(TCPTeeError):
    """Upstream server connection could not be opened.

    Ends the session that attempted it; other sessions are unaffected.

    Attributes:
        host: Upstream host
        port: Upstream port
        reason: Underlying OS error text
    """

    def __init__(self, host: str, port: int, reason: str):
        self.host = host
        self.port = port
        self.reason = reason
        super().__init__(f"Cannot connect to {host}:{port}: {reason}")


class RelayIOError(TCPTeeError):
    """Read or write failed while relaying one direction.

    Attributes:
        direction: Direction label of the failed relay ("C" or "S")
        reason: Underlying OS error text
    """

    def __init__(self, direction: str, reason: str):
        self.direction = direction
        self.reason = reason
        super().__init__(f"Relay {direction} failed: {reason}")
