"""Asyncio TCP stream pair with idempotent close and half-close."""

from __future__ import annotations

import asyncio
import socket

from tcptee.exceptions import UpstreamConnectError
from tcptee.logging_abstraction import get_logger

logger = get_logger(__name__)


def _format_address(address: object) -> str:
    if isinstance(address, tuple) and len(address) >= 2:  # noqa: PLR2004
        return f"{address[0]}:{address[1]}"
    return str(address)


class Connection:
    """One end of a relayed TCP connection.

    Owned by exactly one Session. While a session runs, one Relay reads it and
    the other Relay writes it, so no locking is needed.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer
        self.peer = _format_address(writer.get_extra_info("peername"))
        self.local = _format_address(writer.get_extra_info("sockname"))
        self._read_closed = False
        self._write_closed = False
        self._closed = False

    @classmethod
    async def open(cls, host: str, port: int) -> Connection:
        """
        Actively open a connection to host:port.

        Raises:
            UpstreamConnectError: if the connection cannot be established
        """
        try:
            reader, writer = await asyncio.open_connection(host, port)
        except OSError as e:
            raise UpstreamConnectError(host, port, str(e)) from e
        return cls(reader, writer)

    @classmethod
    async def from_socket(cls, sock: socket.socket) -> Connection:
        """Wrap an already accepted socket."""
        reader, writer = await asyncio.open_connection(sock=sock)
        return cls(reader, writer)

    async def read(self, max_bytes: int) -> bytes:
        """Read up to max_bytes; b"" means end of stream."""
        if self._read_closed:
            return b""
        return await self.reader.read(max_bytes)

    async def write(self, data: bytes) -> None:
        """Write data and wait until the transport buffer drains."""
        self.writer.write(data)
        await self.writer.drain()

    def shutdown_read(self) -> None:
        """Stop reading; later read() calls return end of stream."""
        self._read_closed = True

    def close_write(self) -> None:
        """Half-close: send EOF to the peer. Safe to call repeatedly."""
        if self._write_closed or self._closed:
            return
        self._write_closed = True
        if self.writer.is_closing() or not self.writer.can_write_eof():
            return
        try:
            self.writer.write_eof()
        except (OSError, RuntimeError) as e:
            logger.debug(
                "Half-close of %s failed: %s",
                self.peer,
                e,
                extra={"peer": self.peer, "error_type": type(e).__name__},
            )

    async def close(self) -> None:
        """Close both directions. Repeated calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self._read_closed = True
        self._write_closed = True
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except (OSError, ConnectionError) as e:
            # Peer may already have reset the socket
            logger.debug(
                "Error closing %s: %s",
                self.peer,
                e,
                extra={"peer": self.peer, "error_type": type(e).__name__},
            )

    @property
    def is_closed(self) -> bool:
        """Check if close() has run."""
        return self._closed

    def __repr__(self) -> str:
        status = "closed" if self._closed else "open"
        return f"Connection({self.local} <-> {self.peer}, {status})"
