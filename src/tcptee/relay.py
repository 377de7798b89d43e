"""Unidirectional byte shunt with an observation side effect."""

from __future__ import annotations

from collections.abc import Sequence

from tcptee.connection import Connection
from tcptee.const import BUFFER_SIZE
from tcptee.exceptions import RelayIOError
from tcptee.logging_abstraction import get_logger
from tcptee.observer import Direction, TrafficObserver, notify_observers

logger = get_logger(__name__)


class Relay:
    """Copy bytes from source to destination until end of stream or error.

    Each chunk is handed to the observers before it is written, so observers
    see exactly the bytes about to be forwarded, in order.
    """

    def __init__(
        self,
        direction: Direction,
        source: Connection,
        destination: Connection,
        observers: Sequence[TrafficObserver] = (),
        buffer_size: int = BUFFER_SIZE,
    ):
        self.direction = direction
        self.source = source
        self.destination = destination
        self.observers = observers
        self.buffer_size = buffer_size
        self.chunks = 0
        self.bytes_relayed = 0

    async def run(self) -> None:
        """
        Relay until the source reaches end of stream.

        On exit, normal or not, the source read side and the destination
        write side are closed so the peer sees EOF.

        Raises:
            RelayIOError: read or write failed; not retried
        """
        label = self.direction.value
        try:
            while True:
                chunk = await self.source.read(self.buffer_size)
                if not chunk:
                    logger.debug("Relay %s reached end of stream", label)
                    break

                notify_observers(self.observers, self.direction, chunk)

                await self.destination.write(chunk)
                self.chunks += 1
                self.bytes_relayed += len(chunk)
                logger.debug(
                    "Relay %s forwarded %d bytes",
                    label,
                    len(chunk),
                    extra={"direction": label, "bytes": len(chunk)},
                )
        except OSError as e:
            raise RelayIOError(label, str(e) or type(e).__name__) from e
        finally:
            self.source.shutdown_read()
            self.destination.close_write()

    def __repr__(self) -> str:
        return f"Relay({self.direction.value}, {self.source.peer} -> {self.destination.peer})"
