"""Shared fixtures: an echo server standing in for the real upstream, and a
recording observer."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Generator

import pytest

from tcptee.observer import Direction

logger = logging.getLogger(__name__)


class EchoServer:
    """Upstream test server that echoes every byte and closes on EOF."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0):
        self.host = host
        self.port = port
        self.server: asyncio.Server | None = None
        self.received: list[bytearray] = []
        self.connection_count = 0

    async def start(self) -> None:
        self.server = await asyncio.start_server(self._handle_client, self.host, self.port)
        if self.port == 0:
            self.port = self.server.sockets[0].getsockname()[1]
        logger.info("Echo server started on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        if self.server:
            self.server.close()
            await self.server.wait_closed()

    @property
    def all_received(self) -> bytes:
        return b"".join(bytes(r) for r in self.received)

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        self.connection_count += 1
        buf = bytearray()
        self.received.append(buf)
        try:
            while True:
                data = await reader.read(4096)
                if not data:
                    break
                buf.extend(data)
                writer.write(data)
                await writer.drain()
        except ConnectionError:
            logger.info("Echo client went away")
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass


class RecordingObserver:
    """Observer that remembers every (direction, chunk) it sees."""

    def __init__(self) -> None:
        self.seen: list[tuple[Direction, bytes]] = []

    def observe(self, direction: Direction, chunk: bytes) -> None:
        self.seen.append((direction, chunk))

    def chunks(self, direction: Direction) -> list[bytes]:
        return [chunk for d, chunk in self.seen if d is direction]


@pytest.fixture
async def echo_server() -> AsyncGenerator[EchoServer]:
    """Fixture providing a running echo server on an ephemeral port."""
    server = EchoServer()
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def recorder() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def _reset_tcptee_logging() -> Generator[None]:  # pyright: ignore[reportUnusedFunction]
    """Drop handlers installed by configure_logging after the test."""
    yield
    root = logging.getLogger("tcptee")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
