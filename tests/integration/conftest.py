"""Fixtures for integration tests: a real Listener relaying to the echo server."""

from __future__ import annotations

import asyncio
import contextlib
import io
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass

import pytest

from tcptee.config import RelayConfig
from tcptee.listener import Listener
from tcptee.observer import ConsoleObserver


@dataclass
class RunningRelay:
    """A listener serving in the background plus what it printed."""

    listener: Listener
    task: asyncio.Task[None]
    console: io.StringIO

    @property
    def port(self) -> int:
        return self.listener.port

    async def connect(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        return await asyncio.open_connection("127.0.0.1", self.port)

    async def wait_idle(self, timeout: float = 5.0) -> None:
        """Wait until every session has finished."""

        async def _idle() -> None:
            while self.listener.sessions:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_idle(), timeout=timeout)


StartRelay = Callable[..., Awaitable[RunningRelay]]


@pytest.fixture
async def start_relay(recorder) -> AsyncGenerator[StartRelay]:
    """Factory starting a listener on an ephemeral port.

    The console observer writes to an in-memory buffer and the shared
    recorder observer sees every chunk.
    """
    running: list[RunningRelay] = []

    async def _start(connect_port: int, binary_mode: bool = False, buffer_size: int = 4096) -> RunningRelay:
        config = RelayConfig(
            listen_port=0,
            connect_host="127.0.0.1",
            connect_port=connect_port,
            binary_mode=binary_mode,
            listen_host="127.0.0.1",
            buffer_size=buffer_size,
        )
        console = io.StringIO()
        listener = Listener(config)
        listener.register_observer(ConsoleObserver(config, stream=console))
        listener.register_observer(recorder)
        listener.bind()
        task = asyncio.create_task(listener.serve_forever())
        relay = RunningRelay(listener, task, console)
        running.append(relay)
        return relay

    yield _start

    for relay in running:
        relay.task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await relay.task
