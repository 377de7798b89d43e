"""Accept loop fanning out one Session task per client connection."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Iterable

from tcptee import metrics
from tcptee.config import RelayConfig
from tcptee.connection import Connection
from tcptee.const import LISTEN_ALL_INTERFACES, SESSION_TASK_PREFIX
from tcptee.exceptions import ListenerBindError
from tcptee.logging_abstraction import get_logger, session_context
from tcptee.observer import TrafficObserver
from tcptee.session import Session

logger = get_logger(__name__)


class Listener:
    """Listen on the configured port and relay every client to the upstream.

    Sessions run as independent tasks: the accept loop never waits for them,
    and there is no limit on how many run at once.
    """

    def __init__(self, config: RelayConfig, observers: Iterable[TrafficObserver] | None = None):
        self.config = config
        self.observers: list[TrafficObserver] = list(observers or [])
        self.sessions: set[asyncio.Task[None]] = set()
        self._sock: socket.socket | None = None

    def register_observer(self, observer: TrafficObserver) -> None:
        """Register an observer to receive every relayed chunk.

        Args:
            observer: Object implementing the TrafficObserver protocol
        """
        self.observers.append(observer)
        logger.debug("Registered observer: %s", observer.__class__.__name__)

    def bind(self) -> None:
        """
        Bind the listening socket (idempotent).

        With no listen host, IPv4 and IPv6 clients are both accepted when the
        platform supports a dual-stack socket.

        Raises:
            ListenerBindError: the port cannot be bound; not retried
        """
        if self._sock is not None:
            return
        host, port = self.config.listen_host, self.config.listen_port
        try:
            if host == LISTEN_ALL_INTERFACES and socket.has_dualstack_ipv6():
                sock = socket.create_server((host, port), family=socket.AF_INET6, dualstack_ipv6=True)
            else:
                sock = socket.create_server((host, port))
        except OSError as e:
            raise ListenerBindError(host, port, str(e)) from e
        sock.setblocking(False)
        self._sock = sock
        bound_host, bound_port = sock.getsockname()[:2]
        logger.info(
            "Listening: %s:%d",
            bound_host,
            bound_port,
            extra={"upstream": self.config.upstream, "binary_mode": self.config.binary_mode},
        )

    @property
    def port(self) -> int:
        """Port actually bound (useful when listen_port is 0)."""
        if self._sock is None:
            msg = "Listener is not bound"
            raise RuntimeError(msg)
        return self._sock.getsockname()[1]

    async def serve_forever(self) -> None:
        """Accept connections until cancelled. Cancellation shuts down cleanly."""
        self.bind()
        try:
            while True:
                await self._accept_once()
        finally:
            await self.shutdown()

    async def _accept_once(self) -> None:
        try:
            client = await self._accept()
        except Exception as e:
            metrics.record_accept_error()
            logger.exception("Accept failed: %s", e)
            await asyncio.sleep(self.config.accept_error_backoff)
            return

        metrics.record_accept()
        session = Session(client, self.config, self.observers)
        with session_context(session.session_id):
            logger.info("Accepted: %s", client.peer, extra={"local": client.local})

        task = asyncio.create_task(session.run(), name=f"{SESSION_TASK_PREFIX}_{session.session_id}")
        self.sessions.add(task)
        task.add_done_callback(self.sessions.discard)

    async def _accept(self) -> Connection:
        if self._sock is None:
            msg = "Listener is not bound"
            raise RuntimeError(msg)
        loop = asyncio.get_running_loop()
        sock, _addr = await loop.sock_accept(self._sock)
        try:
            return await Connection.from_socket(sock)
        except BaseException:
            sock.close()
            raise

    async def shutdown(self) -> None:
        """Close the listening socket and cancel running sessions.

        Called by serve_forever when its task is cancelled.
        """
        if self._sock is not None:
            self._sock.close()
            self._sock = None
            logger.info("Listener stopped")

        tasks = list(self.sessions)
        for task in tasks:
            task.cancel()
        if tasks:
            _ = await asyncio.gather(*tasks, return_exceptions=True)


async def run(config: RelayConfig, observers: Iterable[TrafficObserver] | None = None) -> None:
    """Bind and serve forever with the given observers."""
    listener = Listener(config, observers)
    await listener.serve_forever()
