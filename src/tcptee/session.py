"""Lifecycle of one relayed client connection."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from tcptee import metrics
from tcptee.config import RelayConfig
from tcptee.connection import Connection
from tcptee.const import RELAY_S_TASK_PREFIX
from tcptee.exceptions import RelayIOError, UpstreamConnectError
from tcptee.logging_abstraction import get_logger, new_session_id, session_context
from tcptee.observer import Direction, TrafficObserver
from tcptee.relay import Relay

logger = get_logger(__name__)


class Session:
    """One client connection paired with one upstream connection.

    The server-to-client relay runs in its own task; the client-to-server
    relay runs in the session's task. Once the client direction finishes the
    session waits for the server direction, then closes both connections.
    Errors stop at this boundary and never reach the listener.
    """

    def __init__(
        self,
        client: Connection,
        config: RelayConfig,
        observers: Sequence[TrafficObserver] = (),
        session_id: str | None = None,
    ):
        self.client = client
        self.config = config
        self.observers = observers
        self.session_id = session_id or new_session_id()
        self.upstream: Connection | None = None
        self.relays: dict[Direction, Relay] = {}
        self.outcome = "pending"

    async def run(self) -> None:
        """Run the session to completion. Only cancellation propagates."""
        with session_context(self.session_id):
            metrics.record_session_start()
            try:
                self.outcome = await self._relay_both()
            except UpstreamConnectError as e:
                self.outcome = "upstream_failed"
                logger.error(
                    "Upstream connect failed: %s",
                    e,
                    extra={"upstream": self.config.upstream, "reason": e.reason},
                )
            except asyncio.CancelledError:
                self.outcome = "cancelled"
                raise
            except Exception as e:
                self.outcome = "error"
                logger.exception("Session error: %s", e)
            finally:
                await self._close()
                metrics.record_session_end(self.outcome)

    async def _relay_both(self) -> str:
        self.upstream = upstream = await Connection.open(self.config.connect_host, self.config.connect_port)
        logger.info("Connected: %s", upstream.peer, extra={"local": upstream.local})

        s_relay = Relay(Direction.SERVER, upstream, self.client, self.observers, self.config.buffer_size)
        c_relay = Relay(Direction.CLIENT, self.client, upstream, self.observers, self.config.buffer_size)
        self.relays = {Direction.SERVER: s_relay, Direction.CLIENT: c_relay}

        s_task = asyncio.create_task(s_relay.run(), name=f"{RELAY_S_TASK_PREFIX}_{self.session_id}")
        failed = False
        try:
            try:
                await c_relay.run()
            except RelayIOError as e:
                failed = True
                logger.warning("Relay error: %s", e, extra={"direction": e.direction})
            try:
                await s_task
            except RelayIOError as e:
                failed = True
                logger.warning("Relay error: %s", e, extra={"direction": e.direction})
        finally:
            if not s_task.done():
                s_task.cancel()
                _ = await asyncio.gather(s_task, return_exceptions=True)
        return "relay_error" if failed else "completed"

    async def _close(self) -> None:
        if self.upstream is not None:
            await self.upstream.close()
        await self.client.close()

        totals = {relay.direction.value: relay.bytes_relayed for relay in self.relays.values()}
        logger.info(
            "Closed: %s",
            self.client.peer,
            extra={"outcome": self.outcome, **{f"{label}_bytes": n for label, n in sorted(totals.items())}},
        )

    def __repr__(self) -> str:
        return f"Session({self.session_id}, {self.client.peer} -> {self.config.upstream}, {self.outcome})"
