"""
Shared fixtures for unit tests.

Connections are replaced with mocks whose reads are scripted, so relays and
sessions can be driven without sockets.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from unittest.mock import AsyncMock, MagicMock

import pytest

from tcptee.config import RelayConfig
from tcptee.connection import Connection


def _mock_connection(reads: Iterable[bytes | BaseException] = (), peer: str = "127.0.0.1:50000") -> MagicMock:
    """Connection mock whose read() yields the scripted chunks, then EOF."""
    connection = MagicMock(spec=Connection)
    connection.peer = peer
    connection.local = "127.0.0.1:8080"
    connection.read = AsyncMock(side_effect=[*reads, b""])
    connection.write = AsyncMock()
    connection.shutdown_read = MagicMock()
    connection.close_write = MagicMock()
    connection.close = AsyncMock()
    return connection


@pytest.fixture
def make_connection() -> Callable[..., MagicMock]:
    """Factory for scripted Connection mocks."""
    return _mock_connection


@pytest.fixture
def relay_config() -> RelayConfig:
    return RelayConfig(listen_port=0, connect_host="upstream.example", connect_port=7000)
