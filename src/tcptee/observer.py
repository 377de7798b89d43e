"""Traffic observers.

An observer receives every chunk a Relay is about to forward, tagged with the
direction it flows in. Observers render or count traffic; they never modify
it. Uses structural subtyping (Protocol): any object with a matching
``observe`` method is an observer, no inheritance required.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable
from enum import Enum
from typing import Protocol, TextIO

from tcptee import metrics
from tcptee.config import RelayConfig
from tcptee.const import (
    CLIENT_LABEL,
    CONTROL_PLACEHOLDER,
    DISPLAY_DECODE_ERRORS,
    DISPLAY_ENCODING,
    SERVER_LABEL,
    STREAM_ENCODE_ERRORS,
)
from tcptee.logging_abstraction import get_logger

logger = get_logger(__name__)


class Direction(Enum):
    """Direction of traffic flow."""

    CLIENT = CLIENT_LABEL
    SERVER = SERVER_LABEL


class TrafficObserver(Protocol):
    """Type protocol for traffic observers.

    Called synchronously once per chunk, before the chunk is forwarded.
    Implementations must not block for long: the relay waits for them.
    """

    def observe(self, direction: Direction, chunk: bytes) -> None:
        """Called for each chunk read from a source.

        Args:
            direction: Which way the chunk flows
            chunk: Exactly the bytes about to be written to the destination
        """
        ...


def is_iso_control(ch: str) -> bool:
    """True for C0 controls (U+0000..U+001F), DEL and C1 controls (U+007F..U+009F)."""
    code = ord(ch)
    return code <= 0x1F or 0x7F <= code <= 0x9F  # noqa: PLR2004


def display_text(chunk: bytes, binary_mode: bool = False, encoding: str = DISPLAY_ENCODING) -> str:
    """Render a chunk as text for humans.

    The chunk is decoded with ``encoding`` (undecodable bytes become U+FFFD).
    In binary mode every control character is replaced with ".", like xxd's
    text column; all other characters pass through unchanged.

    Args:
        chunk: Raw bytes
        binary_mode: Mask control characters
        encoding: Codec used for decoding

    Returns:
        Displayable text
    """
    text = chunk.decode(encoding, errors=DISPLAY_DECODE_ERRORS)
    if not binary_mode:
        return text
    return "".join(CONTROL_PLACEHOLDER if is_iso_control(ch) else ch for ch in text)


def encodable_text(text: str, stream_encoding: str | None) -> str:
    """Escape characters the output stream cannot encode (``\\xe9`` style)."""
    if not stream_encoding:
        return text
    return text.encode(stream_encoding, errors=STREAM_ENCODE_ERRORS).decode(stream_encoding)


class ConsoleObserver:
    """Print each chunk as a count line followed by its display text.

    Output for a 5 byte client chunk:

        C 5
        hello
    """

    def __init__(self, config: RelayConfig, stream: TextIO | None = None) -> None:
        self.binary_mode = config.binary_mode
        self.encoding = config.display_encoding
        self.stream = stream

    def observe(self, direction: Direction, chunk: bytes) -> None:
        """Write the two display lines for a chunk as a single write."""
        out = self.stream or sys.stdout
        text = encodable_text(display_text(chunk, self.binary_mode, self.encoding), getattr(out, "encoding", None))
        # Stdout on purpose: traffic display, not log records
        _ = out.write(f"{direction.value} {len(chunk)}\n{text}\n")
        out.flush()


class MetricsObserver:
    """Count relayed chunks and bytes per direction in Prometheus."""

    def observe(self, direction: Direction, chunk: bytes) -> None:
        metrics.record_chunk(direction.value, len(chunk))


def notify_observers(observers: Iterable[TrafficObserver], direction: Direction, chunk: bytes) -> None:
    """Notify all observers of a chunk, in registration order.

    Observer failures don't break forwarding - errors are logged and the
    remaining observers still run.
    """
    for observer in observers:
        try:
            observer.observe(direction, chunk)
        except Exception as e:
            logger.exception(
                "Observer error (%s): %s",
                observer.__class__.__name__,
                e,
                extra={"direction": direction.value, "bytes": len(chunk)},
            )
