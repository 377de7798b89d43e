"""Command line entry point.

Much like ssh's -L option: accept clients on listenPort and relay each of
them to connectHost:connectPort, printing the traffic as it goes by.

Usage:
    tcptee 8080 example.com 80
    tcptee -b 5432 db.internal 5432
"""

from __future__ import annotations

import argparse
import asyncio
import codecs
import logging
import signal
import sys
from collections.abc import Sequence
from typing import NoReturn

from typing_extensions import override

import uvloop

from tcptee.config import RelayConfig
from tcptee.const import DISPLAY_ENCODING, TCPTEE_VERSION
from tcptee.exceptions import ListenerBindError
from tcptee.listener import Listener
from tcptee.logging_abstraction import configure_logging, get_logger
from tcptee.metrics import start_metrics_server
from tcptee.observer import ConsoleObserver, MetricsObserver

logger = get_logger(__name__)

EXIT_USAGE = 1
MAX_PORT = 65535


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit code 1."""

    @override
    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def _port(value: str, minimum: int = 0) -> int:
    try:
        port = int(value)
    except ValueError:
        msg = f"invalid port number: {value!r}"
        raise argparse.ArgumentTypeError(msg) from None
    if not minimum <= port <= MAX_PORT:
        msg = f"port out of range {minimum}-{MAX_PORT}: {port}"
        raise argparse.ArgumentTypeError(msg)
    return port


def listen_port(value: str) -> int:
    """Listening port; 0 lets the OS choose."""
    return _port(value)


def connect_port(value: str) -> int:
    """Upstream port; must name a real port."""
    return _port(value, minimum=1)


def encoding(value: str) -> str:
    """Codec name known to Python."""
    try:
        return codecs.lookup(value).name
    except LookupError:
        msg = f"unknown encoding: {value!r}"
        raise argparse.ArgumentTypeError(msg) from None


def build_parser() -> UsageParser:
    parser = UsageParser(
        prog="tcptee",
        description=(
            "Relay TCP traffic between a client and a server, showing it on stdout. "
            "'C <n>' lines are bytes the client sent, 'S <n>' lines are bytes the server sent."
        ),
    )
    parser.add_argument(
        "-b",
        action="store_true",
        dest="binary_mode",
        help="Traffic is binary, so convert non-printable chars to '.' when showing traffic.",
    )
    parser.add_argument(
        "-D",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--encoding",
        type=encoding,
        default=DISPLAY_ENCODING,
        help=f"Encoding used to display traffic (default: {DISPLAY_ENCODING})",
    )
    parser.add_argument(
        "--metrics-port",
        type=connect_port,
        default=None,
        help="Serve Prometheus metrics on this port (default: disabled)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {TCPTEE_VERSION}")
    parser.add_argument("listen_port", metavar="listenPort", type=listen_port)
    parser.add_argument("connect_host", metavar="connectHost")
    parser.add_argument("connect_port", metavar="connectPort", type=connect_port)
    return parser


def parse_cli(argv: Sequence[str] | None = None) -> tuple[RelayConfig, bool]:
    """Parse the command line.

    Args:
        argv: Arguments without the program name (default: sys.argv[1:])

    Returns:
        Tuple of (config, debug)
    """
    args = build_parser().parse_args(argv)
    config = RelayConfig(
        listen_port=args.listen_port,
        connect_host=args.connect_host,
        connect_port=args.connect_port,
        binary_mode=args.binary_mode,
        display_encoding=args.encoding,
        metrics_port=args.metrics_port,
    )
    return config, args.debug


async def serve(listener: Listener) -> None:
    """Serve until SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    serve_task = asyncio.create_task(listener.serve_forever(), name="tcptee_listener")

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, serve_task.cancel)
    logger.debug("Signal handlers configured for SIGINT & SIGTERM")

    try:
        await serve_task
    except asyncio.CancelledError:
        logger.info("Shutdown requested")


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for tcptee."""
    config, debug = parse_cli(argv)
    configure_logging(logging.DEBUG if debug else logging.INFO)
    logger.debug("Starting tcptee", extra={"version": TCPTEE_VERSION})

    listener = Listener(config)
    listener.register_observer(ConsoleObserver(config))
    listener.register_observer(MetricsObserver())

    try:
        listener.bind()
        if config.metrics_port is not None:
            start_metrics_server(config.metrics_port)
            logger.info("Metrics: http://localhost:%d/metrics", config.metrics_port)
    except (ListenerBindError, OSError) as e:
        print(e, file=sys.stderr)  # noqa: T201
        sys.exit(EXIT_USAGE)

    loop = uvloop.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        loop.run_until_complete(serve(listener))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    finally:
        loop.close()
