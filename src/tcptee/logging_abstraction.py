"""Logging abstraction layer for tcptee.

Provides a human-readable formatter that tags every line with the session id
of the connection it belongs to, structured ``extra`` context rendered as
``key=value`` pairs, and a stdout/stderr split by severity.

The session id lives in a ContextVar: a Session sets it once for its task and
the relay task it spawns inherits it, so lines logged deep in a relay still
name their session.
"""

from __future__ import annotations

import contextvars
import logging
import sys
import uuid
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from typing import TextIO, cast

from typing_extensions import override

from tcptee.const import LOG_DATE_FORMAT, LOG_FORMAT

__all__ = [
    "HumanReadableFormatter",
    "MaxLevelFilter",
    "TeeLogger",
    "configure_logging",
    "current_session_id",
    "get_logger",
    "new_session_id",
    "session_context",
]

ROOT_LOGGER_NAME = "tcptee"
NO_SESSION = "--------"

_current_session: contextvars.ContextVar[str | None] = contextvars.ContextVar("tcptee_session", default=None)


def new_session_id() -> str:
    """Short random id, 8 hex characters."""
    return uuid.uuid4().hex[:8]


def current_session_id() -> str | None:
    return _current_session.get()


@contextmanager
def session_context(session_id: str | None = None) -> Generator[str]:
    """Tag log lines in this scope with a session id (a new one if omitted)."""
    session_id = session_id or new_session_id()
    token = _current_session.set(session_id)
    try:
        yield session_id
    finally:
        _current_session.reset(token)


class HumanReadableFormatter(logging.Formatter):
    """Formatter that outputs human-readable logs with session ids."""

    def __init__(self) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as human-readable text."""
        record.session_id = f"[{current_session_id() or NO_SESSION}]"

        formatted = super().format(record)

        extra_data = getattr(record, "extra_data", None)
        if isinstance(extra_data, Mapping) and extra_data:
            context_map = cast("Mapping[str, object]", extra_data)
            context_str = " | ".join(f"{k}={v}" for k, v in context_map.items())
            formatted = f"{formatted} | {context_str}"

        return formatted


class MaxLevelFilter(logging.Filter):
    """Let through records strictly below a level."""

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


class TeeLogger:
    """Thin wrapper over logging.Logger accepting structured context.

    ``extra`` mappings are carried on the record as ``extra_data`` so the
    formatter can append them without clashing with LogRecord attributes.
    """

    def __init__(self, name: str) -> None:
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        extra_payload: Mapping[str, object] | None = None
        if extra:
            extra_payload = {"extra_data": dict(extra)}

        self.logger.log(level, msg, *args, extra=extra_payload, stacklevel=3)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log debug message with optional structured context."""
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log info message with optional structured context."""
        self._log(logging.INFO, msg, *args, extra=extra)

    def warning(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log warning message with optional structured context."""
        self._log(logging.WARNING, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log error message with optional structured context."""
        self._log(logging.ERROR, msg, *args, extra=extra)

    def exception(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        """Log exception with traceback and optional structured context."""
        log_extra = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=log_extra, stacklevel=2)


def configure_logging(
    level: int = logging.INFO,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> logging.Logger:
    """Install the stdout/stderr handler pair on the package logger.

    Records below WARNING go to stdout, WARNING and above go to stderr.
    Calling this again replaces the handlers instead of stacking them.

    Args:
        level: Logging level for the package logger
        stdout: Stream for informational lines (default: sys.stdout)
        stderr: Stream for warnings and errors (default: sys.stderr)

    Returns:
        The configured package logger
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    out_handler = logging.StreamHandler(stdout or sys.stdout)
    out_handler.addFilter(MaxLevelFilter(logging.WARNING))
    err_handler = logging.StreamHandler(stderr or sys.stderr)
    err_handler.setLevel(logging.WARNING)

    formatter = HumanReadableFormatter()
    for handler in (out_handler, err_handler):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    root.setLevel(level)
    return root


def get_logger(name: str) -> TeeLogger:
    """Get a TeeLogger for a module of the package.

    Args:
        name: Logger name (typically ``__name__``)

    Returns:
        TeeLogger instance
    """
    return TeeLogger(name)
