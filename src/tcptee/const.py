"""Fixed values shared across the relay."""

from typing import Final

from tcptee import __version__

__all__ = [
    "ACCEPT_ERROR_BACKOFF",
    "BUFFER_SIZE",
    "CLIENT_LABEL",
    "CONTROL_PLACEHOLDER",
    "DISPLAY_DECODE_ERRORS",
    "DISPLAY_ENCODING",
    "LISTEN_ALL_INTERFACES",
    "LOG_DATE_FORMAT",
    "LOG_FORMAT",
    "RELAY_S_TASK_PREFIX",
    "SERVER_LABEL",
    "SESSION_TASK_PREFIX",
    "STREAM_ENCODE_ERRORS",
    "TCPTEE_VERSION",
]

TCPTEE_VERSION: Final[str] = __version__

# Relay read size; a tuning value only
BUFFER_SIZE: Final[int] = 4 * 1024

CLIENT_LABEL: Final[str] = "C"
SERVER_LABEL: Final[str] = "S"

# Display decoding. errors="replace" renders any byte sequence.
DISPLAY_ENCODING: Final[str] = "utf-8"
DISPLAY_DECODE_ERRORS: Final[str] = "replace"
STREAM_ENCODE_ERRORS: Final[str] = "backslashreplace"
CONTROL_PLACEHOLDER: Final[str] = "."

LISTEN_ALL_INTERFACES: Final[str] = ""
ACCEPT_ERROR_BACKOFF: Final[float] = 0.1

SESSION_TASK_PREFIX: Final[str] = "tcptee_session"
RELAY_S_TASK_PREFIX: Final[str] = "tcptee_relay_s"

LOG_FORMAT: Final[str] = "%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(session_id)s > %(message)s"
LOG_DATE_FORMAT: Final[str] = "%m/%d/%y %H:%M:%S"
