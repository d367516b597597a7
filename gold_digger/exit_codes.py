"""
Exit code taxonomy and error classification for Gold Digger.
"""

from enum import IntEnum
from typing import Iterator, Optional

from mysql.connector import Error as MySQLError

from .errors import GoldDiggerError


class ExitCode(IntEnum):
    """Process exit codes. The numeric values are a stable contract."""
    SUCCESS = 0
    NO_ROWS = 1
    CONFIG_ERROR = 2
    CONNECTION_ERROR = 3
    QUERY_ERROR = 4
    IO_ERROR = 5
    UNKNOWN_ERROR = 6

    @property
    def label(self) -> str:
        return EXIT_CODE_LABELS[self]


EXIT_CODE_LABELS = {
    ExitCode.SUCCESS: "Success",
    ExitCode.NO_ROWS: "No rows",
    ExitCode.CONFIG_ERROR: "Configuration",
    ExitCode.CONNECTION_ERROR: "Connection",
    ExitCode.QUERY_ERROR: "Query",
    ExitCode.IO_ERROR: "Output",
    ExitCode.UNKNOWN_ERROR: "Unknown",
}

# Checked before everything else so that "Invalid month value" never
# degrades to a configuration error.
TYPE_CONVERSION_SIGNALS = (
    "type conversion error",
    "from_value",
    "type conversion failed during row processing",
)

# Ordered; the first category with a matching signal wins.
SIGNAL_CATEGORIES: tuple[tuple[ExitCode, tuple[str, ...]], ...] = (
    (ExitCode.CONNECTION_ERROR, (
        "access denied",
        "can't connect",
        "cannot connect",
        "connection refused",
        "unknown mysql server host",
        "lost connection",
        "ssl connection error",
        "tls handshake",
        "certificate verify failed",
        "authentication",
    )),
    (ExitCode.QUERY_ERROR, (
        "you have an error in your sql syntax",
        "sql error",
        "doesn't exist",
        "unknown column",
        "query failed",
        "multiple statements",
    )),
    (ExitCode.IO_ERROR, (
        "permission denied",
        "no space left",
        "broken pipe",
        "read-only file system",
        "is a directory",
        "failed to write",
        "failed to create output",
        "failed to flush",
    )),
    (ExitCode.CONFIG_ERROR, (
        "cannot be used with",
        "missing required",
        "is required",
        "invalid",
        "not found",
        "configuration",
    )),
)

# Client (2xxx) and server errnos raised while establishing a session.
CONNECTION_ERRNOS = frozenset({
    1044,  # database access denied
    1045,  # access denied for user
    1049,  # unknown database
    1129,  # host blocked
    1130,  # host not allowed
    1251,  # auth method unsupported
    2002, 2003, 2005, 2006, 2013, 2026, 2055, 2059,
})


def iter_error_chain(error: BaseException) -> Iterator[BaseException]:
    """Yield ``error`` followed by its causes, outermost first."""
    seen = set()
    current: Optional[BaseException] = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def _matches(chain: list[BaseException], signals: tuple[str, ...]) -> bool:
    for err in chain:
        text = str(err).lower()
        if any(signal in text for signal in signals):
            return True
    return False


def map_error_to_exit_code(error: BaseException) -> ExitCode:
    """
    Classify an error into an exit code.

    Typed application errors resolve directly. Otherwise the cause chain is
    matched against ordered signals: type conversion first, then driver and
    OS error types, then connection, query, I/O and configuration wording.
    Anything unrecognized is UNKNOWN_ERROR.
    """
    chain = list(iter_error_chain(error))

    for err in chain:
        if isinstance(err, GoldDiggerError):
            return ExitCode(err.exit_code)

    if _matches(chain, TYPE_CONVERSION_SIGNALS):
        return ExitCode.QUERY_ERROR

    for err in chain:
        if isinstance(err, MySQLError):
            if err.errno in CONNECTION_ERRNOS:
                return ExitCode.CONNECTION_ERROR
            return ExitCode.QUERY_ERROR
        if isinstance(err, OSError):
            return ExitCode.IO_ERROR

    for code, signals in SIGNAL_CATEGORIES:
        if _matches(chain, signals):
            return code

    return ExitCode.UNKNOWN_ERROR


def error_kind(error: BaseException) -> str:
    """Human label for the failure kind of ``error``."""
    for err in iter_error_chain(error):
        if isinstance(err, GoldDiggerError):
            return err.kind
    return map_error_to_exit_code(error).label
