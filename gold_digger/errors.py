"""
Exception hierarchy for Gold Digger.

Each error kind carries the exit code it maps to, so the classifier in
:mod:`gold_digger.exit_codes` can resolve typed errors without string matching.
"""


class GoldDiggerError(Exception):
    """Base class for all application errors."""
    exit_code = 6
    kind = "Unknown"


class ConfigError(GoldDiggerError):
    """Missing input, conflicting flags, unreadable input files."""
    exit_code = 2
    kind = "Configuration"


class TlsConfigError(ConfigError):
    """Unusable TLS settings (conflicting flags, bad CA file)."""
    kind = "TLS configuration"


class DatabaseConnectionError(GoldDiggerError):
    """DNS, TCP, handshake, authentication or TLS failures."""
    exit_code = 3
    kind = "Connection"


class QueryError(GoldDiggerError):
    """SQL failures and result processing errors."""
    exit_code = 4
    kind = "Query"


class TypeConversionError(QueryError):
    """A database value could not be converted to its canonical string."""

    def __init__(self, message: str):
        self.detail = message
        super().__init__(f"Type conversion error: {message}")


class OutputError(GoldDiggerError):
    """The output file could not be created, written or flushed."""
    exit_code = 5
    kind = "Output"


class RowProcessingError(TypeConversionError):
    """A conversion failure with the row and column it happened in."""

    CONTEXT = "Type conversion failed during row processing"

    def __init__(self, row_number: int, column: str, cause: Exception):
        self.row_number = row_number
        self.column = column
        self.detail = getattr(cause, 'detail', str(cause))
        QueryError.__init__(
            self, f"{self.CONTEXT} (row {row_number}, column '{column}'): {self.detail}"
        )
