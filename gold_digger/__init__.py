"""
Gold Digger
===========
Runs one SQL query against MySQL or MariaDB and writes the result to a file:
- CSV (RFC 4180), TSV or JSON output
- Command-line and environment configuration
- TLS with platform, custom CA and explicit insecure modes
- Credential redaction in every diagnostic
- Stable, scriptable exit codes
"""

__version__ = "1.0.0"

from .config import ConfigResolver, resolve_config
from .connection import DatabaseConnection, DatabaseUrl
from .errors import (
    ConfigError,
    DatabaseConnectionError,
    GoldDiggerError,
    OutputError,
    QueryError,
    RowProcessingError,
    TlsConfigError,
    TypeConversionError,
)
from .exit_codes import ExitCode, map_error_to_exit_code
from .extractor import QueryExtractor
from .main import main
from .materializer import QueryResult, RowMaterializer
from .models import (
    BinaryEncoding,
    Config,
    ExtractStats,
    OutputFormat,
    TlsMode,
    TlsOptions,
    Verbosity,
)
from .redaction import redact
from .tls import TlsPolicy, display_security_warnings
from .values import ValueConverter
from .writers import CsvWriter, JsonWriter, TsvWriter, create_writer

__all__ = [
    # Main entry point
    "main",
    # Core classes
    "ConfigResolver",
    "DatabaseConnection",
    "DatabaseUrl",
    "QueryExtractor",
    "QueryResult",
    "RowMaterializer",
    "TlsPolicy",
    "ValueConverter",
    # Writers
    "CsvWriter",
    "JsonWriter",
    "TsvWriter",
    "create_writer",
    # Models
    "BinaryEncoding",
    "Config",
    "ExitCode",
    "ExtractStats",
    "OutputFormat",
    "TlsMode",
    "TlsOptions",
    "Verbosity",
    # Errors
    "ConfigError",
    "DatabaseConnectionError",
    "GoldDiggerError",
    "OutputError",
    "QueryError",
    "RowProcessingError",
    "TlsConfigError",
    "TypeConversionError",
    # Utilities
    "display_security_warnings",
    "map_error_to_exit_code",
    "redact",
    "resolve_config",
]
