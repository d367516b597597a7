"""
Data models and enums for Gold Digger.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class OutputFormat(Enum):
    """Supported output formats."""
    CSV = "csv"
    JSON = "json"
    TSV = "tsv"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @classmethod
    def from_path(cls, path: str) -> Optional["OutputFormat"]:
        """Infer the format from a file extension, if it is a known one."""
        suffix = Path(path).suffix.lower()
        for fmt in cls:
            if fmt.extension == suffix:
                return fmt
        return None


class Verbosity(Enum):
    """Diagnostic verbosity."""
    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"

    @property
    def log_level(self) -> str:
        return {"quiet": "ERROR", "normal": "INFO", "verbose": "DEBUG"}[self.value]


class BinaryEncoding(Enum):
    """How binary column values are rendered as text."""
    HEX = "hex"
    BASE64 = "base64"


class TlsMode(Enum):
    """TLS certificate validation mode."""
    PLATFORM = "platform"
    CUSTOM_CA = "custom-ca"
    SKIP_HOSTNAME_VERIFICATION = "skip-hostname-verification"
    ACCEPT_INVALID = "accept-invalid"


@dataclass(frozen=True)
class TlsOptions:
    """TLS flags as given on the command line."""
    ca_file: Optional[str] = None
    skip_hostname_verification: bool = False
    allow_invalid_certificate: bool = False

    def selected_flags(self) -> list[str]:
        """Command-line names of the flags that are set."""
        flags = []
        if self.ca_file:
            flags.append("--tls-ca-file")
        if self.skip_hostname_verification:
            flags.append("--insecure-skip-hostname-verify")
        if self.allow_invalid_certificate:
            flags.append("--allow-invalid-certificate")
        return flags


@dataclass(frozen=True)
class Config:
    """Fully resolved, immutable run configuration."""
    database_url: str
    query: str
    output: str
    output_format: OutputFormat
    verbosity: Verbosity = Verbosity.NORMAL
    allow_empty: bool = False
    tls: TlsOptions = field(default_factory=TlsOptions)
    query_file: Optional[str] = None
    format_explicit: bool = False
    binary_encoding: BinaryEncoding = BinaryEncoding.HEX
    pretty: bool = False


@dataclass
class ExtractStats:
    """Statistics for a single extraction run."""
    output_path: str
    output_format: OutputFormat
    columns: list[str] = field(default_factory=list)
    rows_written: int = 0
    elapsed_seconds: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "output_path": self.output_path,
            "format": self.output_format.value,
            "columns": len(self.columns),
            "rows_written": self.rows_written,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }
