"""
Configuration resolution for Gold Digger.

Command-line arguments take precedence over environment variables, which
take precedence over built-in defaults.
"""

import argparse
import logging
import os
from collections.abc import Mapping
from typing import Any, Optional

from .errors import ConfigError
from .models import BinaryEncoding, Config, OutputFormat, TlsOptions, Verbosity
from .redaction import redact
from .tls import resolve_tls_mode

ENV_DATABASE_URL = "DATABASE_URL"
ENV_DATABASE_QUERY = "DATABASE_QUERY"
ENV_OUTPUT_FILE = "OUTPUT_FILE"


class ConfigResolver:
    """Merges parsed arguments with an environment snapshot into a Config."""

    def __init__(self, args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None):
        self.args = args
        self.environ = dict(os.environ if environ is None else environ)

    def _arg(self, name: str, default: Any = None) -> Any:
        return getattr(self.args, name, default)

    def _env(self, name: str) -> Optional[str]:
        value = self.environ.get(name)
        return value if value else None

    def resolve(self) -> Config:
        """Build the Config, raising ConfigError on any invalid input."""
        verbosity = self._resolve_verbosity()

        database_url = self._arg('db_url') or self._env(ENV_DATABASE_URL)
        if not database_url:
            raise ConfigError(
                f"Missing required database URL: use --db-url or set {ENV_DATABASE_URL}"
            )

        query, query_file = self._resolve_query()

        output = self._arg('output') or self._env(ENV_OUTPUT_FILE)
        if not output:
            raise ConfigError(
                f"Missing required output path: use --output or set {ENV_OUTPUT_FILE}"
            )

        output_format, explicit = self._resolve_format(output)

        tls = TlsOptions(
            ca_file=self._arg('tls_ca_file'),
            skip_hostname_verification=bool(self._arg('insecure_skip_hostname_verify', False)),
            allow_invalid_certificate=bool(self._arg('allow_invalid_certificate', False)),
        )
        resolve_tls_mode(tls)

        config = Config(
            database_url=database_url,
            query=query,
            output=output,
            output_format=output_format,
            verbosity=verbosity,
            allow_empty=bool(self._arg('allow_empty', False)),
            tls=tls,
            query_file=query_file,
            format_explicit=explicit,
            binary_encoding=self._resolve_binary_encoding(),
            pretty=bool(self._arg('pretty', False)),
        )
        logging.debug(f"Resolved configuration for {redact(database_url)}")
        return config

    def _resolve_verbosity(self) -> Verbosity:
        verbose = bool(self._arg('verbose', False))
        quiet = bool(self._arg('quiet', False))
        if verbose and quiet:
            raise ConfigError("--verbose cannot be used with --quiet")
        if verbose:
            return Verbosity.VERBOSE
        if quiet:
            return Verbosity.QUIET
        return Verbosity.NORMAL

    def _resolve_query(self) -> tuple[str, Optional[str]]:
        """Return the SQL text and, when it came from a file, the file path."""
        query = self._arg('query')
        query_file = self._arg('query_file')

        if query is not None and query_file is not None:
            raise ConfigError("--query cannot be used with --query-file")

        if query_file is not None:
            try:
                with open(query_file, 'r', encoding='utf-8') as f:
                    query = f.read()
            except (OSError, UnicodeDecodeError) as e:
                raise ConfigError(f"Failed to read query file '{query_file}': {e}") from e
        elif query is None:
            query = self._env(ENV_DATABASE_QUERY)

        if query is None or not query.strip():
            raise ConfigError(
                "Missing required query: use --query, --query-file "
                f"or set {ENV_DATABASE_QUERY}"
            )
        return query, query_file

    def _resolve_format(self, output: str) -> tuple[OutputFormat, bool]:
        """Return the output format and whether it was given explicitly."""
        name = self._arg('format')
        if name:
            try:
                return OutputFormat(name.lower()), True
            except ValueError:
                choices = ', '.join(fmt.value for fmt in OutputFormat)
                raise ConfigError(
                    f"Invalid output format '{name}' (expected one of: {choices})"
                ) from None

        inferred = OutputFormat.from_path(output)
        if inferred is None:
            logging.debug(f"No recognized extension on '{output}', defaulting to JSON")
            return OutputFormat.JSON, False
        return inferred, False

    def _resolve_binary_encoding(self) -> BinaryEncoding:
        name = self._arg('binary_encoding') or BinaryEncoding.HEX.value
        try:
            return BinaryEncoding(name.lower())
        except ValueError:
            raise ConfigError(f"Invalid binary encoding '{name}'") from None


def resolve_config(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> Config:
    """Resolve a Config from parsed arguments and an environment snapshot."""
    return ConfigResolver(args, environ).resolve()


def config_to_dict(config: Config) -> dict[str, Any]:
    """Plain, redacted view of a Config for display."""
    return {
        'database_url': redact(config.database_url),
        'query': redact(config.query),
        'query_file': config.query_file,
        'output': config.output,
        'format': config.output_format.value,
        'format_source': 'explicit' if config.format_explicit else 'inferred',
        'verbosity': config.verbosity.value,
        'allow_empty': config.allow_empty,
        'binary_encoding': config.binary_encoding.value,
        'pretty': config.pretty,
        'tls': {
            'mode': resolve_tls_mode(config.tls).value,
            'ca_file': config.tls.ca_file,
            'skip_hostname_verification': config.tls.skip_hostname_verification,
            'allow_invalid_certificate': config.tls.allow_invalid_certificate,
        },
    }
