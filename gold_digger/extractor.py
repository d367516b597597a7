"""
Extraction pipeline for Gold Digger: TLS policy, connect, query, write.
"""

import logging
import time

from .connection import DatabaseConnection
from .errors import OutputError
from .exit_codes import ExitCode
from .materializer import QueryResult, RowMaterializer
from .models import Config, ExtractStats
from .tls import TlsPolicy, display_security_warnings, initialize_tls_provider
from .values import ValueConverter
from .writers import create_writer, open_output_file


class QueryExtractor:
    """Runs one query and writes its rows to the configured output file."""

    def __init__(self, config: Config):
        self.config = config
        self.converter = ValueConverter(config.binary_encoding)

    def run(self) -> ExtractStats:
        """
        Execute the configured query and write the output file.

        Every failure propagates as an exception; partial output files are
        left on disk.
        """
        initialize_tls_provider()
        policy = TlsPolicy.from_options(self.config.tls)
        display_security_warnings(policy)

        stats = ExtractStats(
            output_path=self.config.output,
            output_format=self.config.output_format,
        )
        started = time.monotonic()

        with DatabaseConnection.from_url(self.config.database_url, policy) as conn:
            cursor, result = RowMaterializer(conn, self.converter).execute(self.config.query)
            try:
                stats.columns = list(result.header)
                stats.rows_written = self._write_output(result)
            finally:
                cursor.close()

        stats.elapsed_seconds = time.monotonic() - started
        logging.info(
            f"Wrote {stats.rows_written} row(s) x {len(stats.columns)} column(s) "
            f"to {stats.output_path} ({stats.output_format.value}) "
            f"in {stats.elapsed_seconds:.2f}s"
        )
        logging.debug(f"Run statistics: {stats.as_dict()}")
        return stats

    def _write_output(self, result: QueryResult) -> int:
        """Stream the result into the output file and close it."""
        stream = open_output_file(self.config.output)
        completed = False
        try:
            writer = create_writer(self.config.output_format, stream, pretty=self.config.pretty)
            rows_written = writer.write(result.header, result)
            completed = True
        finally:
            try:
                stream.close()
            except OSError as e:
                if completed:
                    raise OutputError(f"Failed to close output file: {e}") from e
                logging.debug(f"Error closing output file after failure: {e}")
        return rows_written

    def exit_code_for(self, stats: ExtractStats) -> ExitCode:
        """SUCCESS when rows were written or empty results are allowed."""
        if stats.rows_written == 0 and not self.config.allow_empty:
            logging.warning("Query returned no rows (use --allow-empty to exit 0)")
            return ExitCode.NO_ROWS
        return ExitCode.SUCCESS
