"""
Output writers for Gold Digger.

All writers take a header and an iterable of records (lists of canonical
strings, None for NULL), write a complete document to a buffered text stream
and flush it before returning the number of data rows written.
"""

import csv
import json
from pathlib import Path
from typing import Iterable, Optional, TextIO

from .errors import OutputError
from .models import OutputFormat

Record = list[Optional[str]]

OUTPUT_BUFFER_SIZE = 64 * 1024


def open_output_file(path: str) -> TextIO:
    """Open ``path`` for writing with a 64 KiB buffer."""
    try:
        return open(Path(path), 'w', encoding='utf-8', newline='', buffering=OUTPUT_BUFFER_SIZE)
    except OSError as e:
        raise OutputError(f"Failed to create output file '{path}': {e.strerror or e}") from e


class RowWriter:
    """Common write/flush handling for the concrete writers."""

    output_format: OutputFormat

    def __init__(self, stream: TextIO):
        self.stream = stream

    def write(self, header: list[str], records: Iterable[Record]) -> int:
        """Write the whole document and flush. Returns the data row count."""
        try:
            rows_written = self._write_document(header, records)
        except OSError as e:
            raise OutputError(f"Failed to write {self.output_format.value} output: {e}") from e

        try:
            self.stream.flush()
        except OSError as e:
            raise OutputError(f"Failed to flush output: {e}") from e
        return rows_written

    def _write_document(self, header: list[str], records: Iterable[Record]) -> int:
        raise NotImplementedError


class CsvWriter(RowWriter):
    """RFC 4180 CSV: comma separated, CRLF, quoting only where needed."""

    output_format = OutputFormat.CSV
    BATCH_SIZE = 5000

    def _write_document(self, header: list[str], records: Iterable[Record]) -> int:
        writer = csv.writer(self.stream, quoting=csv.QUOTE_MINIMAL, lineterminator='\r\n')
        writer.writerow(header)

        rows_written = 0
        batch = []
        for record in records:
            batch.append(record)
            rows_written += 1

            if len(batch) >= self.BATCH_SIZE:
                writer.writerows(batch)
                batch = []

        if batch:
            writer.writerows(batch)
        return rows_written


class TsvWriter(RowWriter):
    """
    Tab separated values with CRLF line endings and no quoting.

    Backslash, TAB, CR and LF inside a field are escaped as ``\\\\``, ``\\t``,
    ``\\r`` and ``\\n`` so every line has exactly one field per column.
    """

    output_format = OutputFormat.TSV
    ESCAPES = str.maketrans({'\\': '\\\\', '\t': '\\t', '\r': '\\r', '\n': '\\n'})

    @classmethod
    def escape(cls, field: Optional[str]) -> str:
        if field is None:
            return ''
        return field.translate(cls.ESCAPES)

    def _format_line(self, fields: Iterable[Optional[str]]) -> str:
        return '\t'.join(self.escape(field) for field in fields) + '\r\n'

    def _write_document(self, header: list[str], records: Iterable[Record]) -> int:
        self.stream.write(self._format_line(header))

        rows_written = 0
        for record in records:
            self.stream.write(self._format_line(record))
            rows_written += 1
        return rows_written


class JsonWriter(RowWriter):
    """
    ``{"data":[...]}`` with one object per row, keys in column order.

    Every value is a JSON string holding the canonical form; NULL is ``null``.
    Objects are written one at a time, so duplicate column names are kept.
    """

    output_format = OutputFormat.JSON

    def __init__(self, stream: TextIO, pretty: bool = False):
        super().__init__(stream)
        self.pretty = pretty

    @staticmethod
    def _encode(value: Optional[str]) -> str:
        return json.dumps(value, ensure_ascii=False)

    def format_object(self, keys: list[str], record: Record) -> str:
        pairs = [
            f"{self._encode(key)}:{' ' if self.pretty else ''}{self._encode(value)}"
            for key, value in zip(keys, record)
        ]
        if not self.pretty:
            return '{' + ','.join(pairs) + '}'
        if not pairs:
            return '{}'
        inner = ',\n'.join(f"      {pair}" for pair in pairs)
        return '{\n' + inner + '\n    }'

    def _write_document(self, header: list[str], records: Iterable[Record]) -> int:
        if self.pretty:
            opening, separator, closing, empty = '{\n  "data": [\n', ',\n', '\n  ]\n}\n', '{\n  "data": []\n}\n'
            indent = '    '
        else:
            opening, separator, closing, empty = '{"data":[', ',', ']}', '{"data":[]}'
            indent = ''

        rows_written = 0
        for record in records:
            if rows_written == 0:
                self.stream.write(opening)
            else:
                self.stream.write(separator)
            self.stream.write(indent + self.format_object(header, record))
            rows_written += 1

        self.stream.write(closing if rows_written else empty)
        return rows_written


def create_writer(output_format: OutputFormat, stream: TextIO, pretty: bool = False) -> RowWriter:
    """Return the writer for ``output_format`` bound to ``stream``."""
    if output_format == OutputFormat.CSV:
        return CsvWriter(stream)
    if output_format == OutputFormat.TSV:
        return TsvWriter(stream)
    if output_format == OutputFormat.JSON:
        return JsonWriter(stream, pretty=pretty)
    raise ValueError(f"Unsupported output format: {output_format}")
