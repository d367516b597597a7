"""
Query execution and row materialization for Gold Digger.
"""

import logging
from typing import Any, Iterator, Optional

from mysql.connector import Error as MySQLError

from .errors import QueryError, RowProcessingError, TypeConversionError
from .values import ColumnMeta, ValueConverter, decode_field

# A materialized record: canonical strings, None for SQL NULL.
Record = list[Optional[str]]


def split_statements(sql: str) -> list[str]:
    """
    Split SQL text on top-level semicolons.

    Quoted strings, backtick identifiers, backslash escapes, ``--`` and ``#``
    line comments and ``/* */`` block comments are respected. Fragments that
    contain only whitespace or comments are dropped.
    """
    statements = []
    current = []
    has_code = False
    i = 0
    length = len(sql)

    while i < length:
        ch = sql[i]
        nxt = sql[i + 1] if i + 1 < length else ''

        if ch in ("'", '"', '`'):
            end = _skip_quoted(sql, i, ch)
            current.append(sql[i:end])
            has_code = True
            i = end
            continue

        if (ch == '-' and nxt == '-' and (i + 2 >= length or sql[i + 2] in ' \t\r\n')) or ch == '#':
            end = sql.find('\n', i)
            end = length if end == -1 else end
            current.append(sql[i:end])
            i = end
            continue

        if ch == '/' and nxt == '*':
            end = sql.find('*/', i + 2)
            end = length if end == -1 else end + 2
            current.append(sql[i:end])
            i = end
            continue

        if ch == ';':
            if has_code:
                statements.append(''.join(current).strip())
            current = []
            has_code = False
            i += 1
            continue

        if not ch.isspace():
            has_code = True
        current.append(ch)
        i += 1

    if has_code:
        statements.append(''.join(current).strip())
    return statements


def _skip_quoted(sql: str, start: int, quote: str) -> int:
    """Index just past the quoted section beginning at ``start``."""
    i = start + 1
    while i < len(sql):
        ch = sql[i]
        if ch == '\\' and quote != '`':
            i += 2
            continue
        if ch == quote:
            if i + 1 < len(sql) and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return len(sql)


def single_statement(sql: str) -> str:
    """Return the one statement in ``sql``; reject empty or multi-statement input."""
    statements = split_statements(sql)
    if not statements:
        raise QueryError("Query is empty")
    if len(statements) > 1:
        raise QueryError(
            f"Query contains {len(statements)} statements; multiple statements are not "
            "supported, run one statement per invocation"
        )
    return statements[0]


class QueryResult:
    """
    Header plus a lazy, single-pass sequence of materialized records.

    Records are produced in server delivery order. A conversion failure stops
    iteration with a RowProcessingError before the failing row is yielded.
    """

    def __init__(self, cursor: Any, converter: ValueConverter):
        self.cursor = cursor
        self.converter = converter
        description = cursor.description or []
        self.columns = [ColumnMeta.from_description(desc) for desc in description]
        self.header = [column.name for column in self.columns]
        self.rows_read = 0

    def __iter__(self) -> Iterator[Record]:
        if not self.columns:
            return
        try:
            for raw_row in self.cursor:
                self.rows_read += 1
                yield self._materialize(raw_row)
        except MySQLError as e:
            raise QueryError(f"Query failed while reading rows: {e}") from e

    def _materialize(self, raw_row: tuple) -> Record:
        record = []
        for column, raw in zip(self.columns, raw_row):
            try:
                record.append(self.converter.to_canonical(decode_field(raw, column)))
            except TypeConversionError as e:
                raise RowProcessingError(self.rows_read, column.name, e) from e
        return record


class RowMaterializer:
    """Runs one statement on a connection and exposes its rows as records."""

    def __init__(self, connection: Any, converter: Optional[ValueConverter] = None):
        self.connection = connection
        self.converter = converter or ValueConverter()

    def execute(self, sql: str) -> tuple[Any, QueryResult]:
        """
        Execute ``sql`` and return the open cursor with its QueryResult.

        The caller owns the cursor and must close it after iterating.
        """
        statement = single_statement(sql)
        logging.debug(f"Executing query: {statement[:200]}")

        cursor = self.connection.get_cursor(raw=True)
        try:
            cursor.execute(statement)
        except MySQLError as e:
            cursor.close()
            raise QueryError(f"Query failed: {e}") from e

        result = QueryResult(cursor, self.converter)
        logging.debug(f"Result columns: {', '.join(result.header) or '(none)'}")
        return cursor, result
