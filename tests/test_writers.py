"""
Unit tests for writers.py
"""

import csv
import io
import json
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gold_digger.errors import OutputError
from gold_digger.exit_codes import map_error_to_exit_code
from gold_digger.models import OutputFormat
from gold_digger.writers import (
    CsvWriter,
    JsonWriter,
    TsvWriter,
    create_writer,
    open_output_file,
)


class FailingStream(io.StringIO):
    """Stream that raises on write after ``limit`` calls."""

    def __init__(self, limit=0):
        super().__init__()
        self.limit = limit

    def write(self, text):
        if self.limit <= 0:
            raise OSError(28, "No space left on device")
        self.limit -= 1
        return super().write(text)


class TestCsvWriter:
    """Tests for CSV output."""

    def test_quoting_and_null(self):
        """Test quoting and NULL fields."""
        stream = io.StringIO()
        count = CsvWriter(stream).write(["a", "b", "c"], [["1", "x,y", None]])
        assert count == 1
        assert stream.getvalue() == 'a,b,c\r\n1,"x,y",\r\n'

    def test_embedded_quote_and_newline(self):
        """Test embedded quotes and newlines."""
        stream = io.StringIO()
        CsvWriter(stream).write(["v"], [['say "hi"'], ["line1\nline2"]])
        assert stream.getvalue() == 'v\r\n"say ""hi"""\r\n"line1\nline2"\r\n'

    def test_header_only(self):
        """Test a header-only document."""
        stream = io.StringIO()
        assert CsvWriter(stream).write(["a", "b"], []) == 0
        assert stream.getvalue() == "a,b\r\n"

    def test_batches(self, monkeypatch):
        """Test rows are written across batches."""
        monkeypatch.setattr(CsvWriter, 'BATCH_SIZE', 2)
        stream = io.StringIO()
        records = [[str(i)] for i in range(5)]
        assert CsvWriter(stream).write(["n"], records) == 5
        assert stream.getvalue() == "n\r\n0\r\n1\r\n2\r\n3\r\n4\r\n"

    def test_round_trip_through_csv_reader(self):
        """Test special characters and NULLs read back cell for cell."""
        header = ["id", "text", "note"]
        rows = [
            ["1", "a,b", None],
            ["2", 'say "hi"', "line1\r\nline2"],
            ["3", "tab\there", "x\ny"],
            [None, "", "cr\ronly"],
        ]
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out.csv"
            stream = open_output_file(str(path))
            CsvWriter(stream).write(header, rows)
            stream.close()
            with open(path, newline='', encoding='utf-8') as f:
                read_back = list(csv.reader(f))

        assert read_back[0] == header
        assert read_back[1:] == [
            ["" if cell is None else cell for cell in row] for row in rows
        ]

    def test_single_null_column_reads_back_empty(self):
        """Test a row holding one NULL reads back as one empty cell."""
        stream = io.StringIO()
        CsvWriter(stream).write(["v"], [[None]])
        read_back = list(csv.reader(io.StringIO(stream.getvalue(), newline='')))
        assert read_back == [["v"], [""]]


class TestTsvWriter:
    """Tests for TSV output."""

    def test_basic(self):
        """Test basic TSV output."""
        stream = io.StringIO()
        TsvWriter(stream).write(["a", "b"], [["1", None], ["x y", ""]])
        assert stream.getvalue() == "a\tb\r\n1\t\r\nx y\t\r\n"

    def test_escapes(self):
        """Test TSV escapes."""
        stream = io.StringIO()
        TsvWriter(stream).write(["v"], [["a\tb\nc\rd\\e"]])
        assert stream.getvalue() == "v\r\na\\tb\\nc\\rd\\\\e\r\n"

    def test_escape_helper(self):
        """Test the escape helper."""
        assert TsvWriter.escape(None) == ""
        assert TsvWriter.escape("plain") == "plain"

    def test_every_line_has_header_field_count(self):
        """Test TAB, CR and LF inside fields never add fields or lines."""
        header = ["a", "b", "c"]
        rows = [
            ["x\ty", "line1\nline2", None],
            ["cr\rlf\r\n", "", "\t\t"],
            [None, None, None],
        ]
        stream = io.StringIO()
        TsvWriter(stream).write(header, rows)

        lines = stream.getvalue().split("\r\n")
        assert lines[-1] == ""
        lines = lines[:-1]
        assert len(lines) == len(rows) + 1
        for line in lines:
            assert "\n" not in line and "\r" not in line
            assert len(line.split("\t")) == len(header)


class TestJsonWriter:
    """Tests for JSON output."""

    def test_compact(self):
        """Test compact JSON output."""
        stream = io.StringIO()
        count = JsonWriter(stream).write(["d"], [["1.23000"]])
        assert count == 1
        assert stream.getvalue() == '{"data":[{"d":"1.23000"}]}'

    def test_all_values_are_strings_or_null(self):
        """Test JSON values are strings or null."""
        stream = io.StringIO()
        JsonWriter(stream).write(["id", "name"], [["1", None], ["2", "é"]])
        assert stream.getvalue() == '{"data":[{"id":"1","name":null},{"id":"2","name":"é"}]}'
        assert json.loads(stream.getvalue())["data"][0] == {"id": "1", "name": None}

    def test_empty(self):
        """Test an empty JSON document."""
        stream = io.StringIO()
        assert JsonWriter(stream).write(["a"], []) == 0
        assert stream.getvalue() == '{"data":[]}'

    def test_key_order_follows_columns(self):
        """Test key order follows column order."""
        stream = io.StringIO()
        JsonWriter(stream).write(["z", "a", "m"], [["1", "2", "3"]])
        assert stream.getvalue() == '{"data":[{"z":"1","a":"2","m":"3"}]}'

    def test_duplicate_keys_kept(self):
        """Test duplicate keys are kept."""
        stream = io.StringIO()
        JsonWriter(stream).write(["x", "x"], [["1", "2"]])
        assert stream.getvalue() == '{"data":[{"x":"1","x":"2"}]}'

    def test_special_characters_escaped(self):
        """Test special characters are escaped."""
        stream = io.StringIO()
        JsonWriter(stream).write(["q"], [['a"b\\c\n']])
        assert json.loads(stream.getvalue()) == {"data": [{"q": 'a"b\\c\n'}]}

    @pytest.mark.parametrize("rows", [
        [],
        [["1", None]],
        [["1", "x"], ["2", "y"]],
        [["1", "é ☃"]],
    ])
    def test_pretty_matches_json_module(self, rows):
        """Test pretty output matches the json module."""
        header = ["id", "name"]
        stream = io.StringIO()
        JsonWriter(stream, pretty=True).write(header, rows)
        expected = json.dumps(
            {"data": [dict(zip(header, row)) for row in rows]},
            indent=2,
            ensure_ascii=False,
        ) + "\n"
        assert stream.getvalue() == expected

    def test_pretty_object_without_columns(self):
        """Test a pretty row without columns."""
        stream = io.StringIO()
        JsonWriter(stream, pretty=True).write([], [[]])
        assert json.loads(stream.getvalue()) == {"data": [{}]}


class TestErrors:
    """Write and flush failures become OutputError."""

    @pytest.mark.parametrize("writer_class", [CsvWriter, TsvWriter, JsonWriter])
    def test_write_failure(self, writer_class):
        """Test write failures become OutputError."""
        with pytest.raises(OutputError) as exc_info:
            writer_class(FailingStream()).write(["a"], [["1"]])
        assert map_error_to_exit_code(exc_info.value) == 5

    def test_failure_midway(self):
        """Test a failure after some rows."""
        with pytest.raises(OutputError):
            TsvWriter(FailingStream(limit=1)).write(["a"], [["1"], ["2"]])

    def test_flush_failure(self):
        """Test flush failures become OutputError."""
        stream = MagicMock()
        stream.flush.side_effect = OSError(5, "Input/output error")
        with pytest.raises(OutputError) as exc_info:
            TsvWriter(stream).write(["a"], [])
        assert "flush" in str(exc_info.value)


class TestOpenOutputFile:
    """Tests for output file creation."""

    def test_creates_file(self):
        """Test the output file is created."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "out.csv"
            stream = open_output_file(str(path))
            CsvWriter(stream).write(["a"], [["1"]])
            stream.close()
            assert path.read_bytes() == b"a\r\n1\r\n"

    def test_missing_directory(self):
        """Test a missing directory is an output error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "missing" / "out.csv"
            with pytest.raises(OutputError) as exc_info:
                open_output_file(str(path))
        assert "Failed to create output file" in str(exc_info.value)
        assert map_error_to_exit_code(exc_info.value) == 5


class TestCreateWriter:
    """Tests for the writer factory."""

    @pytest.mark.parametrize("output_format, writer_class", [
        (OutputFormat.CSV, CsvWriter),
        (OutputFormat.TSV, TsvWriter),
        (OutputFormat.JSON, JsonWriter),
    ])
    def test_dispatch(self, output_format, writer_class):
        """Test the writer for each format."""
        assert isinstance(create_writer(output_format, io.StringIO()), writer_class)

    def test_pretty_passed_to_json(self):
        """Test the pretty flag reaches the JSON writer."""
        writer = create_writer(OutputFormat.JSON, io.StringIO(), pretty=True)
        assert writer.pretty is True
