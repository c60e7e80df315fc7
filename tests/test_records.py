"""Tests for record framing and file I/O."""

import csv
import io

import pytest

from recordcloak.core.config import GlobalConfig, InputMode
from recordcloak.core.exceptions import InputError, OutputError
from recordcloak.io.records import (
    RecordBatch,
    format_records,
    parse_delimited,
    parse_records,
    read_records,
    split_columns,
    split_fixed,
    split_fixed_records,
    write_records,
)


@pytest.fixture
def csv_config():
    return GlobalConfig(input_mode=InputMode.DELIMITED)


class TestSplitFixed:
    """Test fixed-width line framing."""

    def test_trailing_newline(self):
        assert split_fixed("a\nb\n") == ["a", "b"]

    def test_no_trailing_newline(self):
        assert split_fixed("a\nb") == ["a", "b"]

    def test_crlf(self):
        assert split_fixed("a\r\nb\r\n") == ["a", "b"]

    def test_empty_input(self):
        assert split_fixed("") == []

    def test_blank_lines_are_records(self):
        assert split_fixed("\n\na\n") == ["", "", "a"]

    def test_other_line_breaks_are_data(self):
        assert split_fixed("01ab\x0ccd\x1e\n") == ["01ab\x0ccd\x1e"]

    def test_terminators_recorded(self):
        assert split_fixed_records("a\r\nb\nc") == (["a", "b", "c"], ["\r\n", "\n", ""])


class TestDelimited:
    """Test delimited record framing."""

    def test_parse_simple(self):
        batch = parse_delimited("01,JohnDoe,rest\n02,x,y\n")
        assert batch.lines == ["01,JohnDoe,rest", "02,x,y"]
        assert batch.column_widths == [(2, 7, 4), (2, 1, 1)]

    def test_quoted_delimiter_and_newline(self):
        batch = parse_delimited('01,"Doe, J","a\nb"\n')
        assert len(batch) == 1
        assert batch.lines[0] == "01,Doe, J,a\nb"
        assert batch.column_widths == [(2, 6, 3)]

    def test_custom_delimiter(self):
        batch = parse_delimited("01;a;b\n", delimiter=";")
        assert batch.lines == ["01;a;b"]

    def test_split_columns(self):
        assert split_columns("01,Doe, J,x", (2, 6, 1)) == ["01", "Doe, J", "x"]

    def test_split_columns_after_masking_over_delimiter(self):
        # A delimiter overwritten by a mask is dropped, never adds a column
        assert split_columns("01X12345", (2, 2, 2)) == ["01", "12", "45"]

    def test_format_round_trip_keeps_quoting(self, csv_config):
        text = '01,"Doe, J",x\n'
        batch = parse_records(text, csv_config)
        assert format_records(batch.lines, batch, csv_config) == text

    def test_format_masked_columns(self, csv_config):
        batch = parse_records("01,JohnDoe,rest\n", csv_config)
        output = format_records(["01,AEBCC  ,rest"], batch, csv_config)
        assert list(csv.reader(io.StringIO(output))) == [["01", "AEBCC  ", "rest"]]

    def test_unchanged_rows_keep_source_quoting(self, csv_config):
        text = '"99","x"\n01,JohnDoe\n'
        batch = parse_records(text, csv_config)
        output = format_records(["99,x", "01,AEBCC  "], batch, csv_config)
        assert output == '"99","x"\n01,AEBCC  \n'

    def test_crlf_records(self, csv_config):
        text = '01,"a\r\nb"\r\n99,"q"'
        batch = parse_records(text, csv_config)
        assert batch.raw_records == ['01,"a\r\nb"', '99,"q"']
        assert batch.terminators == ["\r\n", ""]
        assert format_records(list(batch.lines), batch, csv_config) == text


class TestFormatRecords:
    """Test serialization of fixed-width output."""

    def test_fixed(self):
        batch = RecordBatch(lines=["a", "b"])
        assert format_records(["x", "y"], batch, GlobalConfig()) == "x\ny\n"

    def test_empty(self):
        assert format_records([], RecordBatch(lines=[]), GlobalConfig()) == ""

    def test_fixed_keeps_line_endings(self):
        batch = parse_records("99abc\r\n01JohnDoe\r\n02x", GlobalConfig())
        output = format_records(["99abc", "01AEBCC  ", "02x"], batch, GlobalConfig())
        assert output == "99abc\r\n01AEBCC  \r\n02x"


class TestReadRecords:
    """Test reading input files."""

    def test_read_fixed(self, input_file):
        batch = read_records(input_file, GlobalConfig())
        assert batch.lines[0] == "01JohnDoe|tail"
        assert len(batch) == 4
        assert batch.column_widths is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError, match="Input file not found") as exc_info:
            read_records(tmp_path / "missing.dat", GlobalConfig())
        assert exc_info.value.component == "io"

    def test_latin1_input(self, tmp_path):
        path = tmp_path / "legacy.dat"
        path.write_bytes(b"01Jos\xe9\n")
        batch = read_records(path, GlobalConfig(encoding="latin-1"))
        assert batch.lines == ["01José"]

    def test_undecodable_input(self, tmp_path):
        path = tmp_path / "legacy.dat"
        path.write_bytes(b"01Jos\xe9\n")
        with pytest.raises(InputError, match="Cannot decode") as exc_info:
            read_records(path, GlobalConfig())
        assert any("latin-1" in s for s in exc_info.value.recovery_suggestions)


class TestWriteRecords:
    """Test writing output files."""

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "out" / "nested" / "masked.dat"
        write_records(path, "01AEBCC  \n", "utf-8")
        assert path.read_text(encoding="utf-8") == "01AEBCC  \n"

    def test_no_temporary_files_left(self, tmp_path):
        path = tmp_path / "masked.dat"
        write_records(path, "x\n", "utf-8")
        assert [p.name for p in tmp_path.iterdir()] == ["masked.dat"]

    def test_latin1_output(self, tmp_path):
        path = tmp_path / "masked.dat"
        write_records(path, "01José\n", "latin-1")
        assert path.read_bytes() == b"01Jos\xe9\n"

    def test_unencodable_output(self, tmp_path):
        path = tmp_path / "masked.dat"
        with pytest.raises(OutputError, match="Cannot encode"):
            write_records(path, "€\n", "latin-1")
        assert not path.exists()

    def test_unwritable_destination(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(OutputError):
            write_records(blocker / "masked.dat", "x\n", "utf-8")
