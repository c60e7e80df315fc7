"""Reading and writing of fixed-width and delimited record files.

In fixed mode every physical line is one record. In delimited mode records
are framed with the ``csv`` module, so quoted columns may contain the
delimiter or newlines. The transformer always sees a record as one string:
delimited columns are joined with the delimiter, and the masked string is
cut back at the original column boundaries before re-serialization, which
keeps the column count stable.

Each record remembers its line terminator, and delimited records also keep
their source text. Records the transformer left unchanged are written back
byte for byte.
"""

import csv
import io
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..core.config import GlobalConfig
from ..core.exceptions import InputError, OutputError

logger = logging.getLogger(__name__)


@dataclass
class RecordBatch:
    """Records of one input, in input order.

    Attributes:
        lines: One string per record, as handed to the transformer
        column_widths: Per-record column widths (delimited mode only)
        terminators: Per-record line terminator ("" for a final record
            without one); None means every record ends with ``\\n``
        raw_records: Per-record source text without its terminator
            (delimited mode only)
    """

    lines: list[str]
    column_widths: Optional[list[tuple[int, ...]]] = None
    terminators: Optional[list[str]] = None
    raw_records: Optional[list[str]] = None

    def __len__(self) -> int:
        return len(self.lines)

    def terminator(self, index: int) -> str:
        if self.terminators is None:
            return "\n"
        return self.terminators[index]


def _split_terminator(text: str) -> tuple[str, str]:
    for ending in ("\r\n", "\n", "\r"):
        if text.endswith(ending):
            return text[: -len(ending)], ending
    return text, ""


def split_fixed_records(text: str) -> tuple[list[str], list[str]]:
    """Split text into lines and the terminator that ended each one.

    Only ``\\n`` terminates a record (optionally preceded by ``\\r``); other
    line-break characters that ``str.splitlines`` honours are ordinary data
    in fixed-width files.
    """
    lines: list[str] = []
    terminators: list[str] = []
    if not text:
        return lines, terminators

    pieces = text.split("\n")
    last = pieces.pop()
    for piece in pieces:
        if piece.endswith("\r"):
            lines.append(piece[:-1])
            terminators.append("\r\n")
        else:
            lines.append(piece)
            terminators.append("\n")
    if last:
        lines.append(last)
        terminators.append("")
    return lines, terminators


def split_fixed(text: str) -> list[str]:
    """Split text into lines on ``\\n`` (dropping a trailing ``\\r``)."""
    return split_fixed_records(text)[0]


def parse_delimited(text: str, delimiter: str = ",") -> RecordBatch:
    """Parse CSV text into joined record strings plus column widths."""
    lines: list[str] = []
    widths: list[tuple[int, ...]] = []
    raw_records: list[str] = []
    terminators: list[str] = []
    consumed: list[str] = []

    def physical_lines():
        for physical in io.StringIO(text, newline=""):
            consumed.append(physical)
            yield physical

    for row in csv.reader(physical_lines(), delimiter=delimiter):
        raw, ending = _split_terminator("".join(consumed))
        consumed.clear()
        lines.append(delimiter.join(row))
        widths.append(tuple(len(column) for column in row))
        raw_records.append(raw)
        terminators.append(ending)

    return RecordBatch(
        lines=lines,
        column_widths=widths,
        terminators=terminators,
        raw_records=raw_records,
    )


def split_columns(line: str, widths: tuple[int, ...]) -> list[str]:
    """Cut a joined record back into columns of the given widths."""
    columns = []
    position = 0
    for width in widths:
        columns.append(line[position:position + width])
        position += width + 1
    return columns


def parse_records(text: str, config: GlobalConfig) -> RecordBatch:
    """Frame ``text`` into records according to the configured input mode."""
    if config.is_delimited:
        return parse_delimited(text, config.delimiter)
    lines, terminators = split_fixed_records(text)
    return RecordBatch(lines=lines, terminators=terminators)


def _format_row(columns: list[str], delimiter: str) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, delimiter=delimiter, lineterminator="\n").writerow(columns)
    return buffer.getvalue()[:-1]


def format_records(lines: list[str], batch: RecordBatch, config: GlobalConfig) -> str:
    """Serialize transformed lines, matching the framing of ``batch``.

    Unchanged delimited records are emitted from their source text, so
    their quoting survives; changed ones are re-quoted by ``csv.writer``.
    """
    widths = batch.column_widths if config.is_delimited else None
    raw_records = batch.raw_records
    parts: list[str] = []
    for index, line in enumerate(lines):
        if widths is not None:
            if raw_records is not None and line == batch.lines[index]:
                line = raw_records[index]
            else:
                line = _format_row(split_columns(line, widths[index]), config.delimiter)
        parts.append(line + batch.terminator(index))
    return "".join(parts)


def read_records(input_path: Union[str, Path], config: GlobalConfig) -> RecordBatch:
    """
    Read all records from ``input_path``.

    Raises:
        InputError: If the file is missing, unreadable or not decodable with
            the configured encoding
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        error = InputError(f"Input file not found: {input_path}", input_path=str(input_path))
        error.add_recovery_suggestion("Check the input path")
        raise error

    try:
        with open(input_path, encoding=config.encoding, newline="") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        error = InputError(
            f"Cannot decode {input_path} as {config.encoding}: {e}",
            input_path=str(input_path),
        )
        error.add_recovery_suggestion("Select the legacy encoding with --encoding latin-1")
        raise error from e
    except OSError as e:
        raise InputError(
            f"Cannot read input file {input_path}: {e}", input_path=str(input_path)
        ) from e

    try:
        batch = parse_records(text, config)
    except csv.Error as e:
        raise InputError(
            f"Malformed delimited input in {input_path}: {e}", input_path=str(input_path)
        ) from e

    logger.debug(f"Read {len(batch)} records from {input_path}")
    return batch


def write_records(
    output_path: Union[str, Path], content: str, encoding: str
) -> None:
    """
    Write ``content`` to ``output_path`` atomically.

    Raises:
        OutputError: If the content cannot be encoded or written
    """
    output_path = Path(output_path)
    try:
        payload = content.encode(encoding)
    except UnicodeEncodeError as e:
        raise OutputError(
            f"Cannot encode output as {encoding}: {e}", output_path=str(output_path)
        ) from e

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        _write_file_atomic(output_path, payload)
    except OSError as e:
        raise OutputError(
            f"Cannot write output file {output_path}: {e}", output_path=str(output_path)
        ) from e

    logger.debug(f"Wrote {len(payload)} bytes to {output_path}")


def _write_file_atomic(file_path: Path, content: bytes) -> None:
    """Write file atomically using temporary file."""
    with tempfile.NamedTemporaryFile(
        mode="wb",
        dir=file_path.parent,
        delete=False,
        prefix=f".{file_path.name}.tmp"
    ) as tmp_file:
        tmp_file.write(content)
        tmp_file.flush()
        os.fsync(tmp_file.fileno())
        temp_path = Path(tmp_file.name)

    try:
        temp_path.replace(file_path)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
