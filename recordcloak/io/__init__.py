"""Record file input and output."""

from .records import (
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

__all__ = [
    "RecordBatch",
    "format_records",
    "parse_delimited",
    "parse_records",
    "read_records",
    "split_columns",
    "split_fixed",
    "split_fixed_records",
    "write_records",
]
