"""
Row Formatting
==============

Writes typed rows either as a fixed-width table or as CSV. The header is
written before the first row.
"""

import csv
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, TextIO

COLUMN_WIDTH = 20


class ColumnKind(Enum):
    INT = "int"
    TIME = "time"      # integer ms
    CLOCK = "clock"    # ms since epoch, rendered as local date
    STR = "str"
    FLOAT = "float"


@dataclass(frozen=True)
class Column:
    name: str
    kind: ColumnKind = ColumnKind.STR


def format_clock(ms: int) -> str:
    """Local date/time for an epoch timestamp in ms, with a .ms suffix."""
    stamp = time.strftime("%c", time.localtime(ms // 1000))
    return f"{stamp}.{ms % 1000}"


def format_value(kind: ColumnKind, value: Any) -> str:
    if kind is ColumnKind.INT or kind is ColumnKind.TIME:
        return str(int(value))
    if kind is ColumnKind.CLOCK:
        return format_clock(int(value))
    if kind is ColumnKind.FLOAT:
        return f"{value:f}"
    return str(value)


class RowFormatter:
    """Base formatter: a fixed column layout and an output stream."""

    def __init__(self, columns: Sequence[Column], stream: TextIO):
        self.columns = list(columns)
        self.stream = stream
        self.rows_written = 0

    def write(self, values: Sequence[Any]):
        if len(values) != len(self.columns):
            raise ValueError(f"Expected {len(self.columns)} values, got {len(values)}")
        if self.rows_written == 0:
            self._write_header()
        self._write_row(values)
        self.rows_written += 1

    def _write_header(self):
        raise NotImplementedError

    def _write_row(self, values: Sequence[Any]):
        raise NotImplementedError


class TableFormatter(RowFormatter):
    """`| value` cells, each right-aligned to 20 characters."""

    def _cell(self, column: Column, value: Any) -> str:
        text = format_value(column.kind, value)
        if column.kind in (ColumnKind.TIME, ColumnKind.STR):
            return f"| {text:>{COLUMN_WIDTH}} "
        return f"| {text:>{COLUMN_WIDTH}}"

    def _write_header(self):
        cells = [f"| {c.name[:COLUMN_WIDTH]:>{COLUMN_WIDTH}}" for c in self.columns]
        self.stream.write("".join(cells) + "\n")

    def _write_row(self, values: Sequence[Any]):
        cells = [self._cell(c, v) for c, v in zip(self.columns, values)]
        self.stream.write("".join(cells) + "\n")


class CsvFormatter(RowFormatter):
    def __init__(self, columns: Sequence[Column], stream: TextIO):
        super().__init__(columns, stream)
        self._writer = csv.writer(stream, lineterminator="\n")

    def _write_header(self):
        self._writer.writerow([c.name for c in self.columns])

    def _write_row(self, values: Sequence[Any]):
        self._writer.writerow([format_value(c.kind, v) for c, v in zip(self.columns, values)])


def make_formatter(columns: Sequence[Column], stream: TextIO, csv_output: bool = False) -> RowFormatter:
    if csv_output:
        return CsvFormatter(columns, stream)
    return TableFormatter(columns, stream)
