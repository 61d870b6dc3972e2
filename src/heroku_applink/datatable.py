"""In-memory CSV tables for Bulk API v2 uploads and downloads.

The Bulk ingest endpoint rejects uploads above 100MB, so ``split_data_table``
packs rows into tables whose serialized CSV stays under a byte budget.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

_logger = logging.getLogger(__name__)

SIZE_100_MB = 100_000_000

Row = Dict[str, Optional[str]]


@dataclass(frozen=True)
class DataTable:
    """Immutable table: ordered columns shared by every row."""

    columns: Tuple[str, ...]
    rows: Tuple[Row, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> Row:
        return self.rows[index]

    def values(self, row: Mapping[str, Optional[str]]) -> List[Optional[str]]:
        return [row.get(c) for c in self.columns]


class DataTableBuilder:
    """Row-appending builder for DataTable."""

    def __init__(self, *columns: str) -> None:
        self.columns: Tuple[str, ...] = tuple(columns)
        self._rows: List[Row] = []

    def add_row(self, row: Union[Mapping[str, Optional[str]], Sequence[Optional[str]]]) -> DataTableBuilder:
        """Add a row by column name (mapping) or by position (sequence).

        Columns the row does not provide are stored as None; unknown keys
        and surplus values are ignored.
        """
        if isinstance(row, Mapping):
            mapped = {c: row.get(c) for c in self.columns}
        else:
            values = list(row)
            mapped = {c: (values[i] if i < len(values) else None) for i, c in enumerate(self.columns)}
        self._rows.append(mapped)
        return self

    def add_rows(self, rows: Iterable[Union[Mapping[str, Optional[str]], Sequence[Optional[str]]]]) -> DataTableBuilder:
        for row in rows:
            self.add_row(row)
        return self

    def __len__(self) -> int:
        return len(self._rows)

    def build(self) -> DataTable:
        return DataTable(columns=self.columns, rows=tuple(dict(r) for r in self._rows))


# ----------------------------------------------------------------------
# CSV codec
# ----------------------------------------------------------------------


def csv_lines(rows: Iterable[Sequence[Optional[str]]]) -> str:
    """Serialize rows as CSV text (\\r\\n terminated, minimal quoting, None as empty)."""
    buf = io.StringIO()
    w = csv.writer(buf)
    for row in rows:
        w.writerow(["" if v is None else v for v in row])
    return buf.getvalue()


def csv_size(rows: Iterable[Sequence[Optional[str]]]) -> int:
    """UTF-8 byte length of the CSV serialization of ``rows``."""
    return len(csv_lines(rows).encode("utf-8"))


def to_csv(table: DataTable) -> str:
    """Full CSV payload: header row followed by every data row."""
    return csv_lines([table.columns]) + csv_lines(table.values(r) for r in table)


def parse_csv(text: str) -> DataTable:
    """Parse a CSV body whose first row is the header."""
    reader = csv.reader(io.StringIO(text, newline=""))
    header = next(reader, None)
    if header is None:
        return DataTable(columns=())
    builder = DataTableBuilder(*header)
    for values in reader:
        if not values:
            continue
        builder.add_row(values)
    return builder.build()


# ----------------------------------------------------------------------
# Splitting
# ----------------------------------------------------------------------


def split_data_table(table: DataTable, byte_budget: int = SIZE_100_MB) -> Iterator[DataTable]:
    """Yield tables whose CSV payload (header included) stays under ``byte_budget``.

    Rows keep their order and each lands in exactly one table. A row that is
    too large on its own still gets a table of its own. At least one table
    is always yielded, header-only for an empty input.
    """
    header_bytes = csv_size([table.columns])
    builder = DataTableBuilder(*table.columns)
    current_size = header_bytes
    emitted = 0

    for row in table:
        values = table.values(row)
        row_bytes = csv_size([values])
        if len(builder) and current_size + row_bytes >= byte_budget:
            emitted += 1
            _logger.debug("Chunk %d closed: %d rows, %d bytes", emitted, len(builder), current_size)
            yield builder.build()
            builder = DataTableBuilder(*table.columns)
            current_size = header_bytes + row_bytes
        else:
            current_size += row_bytes
        builder.add_row(values)

    _logger.debug("Chunk %d closed: %d rows, %d bytes", emitted + 1, len(builder), current_size)
    yield builder.build()
