"""
Write grouped tables in the CSV fixture layout.

Each table becomes a block of rows:

    tt_content,,,
    ,uid,title,hidden
    ,1,Hi,
    ,2,Bye,1

The first row names the table, the second lists its columns and every
further row holds one record. All rows of a document share the same width,
one more than the widest table. Quoting is left to the csv module. Rows end
in a bare line feed, yet fields holding a carriage return or a line feed
are still quoted.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Dict, List, Sequence, TextIO

from dataset2csv.reader import TableEntry
from dataset2csv.tables import TableDataSet, column_count

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"


class _RowWriter:
    """csv.writer quoting carriage returns and line feeds, rows ending in LINE_TERMINATOR."""

    def __init__(self, sink: TextIO, delimiter: str) -> None:
        self._sink = sink
        self._buffer = io.StringIO()
        # csv quotes fields containing any character of the line terminator.
        self._writer = csv.writer(self._buffer, delimiter=delimiter, lineterminator="\r\n")

    def writerow(self, row: List[str]) -> None:
        self._writer.writerow(row)
        line = self._buffer.getvalue()
        self._buffer.seek(0)
        self._buffer.truncate()
        self._sink.write(line[:-2] + LINE_TERMINATOR)


def write_tables(
    entries: Sequence[TableEntry],
    tables: Dict[str, TableDataSet],
    sink: TextIO,
    delimiter: str = ",",
) -> int:
    """Write every table to `sink` and flush it. Returns the number of rows written."""
    writer = _RowWriter(sink, delimiter)
    width = column_count(tables) + 1
    rows = 0

    for table_name, table in tables.items():
        row: List[str] = [""] * width
        row[0] = table_name
        writer.writerow(row)

        row = [""] * width
        row[1 : len(table.column_names) + 1] = table.column_names
        writer.writerow(row)
        rows += 2

        for index in table.entries:
            cells = entries[index].cells
            row = [""] * width
            for column_index, column_name in enumerate(table.column_names, start=1):
                row[column_index] = cells.get(column_name, "")
            writer.writerow(row)
            rows += 1

    sink.flush()
    logger.info("Wrote %d tables, %d rows", len(tables), rows)
    return rows
