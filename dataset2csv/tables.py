"""
Group records into tables and reconcile their columns.

Records of one table do not have to carry the same cells. The column set of
a table is the union of the cell names of all its records, in the order they
were first seen, except for the `uid` column which is always moved to the
front: the first value of a CSV fixture row must never be empty.

Tables hold indices into the record list rather than the records themselves.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set

from dataset2csv.errors import StructureError
from dataset2csv.reader import TableEntry

logger = logging.getLogger(__name__)

UID_COLUMN_NAME = "uid"


class TableDataSet:
    def __init__(self, name: str) -> None:
        self.name = name
        self.column_names: List[str] = []
        self.entries: List[int] = []
        self._known_columns: Set[str] = set()

    def add_entry(self, index: int, entry: TableEntry) -> None:
        """Add the record stored at `index`, growing the column set as needed."""
        for cell_name in entry.cells:
            if cell_name not in self._known_columns:
                self._known_columns.add(cell_name)
                self.column_names.append(cell_name)

        # Checked against the columns accumulated so far, not the record's own cells.
        try:
            uid_position = self.column_names.index(UID_COLUMN_NAME)
        except ValueError:
            raise StructureError(
                f"Record #{index} of the dataset (table <{self.name}>) at position {entry.position} has no "
                f"{UID_COLUMN_NAME} column and no earlier <{self.name}> record defined one"
            ) from None
        if uid_position != 0:
            self.column_names[0], self.column_names[uid_position] = (
                self.column_names[uid_position],
                self.column_names[0],
            )

        self.entries.append(index)

    def __repr__(self) -> str:
        return f"TableDataSet({self.name!r}, columns={self.column_names!r}, entries={len(self.entries)})"


def group_tables(entries: Sequence[TableEntry]) -> Dict[str, TableDataSet]:
    """Group records by table name, tables in order of first occurrence."""
    tables: Dict[str, TableDataSet] = {}
    for index, entry in enumerate(entries):
        table = tables.get(entry.name)
        if table is None:
            table = tables[entry.name] = TableDataSet(entry.name)
        table.add_entry(index, entry)

    for table in tables.values():
        logger.debug("Table %s: %d records, columns %s", table.name, len(table.entries), table.column_names)
    return tables


def column_count(tables: Dict[str, TableDataSet]) -> int:
    """Widest column set across all tables, 0 if there are none."""
    return max((len(table.column_names) for table in tables.values()), default=0)
