"""
Read the records of a `<dataset>` fixture from a stream of XML events.

Grammar accepted:

    document := (declaration | text | comment)* <dataset> record* </dataset>
    record   := <table> (cell | text | comment)* </table>
    cell     := <cell/> | <cell></cell> | <cell>text</cell>

The reader is a small state machine. Every token that does not fit the
current state goes through `DatasetReader._unexpected`, which reports the
token, its byte offset, the state and the currently open elements.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping

from dataset2csv.errors import MalformedInputError
from dataset2csv.events import EventKind, XmlEvent

logger = logging.getLogger(__name__)

ROOT_ELEMENT_NAME = "dataset"

IGNORED_IN_PROLOG = frozenset({EventKind.DECLARATION, EventKind.TEXT, EventKind.COMMENT})
IGNORED_BETWEEN_ELEMENTS = frozenset({EventKind.TEXT, EventKind.COMMENT})


@dataclass(frozen=True)
class TableEntry:
    """One record: the table it belongs to and its cell values in document order."""

    name: str
    cells: Mapping[str, str] = field(default_factory=dict)
    position: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "cells", MappingProxyType(dict(self.cells)))


class ReaderState(Enum):
    AWAITING_ROOT = "awaiting the root element"
    IN_DATASET = "reading the dataset"
    IN_ENTRY = "reading a table record"
    IN_CELL = "reading a cell"


class DatasetReader:
    """Consume the events of one document and collect its table records."""

    def __init__(self, events: Iterable[XmlEvent], root_name: str = ROOT_ELEMENT_NAME) -> None:
        self._events: Iterator[XmlEvent] = iter(events)
        self.root_name = root_name
        self.state = ReaderState.AWAITING_ROOT
        self._open: List[str] = []
        self._last_position = 0

    def read(self) -> List[TableEntry]:
        self._enter_root()
        entries: List[TableEntry] = []
        while True:
            event = self._next()
            if event.kind is EventKind.START:
                entries.append(self._read_entry(event))
            elif event.kind is EventKind.END and event.name == self.root_name:
                self._open.pop()
                break
            elif event.kind not in IGNORED_BETWEEN_ELEMENTS:
                raise self._unexpected(event, f"the start of a table element or </{self.root_name}>")
        logger.info("Read %d records from <%s>", len(entries), self.root_name)
        return entries

    def _next(self) -> XmlEvent:
        event = next(self._events, None)
        if event is None:
            # The event source ends with EOF; a bare iterable may not.
            return XmlEvent(EventKind.EOF, self._last_position)
        self._last_position = event.position
        return event

    def _unexpected(self, event: XmlEvent, expected: str) -> MalformedInputError:
        context = "".join(f"<{name}>" for name in self._open) or "document prolog"
        return MalformedInputError(
            f"Unexpected token in xml at position {event.position}: found {event.describe()} "
            f"while {self.state.value} (inside {context}). Expected {expected}.",
            event.position,
        )

    def _enter_root(self) -> None:
        expected = f"the start of a <{self.root_name}> element"
        while True:
            event = self._next()
            if event.kind in IGNORED_IN_PROLOG:
                continue
            if event.kind is EventKind.EOF:
                raise MalformedInputError(
                    f"Input is empty. Expected to find a <{self.root_name}> element.", event.position
                )
            if event.kind is EventKind.START and event.name == self.root_name:
                break
            raise self._unexpected(event, expected)
        self._open.append(self.root_name)
        self.state = ReaderState.IN_DATASET

    def _read_entry(self, start: XmlEvent) -> TableEntry:
        table_name = start.name or ""
        self.state = ReaderState.IN_ENTRY
        self._open.append(table_name)
        cells: Dict[str, str] = {}

        while True:
            event = self._next()
            if event.kind is EventKind.END:
                if event.name != table_name:
                    raise self._unexpected(event, f"</{table_name}> or the start of a cell element")
                break
            if event.kind is EventKind.EMPTY:
                self._store_cell(cells, table_name, event, "")
            elif event.kind is EventKind.START:
                self._store_cell(cells, table_name, event, self._read_cell(event))
            elif event.kind not in IGNORED_BETWEEN_ELEMENTS:
                raise self._unexpected(event, f"</{table_name}> or the start of a cell element")

        self._open.pop()
        self.state = ReaderState.IN_DATASET
        return TableEntry(name=table_name, cells=cells, position=start.position)

    def _read_cell(self, start: XmlEvent) -> str:
        cell_name = start.name or ""
        self.state = ReaderState.IN_CELL
        self._open.append(cell_name)

        value = ""
        event = self._next()
        if event.kind is EventKind.TEXT:
            value = event.text or ""
            event = self._next()
            if event.kind is not EventKind.END or event.name != cell_name:
                raise self._unexpected(event, f"</{cell_name}>")
        elif event.kind is not EventKind.END or event.name != cell_name:
            raise self._unexpected(event, f"the text of <{cell_name}> or </{cell_name}>")

        self._open.pop()
        self.state = ReaderState.IN_ENTRY
        return value

    @staticmethod
    def _store_cell(cells: Dict[str, str], table_name: str, event: XmlEvent, value: str) -> None:
        cell_name = event.name or ""
        if cell_name in cells:
            logger.warning("Duplicated cell %s in table %s at position %d", cell_name, table_name, event.position)
        cells[cell_name] = value


def read_dataset(events: Iterable[XmlEvent], root_name: str = ROOT_ELEMENT_NAME) -> List[TableEntry]:
    """Read every record of the document. `events` must start before the root element."""
    return DatasetReader(events, root_name).read()
