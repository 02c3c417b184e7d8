"""Convert a dataset fixture stream into a CSV fixture stream."""

from __future__ import annotations

import logging
from typing import BinaryIO, TextIO

from dataset2csv.events import DEFAULT_CHUNK_SIZE, XmlEventSource
from dataset2csv.reader import read_dataset
from dataset2csv.tables import column_count, group_tables
from dataset2csv.writer import write_tables

logger = logging.getLogger(__name__)


def convert(
    input_stream: BinaryIO,
    output_stream: TextIO,
    delimiter: str = ",",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """
    Read the whole `<dataset>` document from `input_stream` and write its CSV
    rendering to `output_stream`.

    Nothing is written until the whole document has been read. Returns the
    number of rows written, 0 when the dataset has no records or no columns.
    """
    entries = read_dataset(XmlEventSource(input_stream, chunk_size=chunk_size))

    # Occurrences of a table are grouped even when not contiguous in the document.
    tables = group_tables(entries)

    if not tables:
        logger.warning("<dataset> element is empty. Nothing will be written.")
        return 0
    if column_count(tables) == 0:
        logger.warning("No columns used in any element. Nothing will be written.")
        return 0

    return write_tables(entries, tables, output_stream, delimiter=delimiter)
