#!/usr/bin/env python3
"""
dataset2csv: Convert an XML dataset fixture into a CSV fixture.

Input is read from --input-file or standard input, output is appended to
--output-file (created if missing) or written to standard output.

Exit status is 0 on success, including documents with nothing to write,
and 1 when the input cannot be converted or a file cannot be read or
written.
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dataset2csv import __version__
from dataset2csv.converter import convert
from dataset2csv.errors import ConversionError

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dataset2csv",
        description="Convert an XML <dataset> fixture into a CSV fixture",
    )
    parser.add_argument(
        "-i",
        "--input-file",
        dest="input_file",
        default=None,
        help="File to read the XML dataset from. Standard input is read by default.",
    )
    parser.add_argument(
        "-o",
        "--output-file",
        dest="output_file",
        default=None,
        help="File to append the CSV output to. Output is written to standard output by default.",
    )
    parser.add_argument(
        "--encoding",
        dest="encoding",
        default="utf-8",
        help="Text encoding for writing the CSV output file (default: utf-8)",
    )
    parser.add_argument(
        "--delimiter",
        dest="delimiter",
        default=",",
        help="CSV delimiter (default: ,)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log progress information to standard error",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)
    if len(args.delimiter) != 1:
        parser.error("--delimiter must be a single character")
    return args


def run(args: argparse.Namespace) -> int:
    """Open the streams named by `args` and convert. Returns the number of rows written."""
    with contextlib.ExitStack() as stack:
        if args.input_file is None:
            input_stream = sys.stdin.buffer
        else:
            input_stream = stack.enter_context(Path(args.input_file).expanduser().open("rb"))

        if args.output_file is None:
            output_stream = sys.stdout
        else:
            output_path = Path(args.output_file).expanduser()
            output_stream = stack.enter_context(output_path.open("a", encoding=args.encoding, newline=""))

        return convert(input_stream, output_stream, delimiter=args.delimiter)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        rows = run(args)
    except ConversionError as exc:
        logger.error("Failed to convert %s: %s", args.input_file or "<stdin>", exc)
        return 1
    except OSError as exc:
        logger.error("I/O error: %s", exc)
        return 1

    if args.output_file is not None:
        logger.info("Wrote %d rows to %s", rows, args.output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
