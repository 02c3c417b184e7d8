"""
Lazy XML token stream for dataset fixtures.

The reader in `dataset2csv.reader` walks the document token by token, so it
needs something closer to a pull parser than `xml.etree.ElementTree.parse`:
every start tag, end tag, empty-element tag, run of text, comment and
declaration as its own event, each tagged with the byte offset it starts at
so grammar errors can point into the input.

`XmlEventSource` wraps the expat parser (the same tokenizer ElementTree is
built on) and turns its push-style callbacks into a lazy iterator:

- The input stream is read in chunks; events produced by a chunk are queued
  and handed out before the next chunk is read.
- Adjacent character data (text split around entity references, CDATA
  sections, chunk boundaries) is coalesced into a single TEXT event.
- `<a/>` is reported as one EMPTY event while `<a></a>` stays a START
  followed by an END. Expat reports both forms the same way, so the raw
  bytes right before the end event are checked for `/>`.
- Nothing after the root element is read or reported, so trailing content
  (even malformed) never changes the result, whatever the chunk size.
- The stream always ends with exactly one EOF event, placed at the closing
  tag of the root element once it has been seen.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Deque, Iterator, List, Optional
from xml.parsers import expat

from dataset2csv.errors import MalformedInputError

DEFAULT_CHUNK_SIZE = 64 * 1024

TEXT_PREVIEW_LENGTH = 24


class EventKind(Enum):
    START = "start tag"
    END = "end tag"
    EMPTY = "empty tag"
    TEXT = "text"
    COMMENT = "comment"
    DECLARATION = "XML declaration"
    DOCTYPE = "doctype declaration"
    PROCESSING_INSTRUCTION = "processing instruction"
    EOF = "end of input"


@dataclass(frozen=True)
class XmlEvent:
    kind: EventKind
    position: int
    name: Optional[str] = None
    text: Optional[str] = None

    def describe(self) -> str:
        """Render the token the way it would appear in the document."""
        if self.kind is EventKind.START:
            return f"<{self.name}>"
        if self.kind is EventKind.END:
            return f"</{self.name}>"
        if self.kind is EventKind.EMPTY:
            return f"<{self.name}/>"
        if self.kind is EventKind.TEXT:
            text = self.text or ""
            if len(text) > TEXT_PREVIEW_LENGTH:
                text = text[:TEXT_PREVIEW_LENGTH] + "..."
            return f"text {text!r}"
        return self.kind.value


class XmlEventSource:
    """Iterate the XML tokens of a binary stream. Can only be iterated once."""

    def __init__(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._stream = stream
        self._chunk_size = chunk_size
        self._started = False

        self._parser = expat.ParserCreate()
        self._parser.XmlDeclHandler = self._on_declaration
        self._parser.StartDoctypeDeclHandler = self._on_doctype
        self._parser.StartElementHandler = self._on_start
        self._parser.EndElementHandler = self._on_end
        self._parser.CharacterDataHandler = self._on_text
        self._parser.CommentHandler = self._on_comment
        self._parser.ProcessingInstructionHandler = self._on_instruction

        self._pending: Deque[XmlEvent] = deque()
        # A start tag is held back until the next token shows whether it was <a/>.
        self._held_start: Optional[XmlEvent] = None
        self._text_parts: List[str] = []
        self._text_position = 0
        self._depth = 0
        # Set once the root element is closed; nothing after it is reported.
        self._root_end: Optional[int] = None

        # Raw input from the last reported token onwards, for the <a/> check.
        self._raw = bytearray()
        self._raw_base = 0
        self._mark = 0
        self._fed = 0

    def __iter__(self) -> Iterator[XmlEvent]:
        if self._started:
            raise RuntimeError("XmlEventSource can only be iterated once")
        self._started = True
        return self._events()

    def _events(self) -> Iterator[XmlEvent]:
        finished = False
        while not finished:
            chunk = self._stream.read(self._chunk_size)
            finished = not chunk
            self._feed(chunk, finished)
            while self._pending:
                yield self._pending.popleft()
            if self._root_end is not None:
                break
        yield XmlEvent(EventKind.EOF, self._fed if self._root_end is None else self._root_end)

    def _feed(self, chunk: bytes, final: bool) -> None:
        self._raw += chunk
        self._fed += len(chunk)
        try:
            self._parser.Parse(chunk, final)
        except expat.ExpatError as error:
            position = self._parser.ErrorByteIndex
            if position < 0:
                position = self._fed
            if self._root_end is not None and position >= self._root_end:
                # Whatever follows the root element is never read.
                return
            raise MalformedInputError(
                f"Error in input at position {position}: {expat.ErrorString(error.code)} "
                f"(line {error.lineno}, column {error.offset})",
                position,
            ) from error

        if final:
            self._release_start()
            self._flush_text()

        drop = self._mark - self._raw_base
        if drop > 0:
            del self._raw[:drop]
            self._raw_base = self._mark

    # ----------------------------------------------------------------- queue

    def _position(self) -> int:
        self._mark = self._parser.CurrentByteIndex
        return self._mark

    def _emit(self, event: XmlEvent) -> None:
        if self._root_end is not None:
            return
        self._release_start()
        self._flush_text()
        self._pending.append(event)

    def _release_start(self) -> None:
        if self._held_start is not None:
            self._pending.append(self._held_start)
            self._held_start = None

    def _flush_text(self) -> None:
        if self._text_parts:
            text = "".join(self._text_parts)
            self._pending.append(XmlEvent(EventKind.TEXT, self._text_position, text=text))
            self._text_parts = []

    def _closes_empty_tag(self, start_position: int, end_position: int) -> bool:
        if end_position == start_position:
            return True
        offset = end_position - self._raw_base
        return offset >= 2 and bytes(self._raw[offset - 2 : offset]) == b"/>"

    # -------------------------------------------------------------- handlers

    def _on_declaration(self, version, encoding, standalone) -> None:
        self._emit(XmlEvent(EventKind.DECLARATION, self._position()))

    def _on_doctype(self, name, system_id, public_id, has_internal_subset) -> None:
        self._emit(XmlEvent(EventKind.DOCTYPE, self._position(), name=name))

    def _on_instruction(self, target, data) -> None:
        self._emit(XmlEvent(EventKind.PROCESSING_INSTRUCTION, self._position(), name=target, text=data))

    def _on_comment(self, data) -> None:
        self._emit(XmlEvent(EventKind.COMMENT, self._position(), text=data))

    def _on_start(self, name, attributes) -> None:
        if self._root_end is not None:
            return
        self._depth += 1
        # Attributes are not part of the dataset grammar.
        event = XmlEvent(EventKind.START, self._position(), name=name)
        self._release_start()
        self._flush_text()
        self._held_start = event

    def _on_end(self, name) -> None:
        if self._root_end is not None:
            return
        position = self._position()
        self._depth -= 1
        start = self._held_start
        if start is not None and start.name == name and self._closes_empty_tag(start.position, position):
            self._held_start = None
            self._pending.append(XmlEvent(EventKind.EMPTY, start.position, name=name))
        else:
            self._emit(XmlEvent(EventKind.END, position, name=name))
        if self._depth == 0:
            self._root_end = position

    def _on_text(self, data) -> None:
        if self._root_end is not None:
            return
        position = self._position()
        self._release_start()
        if not self._text_parts:
            self._text_position = position
        self._text_parts.append(data)
