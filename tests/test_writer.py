"""Unit tests for the CSV fixture writer."""

# pylint: disable=missing-class-docstring,missing-function-docstring

import io

import pytest

from dataset2csv.reader import TableEntry
from dataset2csv.tables import group_tables
from dataset2csv.writer import write_tables


def render(entries: list[TableEntry], delimiter: str = ",") -> str:
    sink = io.StringIO()
    write_tables(entries, group_tables(entries), sink, delimiter=delimiter)
    return sink.getvalue()


class TestLayout:

    def test_single_table(self):
        entries = [
            TableEntry("tt_content", {"uid": "1", "title": "Hi"}),
            TableEntry("tt_content", {"uid": "2", "title": "Bye", "hidden": "1"}),
        ]
        assert render(entries) == "tt_content,,,\n,uid,title,hidden\n,1,Hi,\n,2,Bye,1\n"

    def test_rows_share_the_widest_table_width(self):
        entries = [
            TableEntry("pages", {"uid": "1"}),
            TableEntry("tt_content", {"uid": "5", "pid": "1", "header": "H"}),
        ]
        assert render(entries) == (
            "pages,,,\n"
            ",uid,,\n"
            ",1,,\n"
            "tt_content,,,\n"
            ",uid,pid,header\n"
            ",5,1,H\n"
        )

    def test_missing_cells_are_padded_in_place(self):
        entries = [
            TableEntry("t", {"uid": "1", "a": "A", "b": "B"}),
            TableEntry("t", {"uid": "2", "b": "only b"}),
        ]
        lines = render(entries).splitlines()
        assert lines[3] == ",2,,only b"

    def test_one_name_and_header_row_per_table(self):
        entries = [TableEntry(name, {"uid": str(i)}) for i, name in enumerate(["a", "b", "a", "c", "b"])]
        lines = render(entries).splitlines()
        names = [line.split(",")[0] for line in lines if not line.startswith(",")]
        assert names == ["a", "b", "c"]
        assert lines.count(",uid") == 3

    def test_returns_row_count(self):
        entries = [TableEntry("a", {"uid": "1"}), TableEntry("a", {"uid": "2"}), TableEntry("b", {"uid": "3"})]
        assert write_tables(entries, group_tables(entries), io.StringIO()) == 7

    def test_no_tables_writes_nothing(self):
        sink = io.StringIO()
        assert write_tables([], {}, sink) == 0
        assert sink.getvalue() == ""


class TestQuoting:

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("a,b", '"a,b"'),
            ('say "hi"', '"say ""hi"""'),
            ("two\nlines", '"two\nlines"'),
            ("a\rb", '"a\rb"'),
            ("a\r\nb", '"a\r\nb"'),
            ("plain", "plain"),
        ],
    )
    def test_special_characters(self, value, expected):
        output = render([TableEntry("t", {"uid": "1", "v": value})])
        assert output.endswith(f",1,{expected}\n")

    def test_custom_delimiter(self):
        output = render([TableEntry("t", {"uid": "1", "v": "a;b"})], delimiter=";")
        assert output == "t;;\n;uid;v\n;1;\"a;b\"\n"


class TestSink:

    def test_sink_is_flushed(self):
        class RecordingSink(io.StringIO):
            flushed = False

            def flush(self):
                self.flushed = True
                super().flush()

        sink = RecordingSink()
        entries = [TableEntry("t", {"uid": "1"})]
        write_tables(entries, group_tables(entries), sink)
        assert sink.flushed

    def test_write_failure_propagates(self):
        class BrokenSink(io.StringIO):
            def write(self, s):
                raise OSError("disk full")

        entries = [TableEntry("t", {"uid": "1"})]
        with pytest.raises(OSError, match="disk full"):
            write_tables(entries, group_tables(entries), BrokenSink())
